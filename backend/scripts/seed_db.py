from decimal import Decimal

from stockledger.db.base import Base
from stockledger.db.session import SessionLocal, engine
from stockledger.models.enums import StockStatus, TransactionType
from stockledger.repositories import product_stock_repo
from stockledger.schemas.product_stock import ProductStockRequest
from stockledger.services import ledger_service
from stockledger.services.audit_service import AuditContext
import stockledger.models  # noqa: F401


SEED_CONTEXT = AuditContext(performed_by="seed", ip_address="127.0.0.1")

PRODUCTS = [
    ("TEMP-001", "Sensor de temperatura", 40, 10, "12.50", "ALM-CENTRAL", None),
    ("HUM-001", "Sensor de humedad", 8, 10, "9.90", "ALM-CENTRAL", None),
    ("GW-001", "Gateway LoRa", 0, 2, "149.00", "ALM-NORTE", None),
    ("ACT-001", "Actuador de valvula", 25, 5, "35.00", "ALM-NORTE", None),
    ("BAT-001", "Bateria 18650", 120, 30, "4.20", "ALM-SUR", None),
    ("OLD-001", "Sensor v1 (descatalogado)", 12, 2, None, "ALM-SUR", StockStatus.DISCONTINUED),
]


def run_seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        for sku, name, quantity, reorder_level, price, location, status in PRODUCTS:
            if product_stock_repo.exists_by_sku(db, sku):
                print(f"- {sku} ya existe, se omite")
                continue
            stock = ledger_service.create_stock(
                db,
                ProductStockRequest(
                    sku=sku,
                    product_name=name,
                    quantity=quantity,
                    reorder_level=reorder_level,
                    unit_price=Decimal(price) if price else None,
                    location=location,
                    status=status,
                ),
                context=SEED_CONTEXT,
            )
            print(f"+ {stock.sku} creado (id={stock.id}, estado={stock.status.value})")

        temp = product_stock_repo.get_by_sku(db, "TEMP-001")
        if temp and temp.quantity >= 5:
            ledger_service.adjust_stock(
                db,
                temp.id,
                transaction_type=TransactionType.STOCK_OUT,
                quantity=5,
                reason="Pedido de prueba",
                reference="SEED-ORD-1",
                context=SEED_CONTEXT,
            )
            ledger_service.record_damaged_goods(
                db,
                temp.id,
                damaged_quantity=2,
                reason="Golpe en transporte",
                context=SEED_CONTEXT,
            )
        print("Seed completado")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
