from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from stockledger.models.enums import StockStatus
from stockledger.models.product_stock import ProductStock
from stockledger.services.errors import ConcurrencyConflictError


def get(db: Session, stock_id: int) -> ProductStock | None:
    return db.get(ProductStock, stock_id)


def get_by_sku(db: Session, sku: str) -> ProductStock | None:
    return db.scalar(select(ProductStock).where(ProductStock.sku == sku))


def exists_by_sku(db: Session, sku: str, *, exclude_id: int | None = None) -> bool:
    stmt = select(ProductStock.id).where(ProductStock.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(ProductStock.id != exclude_id)
    return db.scalar(stmt.limit(1)) is not None


def list_stocks(db: Session) -> Iterable[ProductStock]:
    return db.scalars(select(ProductStock).order_by(ProductStock.id.asc())).all()


def list_low_stock(db: Session) -> Iterable[ProductStock]:
    stmt = (
        select(ProductStock)
        .where(ProductStock.quantity <= ProductStock.reorder_level)
        .order_by(ProductStock.id.asc())
    )
    return db.scalars(stmt).all()


def list_reorder_candidates(db: Session, *, limit: int = 50) -> Iterable[ProductStock]:
    # Primero los que mas lejos estan de su minimo
    stmt = (
        select(ProductStock)
        .where(ProductStock.quantity <= ProductStock.reorder_level)
        .order_by((ProductStock.reorder_level - ProductStock.quantity).desc(), ProductStock.id.asc())
        .limit(limit)
    )
    return db.scalars(stmt).all()


def list_damaged(db: Session) -> Iterable[ProductStock]:
    stmt = (
        select(ProductStock)
        .where(ProductStock.damaged_quantity > 0)
        .order_by(ProductStock.id.asc())
    )
    return db.scalars(stmt).all()


def create_stock(
    db: Session,
    *,
    sku: str,
    product_name: str,
    quantity: int,
    reorder_level: int,
    status: StockStatus,
    unit_price: Decimal | None = None,
    location: str | None = None,
    commit: bool = True,
) -> ProductStock:
    stock = ProductStock(
        sku=sku,
        product_name=product_name,
        quantity=quantity,
        reorder_level=reorder_level,
        damaged_quantity=0,
        unit_price=unit_price,
        location=location,
        status=status,
        version=1,
    )
    db.add(stock)

    if commit:
        db.commit()
        db.refresh(stock)
    else:
        db.flush()  # deja el id listo dentro de la transaccion

    return stock


def compare_and_swap(
    db: Session,
    stock: ProductStock,
    *,
    expected_version: int,
    values: dict[str, Any],
    commit: bool = True,
) -> ProductStock:
    """
    Escritura condicional: solo actualiza si la version almacenada sigue
    siendo `expected_version`. Incrementa la version en la misma sentencia.
    """
    stmt = (
        update(ProductStock)
        .where(
            ProductStock.id == stock.id,
            ProductStock.version == expected_version,
        )
        .values(**values, version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        raise ConcurrencyConflictError(
            f"El stock {stock.id} fue modificado por otra operacion (version esperada {expected_version})",
            expected_version=expected_version,
        )

    if commit:
        db.commit()
    db.refresh(stock)
    return stock


def delete_if_version(
    db: Session,
    stock: ProductStock,
    *,
    expected_version: int,
    commit: bool = True,
) -> None:
    stmt = (
        delete(ProductStock)
        .where(
            ProductStock.id == stock.id,
            ProductStock.version == expected_version,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        raise ConcurrencyConflictError(
            f"El stock {stock.id} fue modificado por otra operacion (version esperada {expected_version})",
            expected_version=expected_version,
        )
    db.expunge(stock)

    if commit:
        db.commit()


def count_by_status(db: Session) -> dict[StockStatus, int]:
    rows = db.execute(
        select(ProductStock.status, func.count(ProductStock.id)).group_by(ProductStock.status)
    ).all()
    return {status: count for status, count in rows}


def totals(db: Session) -> tuple[int, int, int, Decimal]:
    row = db.execute(
        select(
            func.count(ProductStock.id),
            func.coalesce(func.sum(ProductStock.quantity), 0),
            func.coalesce(func.sum(ProductStock.damaged_quantity), 0),
            func.coalesce(func.sum(ProductStock.quantity * ProductStock.unit_price), 0),
        )
    ).one()
    total_products, total_units, total_damaged, value = row
    return int(total_products), int(total_units), int(total_damaged), Decimal(str(value)).quantize(Decimal("0.01"))
