from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from stockledger.api.deps import get_audit_context, get_expected_version
from stockledger.cache.redis_cache import (
    INVENTORY_PREFIX,
    cache_get,
    cache_invalidate_prefix,
    cache_set,
    generation_key,
)
from stockledger.db.deps import get_db
from stockledger.schemas.audit_log import AuditLogResponse
from stockledger.schemas.product_stock import ProductStockRequest, ProductStockResponse
from stockledger.schemas.report import (
    BulkAvailability,
    BulkAvailabilityRequest,
    InventorySummary,
    ReorderSuggestion,
    StockAvailability,
)
from stockledger.schemas.transaction import (
    DamagedGoodsRequest,
    StockAdjustmentRequest,
    StockTransactionResponse,
)
from stockledger.services import ledger_service
from stockledger.services.audit_service import AuditContext


router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])


def _set_etag(response: Response, version: int) -> None:
    response.headers["ETag"] = f'"{version}"'


def _cached(name: str, loader):
    # La clave se fija antes de cargar: ver generation_key
    cache_key = generation_key(INVENTORY_PREFIX, name)
    cached = cache_get(cache_key)
    if cached is not None:
        return cached
    payload = loader()
    cache_set(cache_key, payload)
    return payload


def _cached_list(name: str, loader) -> list[ProductStockResponse]:
    return _cached(name, lambda: [ProductStockResponse.model_validate(item) for item in loader()])


@router.post("", response_model=ProductStockResponse, status_code=status.HTTP_201_CREATED)
def create_product_stock(
    payload: ProductStockRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    stock = ledger_service.create_stock(db, payload, context=context)
    cache_invalidate_prefix(INVENTORY_PREFIX)
    _set_etag(response, stock.version)
    return stock


@router.get("", response_model=list[ProductStockResponse])
def list_product_stocks(db: Session = Depends(get_db)):
    return _cached_list("list", lambda: ledger_service.list_stocks(db))


@router.get("/low-stock", response_model=list[ProductStockResponse])
def list_low_stock(db: Session = Depends(get_db)):
    return _cached_list("low-stock", lambda: ledger_service.list_low_stock(db))


@router.get("/damaged", response_model=list[ProductStockResponse])
def list_damaged_stock(db: Session = Depends(get_db)):
    return _cached_list("damaged", lambda: ledger_service.list_damaged_stock(db))


@router.get("/summary", response_model=InventorySummary)
def inventory_summary(db: Session = Depends(get_db)):
    return _cached("summary", lambda: ledger_service.summarize_inventory(db))


@router.get("/reorder-suggestions", response_model=list[ReorderSuggestion])
def list_reorder_suggestions(db: Session = Depends(get_db)):
    return ledger_service.list_reorder_suggestions(db)


@router.post("/bulk-check", response_model=BulkAvailability)
def bulk_availability_check(payload: BulkAvailabilityRequest, db: Session = Depends(get_db)):
    return ledger_service.check_availability_bulk(db, payload.items)


@router.get("/sku/{sku}", response_model=ProductStockResponse)
def get_product_stock_by_sku(sku: str, response: Response, db: Session = Depends(get_db)):
    stock = ledger_service.get_stock_by_sku(db, sku)
    _set_etag(response, stock.version)
    return stock


@router.get("/{stock_id}", response_model=ProductStockResponse)
def get_product_stock(stock_id: int, response: Response, db: Session = Depends(get_db)):
    stock = ledger_service.get_stock(db, stock_id)
    _set_etag(response, stock.version)
    return stock


@router.get("/{stock_id}/availability", response_model=StockAvailability)
def check_availability(
    stock_id: int,
    quantity: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    return ledger_service.check_availability(db, stock_id, quantity)


@router.put("/{stock_id}", response_model=ProductStockResponse)
def update_product_stock(
    stock_id: int,
    payload: ProductStockRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
    expected_version: int | None = Depends(get_expected_version),
):
    stock = ledger_service.update_stock(
        db,
        stock_id,
        payload,
        expected_version=expected_version,
        context=context,
    )
    cache_invalidate_prefix(INVENTORY_PREFIX)
    _set_etag(response, stock.version)
    return stock


@router.post("/{stock_id}/adjust", response_model=StockTransactionResponse)
def adjust_stock(
    stock_id: int,
    payload: StockAdjustmentRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
    expected_version: int | None = Depends(get_expected_version),
):
    transaction = ledger_service.adjust_stock(
        db,
        stock_id,
        transaction_type=payload.transaction_type,
        quantity=payload.quantity,
        reason=payload.reason,
        reference=payload.reference,
        expected_version=expected_version,
        context=context,
    )
    cache_invalidate_prefix(INVENTORY_PREFIX)
    _set_etag(response, transaction.stock_version)
    return transaction


@router.post("/{stock_id}/damage", response_model=StockTransactionResponse)
def record_damaged_goods(
    stock_id: int,
    payload: DamagedGoodsRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
    expected_version: int | None = Depends(get_expected_version),
):
    transaction = ledger_service.record_damaged_goods(
        db,
        stock_id,
        damaged_quantity=payload.damaged_quantity,
        reason=payload.reason,
        reference=payload.reference,
        expected_version=expected_version,
        context=context,
    )
    cache_invalidate_prefix(INVENTORY_PREFIX)
    _set_etag(response, transaction.stock_version)
    return transaction


@router.delete("/{stock_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product_stock(
    stock_id: int,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
    expected_version: int | None = Depends(get_expected_version),
):
    ledger_service.delete_stock(db, stock_id, expected_version=expected_version, context=context)
    cache_invalidate_prefix(INVENTORY_PREFIX)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{stock_id}/transactions", response_model=list[StockTransactionResponse])
def list_product_transactions(stock_id: int, db: Session = Depends(get_db)):
    return ledger_service.list_transactions_for_product(db, stock_id)


@router.get("/{stock_id}/audit-logs", response_model=list[AuditLogResponse])
def list_product_audit_logs(stock_id: int, db: Session = Depends(get_db)):
    return ledger_service.list_audit_logs_for_product(db, stock_id)
