import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.observability import metrics_registry
from stockledger.models.audit_log import AuditLog
from stockledger.models.enums import AuditAction, EntityType, StockStatus, TransactionType
from stockledger.models.product_stock import ProductStock
from stockledger.models.stock_transaction import StockTransaction
from stockledger.repositories import audit_log_repo, product_stock_repo, stock_transaction_repo
from stockledger.schemas.product_stock import ProductStockRequest, StockSnapshot
from stockledger.schemas.report import (
    AvailabilityCheckItem,
    BulkAvailability,
    InventorySummary,
    ReorderSuggestion,
    StockAvailability,
)
from stockledger.services import audit_service
from stockledger.services.audit_service import AuditContext
from stockledger.services.errors import (
    ConcurrencyConflictError,
    DuplicateKeyError,
    InsufficientStockError,
    InvalidArgumentError,
    LedgerError,
    NotFoundError,
    StorageFailureError,
)


logger = logging.getLogger("stockledger.ledger")

UNEXPECTED_OUTCOME = "UNEXPECTED_ERROR"

# ADJUSTMENT siempre suma: no existe una correccion a la baja por esta via.
_DELTA_SIGN: dict[TransactionType, int] = {
    TransactionType.STOCK_IN: 1,
    TransactionType.RETURN: 1,
    TransactionType.ADJUSTMENT: 1,
    TransactionType.STOCK_OUT: -1,
    TransactionType.DAMAGE: -1,
    TransactionType.TRANSFER: -1,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _log_event(event: str, **fields) -> None:
    logger.info(json.dumps({"event": event, **fields}, ensure_ascii=False, default=str))


def derive_status(quantity: int, reorder_level: int, current: StockStatus | None) -> StockStatus:
    """Regla de estado, por prioridad: agotado, bajo minimo, disponible.

    DISCONTINUED se mantiene mientras haya stock por encima del minimo.
    """
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= reorder_level:
        return StockStatus.LOW_STOCK
    if current == StockStatus.DISCONTINUED:
        return StockStatus.DISCONTINUED
    return StockStatus.AVAILABLE


def signed_delta(transaction_type: TransactionType, quantity: int) -> int:
    return _DELTA_SIGN[transaction_type] * quantity


def is_stock_out(transaction_type: TransactionType) -> bool:
    return _DELTA_SIGN[transaction_type] < 0


@contextmanager
def _unit_of_work(
    db: Session,
    operation: str,
    *,
    read_only: bool = False,
    sku: str | None = None,
) -> Iterator[None]:
    """Todas las escrituras de una operacion se confirman juntas o ninguna."""
    try:
        try:
            yield
            if not read_only:
                db.commit()
        except LedgerError:
            db.rollback()
            raise
        except IntegrityError as exc:
            db.rollback()
            if sku is not None:
                raise DuplicateKeyError(f"Ya existe un producto con SKU {sku}") from exc
            logger.exception(json.dumps({"event": "storage_failure", "operation": operation}))
            raise StorageFailureError("Violacion de integridad en el almacenamiento") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception(json.dumps({"event": "storage_failure", "operation": operation}))
            raise StorageFailureError("Almacenamiento no disponible") from exc
        except Exception:
            db.rollback()
            raise
    except LedgerError as exc:
        metrics_registry.observe_ledger(operation, exc.code)
        raise
    except Exception:
        metrics_registry.observe_ledger(operation, UNEXPECTED_OUTCOME)
        raise
    metrics_registry.observe_ledger(operation, "OK")


def _get_stock_or_fail(db: Session, stock_id: int) -> ProductStock:
    stock = product_stock_repo.get(db, stock_id)
    if not stock:
        raise NotFoundError(f"Stock de producto con ID {stock_id} no encontrado")
    return stock


def _check_expected_version(before: StockSnapshot, expected_version: int | None) -> None:
    if expected_version is not None and expected_version != before.version:
        raise ConcurrencyConflictError(
            f"El stock {before.id} esta en la version {before.version}, no en la {expected_version}",
            expected_version=expected_version,
        )


def create_stock(
    db: Session,
    payload: ProductStockRequest,
    *,
    context: AuditContext | None = None,
) -> ProductStock:
    with _unit_of_work(db, "create_stock", sku=payload.sku):
        if product_stock_repo.exists_by_sku(db, payload.sku):
            raise DuplicateKeyError(f"Ya existe un producto con SKU {payload.sku}")

        status = derive_status(
            payload.quantity,
            payload.reorder_level,
            payload.status or StockStatus.AVAILABLE,
        )
        stock = product_stock_repo.create_stock(
            db,
            sku=payload.sku,
            product_name=payload.product_name,
            quantity=payload.quantity,
            reorder_level=payload.reorder_level,
            unit_price=payload.unit_price,
            location=payload.location,
            status=status,
            commit=False,
        )
        audit_service.log_action(
            db,
            entity_id=stock.id,
            action=AuditAction.CREATE,
            old=None,
            new=audit_service.snapshot(stock),
            timestamp=_utcnow(),
            context=context,
        )

    _log_event("stock_created", stock_id=stock.id, sku=stock.sku, status=stock.status.value)
    return stock


def get_stock(db: Session, stock_id: int) -> ProductStock:
    with _unit_of_work(db, "get_stock", read_only=True):
        return _get_stock_or_fail(db, stock_id)


def get_stock_by_sku(db: Session, sku: str) -> ProductStock:
    with _unit_of_work(db, "get_stock_by_sku", read_only=True):
        stock = product_stock_repo.get_by_sku(db, sku)
        if not stock:
            raise NotFoundError(f"Producto con SKU {sku} no encontrado")
        return stock


def list_stocks(db: Session) -> Iterable[ProductStock]:
    with _unit_of_work(db, "list_stocks", read_only=True):
        return product_stock_repo.list_stocks(db)


def list_low_stock(db: Session) -> Iterable[ProductStock]:
    with _unit_of_work(db, "list_low_stock", read_only=True):
        return product_stock_repo.list_low_stock(db)


def list_damaged_stock(db: Session) -> Iterable[ProductStock]:
    with _unit_of_work(db, "list_damaged_stock", read_only=True):
        return product_stock_repo.list_damaged(db)


def update_stock(
    db: Session,
    stock_id: int,
    payload: ProductStockRequest,
    *,
    expected_version: int | None = None,
    context: AuditContext | None = None,
) -> ProductStock:
    with _unit_of_work(db, "update_stock", sku=payload.sku):
        stock = _get_stock_or_fail(db, stock_id)
        before = audit_service.snapshot(stock)
        _check_expected_version(before, expected_version)

        if payload.sku != before.sku and product_stock_repo.exists_by_sku(db, payload.sku, exclude_id=stock_id):
            raise DuplicateKeyError(f"Ya existe un producto con SKU {payload.sku}")

        requested_status = payload.status if payload.status is not None else before.status
        stock = product_stock_repo.compare_and_swap(
            db,
            stock,
            expected_version=before.version,
            values={
                "sku": payload.sku,
                "product_name": payload.product_name,
                "quantity": payload.quantity,
                "reorder_level": payload.reorder_level,
                "unit_price": payload.unit_price,
                "location": payload.location,
                "status": derive_status(payload.quantity, payload.reorder_level, requested_status),
                "updated_at": _utcnow(),
            },
            commit=False,
        )
        audit_service.log_action(
            db,
            entity_id=stock_id,
            action=AuditAction.UPDATE,
            old=before,
            new=audit_service.snapshot(stock),
            timestamp=_utcnow(),
            context=context,
        )

    _log_event("stock_updated", stock_id=stock_id, version=before.version + 1)
    return stock


def adjust_stock(
    db: Session,
    stock_id: int,
    *,
    transaction_type: TransactionType,
    quantity: int,
    reason: str | None = None,
    reference: str | None = None,
    expected_version: int | None = None,
    context: AuditContext | None = None,
) -> StockTransaction:
    with _unit_of_work(db, "adjust_stock"):
        if quantity is None or quantity <= 0:
            raise InvalidArgumentError("La cantidad debe ser mayor que cero")

        stock = _get_stock_or_fail(db, stock_id)
        before = audit_service.snapshot(stock)
        _check_expected_version(before, expected_version)

        if is_stock_out(transaction_type) and before.quantity < quantity:
            raise InsufficientStockError(
                f"Stock insuficiente. Disponible: {before.quantity}, solicitado: {quantity}",
                available=before.quantity,
                requested=quantity,
            )

        quantity_after = before.quantity + signed_delta(transaction_type, quantity)
        now = _utcnow()
        stock = product_stock_repo.compare_and_swap(
            db,
            stock,
            expected_version=before.version,
            values={
                "quantity": quantity_after,
                "status": derive_status(quantity_after, before.reorder_level, before.status),
                "updated_at": now,
            },
            commit=False,
        )
        transaction = stock_transaction_repo.create_transaction(
            db,
            product_stock_id=stock_id,
            transaction_type=transaction_type,
            quantity=quantity,
            quantity_before=before.quantity,
            quantity_after=quantity_after,
            stock_version=stock.version,
            reason=reason,
            reference=reference,
            transaction_date=now,
            commit=False,
        )
        audit_service.log_action(
            db,
            entity_id=stock_id,
            action=AuditAction.STOCK_ADJUSTMENT,
            old=before,
            new=audit_service.snapshot(stock),
            timestamp=now,
            context=context,
        )

    _log_event(
        "stock_adjusted",
        stock_id=stock_id,
        transaction_type=transaction_type.value,
        quantity=quantity,
        quantity_before=before.quantity,
        quantity_after=quantity_after,
    )
    return transaction


def record_damaged_goods(
    db: Session,
    stock_id: int,
    *,
    damaged_quantity: int,
    reason: str | None = None,
    reference: str | None = None,
    expected_version: int | None = None,
    context: AuditContext | None = None,
) -> StockTransaction:
    with _unit_of_work(db, "record_damaged_goods"):
        if damaged_quantity is None or damaged_quantity < 1:
            raise InvalidArgumentError("La cantidad danada debe ser al menos 1")

        stock = _get_stock_or_fail(db, stock_id)
        before = audit_service.snapshot(stock)
        _check_expected_version(before, expected_version)

        if before.quantity < damaged_quantity:
            raise InsufficientStockError(
                f"No se puede registrar la merma. Disponible: {before.quantity}, danado: {damaged_quantity}",
                available=before.quantity,
                requested=damaged_quantity,
            )

        # El stock danado sale del utilizable pero se sigue contabilizando aparte
        quantity_after = before.quantity - damaged_quantity
        now = _utcnow()
        stock = product_stock_repo.compare_and_swap(
            db,
            stock,
            expected_version=before.version,
            values={
                "quantity": quantity_after,
                "damaged_quantity": before.damaged_quantity + damaged_quantity,
                "status": derive_status(quantity_after, before.reorder_level, before.status),
                "updated_at": now,
            },
            commit=False,
        )
        transaction = stock_transaction_repo.create_transaction(
            db,
            product_stock_id=stock_id,
            transaction_type=TransactionType.DAMAGE,
            quantity=damaged_quantity,
            quantity_before=before.quantity,
            quantity_after=quantity_after,
            stock_version=stock.version,
            reason=reason,
            reference=reference,
            transaction_date=now,
            commit=False,
        )
        audit_service.log_action(
            db,
            entity_id=stock_id,
            action=AuditAction.DAMAGED_GOODS,
            old=before,
            new=audit_service.snapshot(stock),
            timestamp=now,
            context=context,
        )

    _log_event(
        "damaged_goods_recorded",
        stock_id=stock_id,
        damaged_quantity=damaged_quantity,
        quantity_after=quantity_after,
    )
    return transaction


def delete_stock(
    db: Session,
    stock_id: int,
    *,
    expected_version: int | None = None,
    context: AuditContext | None = None,
) -> None:
    # Transacciones y auditoria no se borran: quedan referenciando el id antiguo
    with _unit_of_work(db, "delete_stock"):
        stock = _get_stock_or_fail(db, stock_id)
        before = audit_service.snapshot(stock)
        _check_expected_version(before, expected_version)

        audit_service.log_action(
            db,
            entity_id=stock_id,
            action=AuditAction.DELETE,
            old=before,
            new=None,
            timestamp=_utcnow(),
            context=context,
        )
        product_stock_repo.delete_if_version(db, stock, expected_version=before.version, commit=False)

    _log_event("stock_deleted", stock_id=stock_id, sku=before.sku)


def list_transactions_for_product(db: Session, stock_id: int) -> Iterable[StockTransaction]:
    with _unit_of_work(db, "list_transactions_for_product", read_only=True):
        _get_stock_or_fail(db, stock_id)
        return stock_transaction_repo.list_for_product(db, stock_id)


def list_transactions(
    db: Session,
    *,
    product_stock_id: int | None = None,
    transaction_type: TransactionType | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[Iterable[StockTransaction], int]:
    """Consulta historica: no comprueba que el producto siga existiendo."""
    with _unit_of_work(db, "list_transactions", read_only=True):
        if date_from and date_to and date_from > date_to:
            raise InvalidArgumentError("date_from no puede ser mayor que date_to")
        return stock_transaction_repo.list_transactions(
            db,
            product_stock_id=product_stock_id,
            transaction_type=transaction_type,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )


def list_audit_logs_for_product(db: Session, stock_id: int) -> Iterable[AuditLog]:
    with _unit_of_work(db, "list_audit_logs_for_product", read_only=True):
        return audit_log_repo.list_for_entity(
            db,
            entity_type=EntityType.PRODUCT_STOCK.value,
            entity_id=stock_id,
        )


def list_all_audit_logs(db: Session) -> Iterable[AuditLog]:
    with _unit_of_work(db, "list_all_audit_logs", read_only=True):
        return audit_log_repo.list_all(db)


def list_audit_logs(
    db: Session,
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    action: AuditAction | None = None,
    performed_by: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    order_dir: str = "desc",
    limit: int = 50,
    offset: int = 0,
) -> Tuple[Iterable[AuditLog], int]:
    with _unit_of_work(db, "list_audit_logs", read_only=True):
        if date_from and date_to and date_from > date_to:
            raise InvalidArgumentError("date_from no puede ser mayor que date_to")
        if order_dir not in {"asc", "desc"}:
            raise InvalidArgumentError("order_dir debe ser 'asc' o 'desc'")
        return audit_log_repo.list_logs(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            performed_by=performed_by,
            date_from=date_from,
            date_to=date_to,
            order_dir=order_dir,
            limit=limit,
            offset=offset,
        )


def _availability(stock_id: int, stock: ProductStock | None, quantity: int) -> StockAvailability:
    current = stock.quantity if stock is not None else 0
    return StockAvailability(
        product_stock_id=stock_id,
        sku=stock.sku if stock is not None else None,
        available=stock is not None and current >= quantity,
        current_quantity=current,
        requested=quantity,
        shortage=max(quantity - current, 0),
    )


def check_availability(db: Session, stock_id: int, quantity: int) -> StockAvailability:
    with _unit_of_work(db, "check_availability", read_only=True):
        if quantity is None or quantity <= 0:
            raise InvalidArgumentError("La cantidad debe ser mayor que cero")
        stock = _get_stock_or_fail(db, stock_id)
        return _availability(stock_id, stock, quantity)


def check_availability_bulk(db: Session, items: Iterable[AvailabilityCheckItem]) -> BulkAvailability:
    """Comprueba varias lineas de pedido de una vez.

    Un producto inexistente no aborta la consulta: se informa como no disponible.
    """
    with _unit_of_work(db, "check_availability_bulk", read_only=True):
        items = list(items)
        if not items:
            raise InvalidArgumentError("Debe indicarse al menos una linea")
        results = []
        for item in items:
            if item.quantity is None or item.quantity <= 0:
                raise InvalidArgumentError("La cantidad debe ser mayor que cero")
            stock = product_stock_repo.get(db, item.product_stock_id)
            results.append(_availability(item.product_stock_id, stock, item.quantity))

        unavailable = [result for result in results if not result.available]
        return BulkAvailability(
            all_available=not unavailable,
            items=results,
            unavailable_items=unavailable,
        )


def suggest_reorder_quantity(quantity: int, reorder_level: int) -> int:
    target = reorder_level * settings.reorder_target_multiplier
    return max(target - quantity, 1)


def list_reorder_suggestions(db: Session) -> list[ReorderSuggestion]:
    with _unit_of_work(db, "list_reorder_suggestions", read_only=True):
        candidates = product_stock_repo.list_reorder_candidates(db, limit=settings.reorder_suggestions_limit)
        suggestions = [
            ReorderSuggestion(
                product_stock_id=stock.id,
                sku=stock.sku,
                product_name=stock.product_name,
                status=stock.status,
                current_quantity=stock.quantity,
                reorder_level=stock.reorder_level,
                suggested_quantity=suggest_reorder_quantity(stock.quantity, stock.reorder_level),
                location=stock.location,
            )
            for stock in candidates
        ]

    _log_event("reorder_suggestions_listed", count=len(suggestions))
    return suggestions


def summarize_inventory(db: Session) -> InventorySummary:
    with _unit_of_work(db, "summarize_inventory", read_only=True):
        total_products, total_units, total_damaged, value = product_stock_repo.totals(db)
        by_status = {status: 0 for status in StockStatus}
        by_status.update(product_stock_repo.count_by_status(db))
        return InventorySummary(
            total_products=total_products,
            total_units=total_units,
            total_damaged_units=total_damaged,
            inventory_value=value,
            by_status=by_status,
        )
