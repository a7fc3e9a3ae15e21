import json
import logging
from dataclasses import dataclass
from datetime import datetime

from pydantic_core import PydanticSerializationError
from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.models.audit_log import AuditLog
from stockledger.models.enums import AuditAction, EntityType
from stockledger.models.product_stock import ProductStock
from stockledger.repositories import audit_log_repo
from stockledger.schemas.product_stock import StockSnapshot


logger = logging.getLogger("stockledger.audit")


@dataclass(frozen=True)
class AuditContext:
    """Quien ejecuta la operacion y desde donde (lo aporta el adaptador)."""

    performed_by: str
    ip_address: str | None = None


def default_context() -> AuditContext:
    return AuditContext(
        performed_by=settings.audit_default_actor,
        ip_address=settings.audit_default_ip,
    )


def snapshot(stock: ProductStock) -> StockSnapshot:
    return StockSnapshot.model_validate(stock)


def serialize_snapshot(value: StockSnapshot | None, *, entity_id: int, action: AuditAction) -> str | None:
    # La auditoria es best-effort: un fallo al serializar no aborta la mutacion
    if value is None:
        return None
    try:
        return value.model_dump_json()
    except (PydanticSerializationError, TypeError, ValueError):
        logger.exception(
            json.dumps(
                {
                    "event": "audit_serialization_failed",
                    "entity_id": entity_id,
                    "action": action.value,
                },
                ensure_ascii=False,
            )
        )
        return None


def log_action(
    db: Session,
    *,
    entity_id: int,
    action: AuditAction,
    old: StockSnapshot | None,
    new: StockSnapshot | None,
    timestamp: datetime,
    context: AuditContext | None = None,
    entity_type: EntityType = EntityType.PRODUCT_STOCK,
) -> AuditLog:
    """Escribe la entrada dentro de la unidad de trabajo abierta (sin commit)."""
    context = context or default_context()
    entry = audit_log_repo.create_log(
        db,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action,
        old_value=serialize_snapshot(old, entity_id=entity_id, action=action),
        new_value=serialize_snapshot(new, entity_id=entity_id, action=action),
        performed_by=context.performed_by,
        ip_address=context.ip_address,
        timestamp=timestamp,
        commit=False,
    )
    logger.info(
        json.dumps(
            {
                "event": "audit_logged",
                "entity_type": entity_type.value,
                "entity_id": entity_id,
                "action": action.value,
                "performed_by": context.performed_by,
            },
            ensure_ascii=False,
        )
    )
    return entry
