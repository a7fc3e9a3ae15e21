from datetime import datetime
from typing import Iterable, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stockledger.models.audit_log import AuditLog
from stockledger.models.enums import AuditAction


def create_log(
    db: Session,
    *,
    entity_type: str,
    entity_id: int,
    action: AuditAction,
    performed_by: str,
    timestamp: datetime,
    old_value: str | None = None,
    new_value: str | None = None,
    ip_address: str | None = None,
    commit: bool = True,
) -> AuditLog:
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        performed_by=performed_by,
        ip_address=ip_address,
        timestamp=timestamp,
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)
    else:
        db.flush()
    return entry


def list_for_entity(db: Session, *, entity_type: str, entity_id: int) -> Iterable[AuditLog]:
    stmt = (
        select(AuditLog)
        .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
    )
    return db.scalars(stmt).all()


def list_all(db: Session) -> Iterable[AuditLog]:
    return db.scalars(select(AuditLog).order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())).all()


def list_logs(
    db: Session,
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    action: AuditAction | None = None,
    performed_by: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    order_dir: str | None = "desc",
    limit: int = 50,
    offset: int = 0,
) -> Tuple[Iterable[AuditLog], int]:
    filters = []
    if entity_type is not None:
        filters.append(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        filters.append(AuditLog.entity_id == entity_id)
    if action is not None:
        filters.append(AuditLog.action == action)
    if performed_by is not None:
        filters.append(AuditLog.performed_by == performed_by)
    if date_from is not None:
        filters.append(AuditLog.timestamp >= date_from)
    if date_to is not None:
        filters.append(AuditLog.timestamp <= date_to)

    if order_dir == "asc":
        stmt = select(AuditLog).where(*filters).order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
    else:
        stmt = select(AuditLog).where(*filters).order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    items = db.scalars(stmt.offset(offset).limit(limit)).all()
    return items, total
