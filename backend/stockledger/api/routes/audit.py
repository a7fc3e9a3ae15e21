from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.db.deps import get_db
from stockledger.models.enums import AuditAction
from stockledger.schemas.audit_log import AuditLogListResponse, AuditLogResponse
from stockledger.services import ledger_service


router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


@router.get("", response_model=list[AuditLogResponse])
def list_all_audit_logs(db: Session = Depends(get_db)):
    return ledger_service.list_all_audit_logs(db)


@router.get("/search", response_model=AuditLogListResponse)
def search_audit_logs(
    db: Session = Depends(get_db),
    entity_type: str | None = Query(None, max_length=50),
    entity_id: int | None = Query(None),
    action: AuditAction | None = Query(None),
    performed_by: str | None = Query(None, max_length=100),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    order_dir: str = Query("desc"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    items, total = ledger_service.list_audit_logs(
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
    return AuditLogListResponse(items=items, total=total, limit=limit, offset=offset)
