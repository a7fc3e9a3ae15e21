from fastapi import Header, HTTPException, Request, status

from stockledger.core.config import settings
from stockledger.core.observability import PERFORMED_BY_HEADER
from stockledger.services.audit_service import AuditContext


def get_audit_context(request: Request) -> AuditContext:
    performed_by = (request.headers.get(PERFORMED_BY_HEADER) or "").strip()
    client_ip = request.client.host if request.client else None
    return AuditContext(
        performed_by=performed_by[:100] or settings.audit_default_actor,
        ip_address=client_ip or settings.audit_default_ip,
    )


def get_expected_version(if_match: str | None = Header(None, alias="If-Match")) -> int | None:
    """Version esperada del registro (cabecera If-Match, con o sin comillas)."""
    if if_match is None:
        return None
    raw = if_match.strip()
    if raw.startswith("W/"):
        raw = raw[2:]
    raw = raw.strip('"')
    try:
        version = int(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="If-Match debe ser un numero de version")
    if version < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="If-Match debe ser un numero de version")
    return version
