from datetime import datetime

from pydantic import BaseModel, ConfigDict

from stockledger.models.enums import AuditAction


class AuditLogResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    action: AuditAction
    old_value: str | None
    new_value: str | None
    performed_by: str
    ip_address: str | None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    items: list[AuditLogResponse]
    total: int
    limit: int
    offset: int
