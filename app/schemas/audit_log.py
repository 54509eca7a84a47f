# app/schemas/audit_log.py
from datetime import datetime
from typing import Any, Optional

from app.models.audit_log import AuditLog
from app.schemas.base import BaseDTO


class AuditLogDTO(BaseDTO):
    id: str
    entity_type: str
    entity_id: str
    action: str
    changed_attribute: str
    before_value: Optional[Any] = None
    after_value: Optional[Any] = None
    operator_id: str
    timestamp: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, log: AuditLog) -> "AuditLogDTO":
        return cls(
            id=log.id,
            entity_type=log.entity_type.value,
            entity_id=log.entity_id,
            action=log.action.value,
            changed_attribute=log.changed_attribute,
            before_value=log.before_value,
            after_value=log.after_value,
            operator_id=log.operator_id,
            timestamp=log.timestamp,
        )
