# app/services/audit_log_service.py
from typing import Any, List, Optional, Tuple, Union
from uuid import uuid4
from datetime import datetime, date
from decimal import Decimal
import enum

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog
from app.db.enums import AuditEntityType, AuditAction


SYSTEM_OPERATOR = "SYSTEM"


class AuditLogService:
    """
    Centralized service for recording all auditable actions.
    This service is the ONLY place where AuditLog records can be created.
    Rows are added to the caller's session and commit with the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def serialize_audit_value(self, value) -> Any:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, enum.Enum):
            return value.value
        if isinstance(value, (int, float, str, bool)):
            return value
        if isinstance(value, (list, tuple)):
            return [self.serialize_audit_value(v) for v in value]
        return str(value)

    def _normalize_entity_type(self, entity_type: Union[str, AuditEntityType]) -> AuditEntityType:
        """
        Accepts the enum, its value ("job") or its name ("Job").
        """
        if isinstance(entity_type, AuditEntityType):
            return entity_type

        entity_type_str = str(entity_type).strip().lower()
        for enum_member in AuditEntityType:
            if entity_type_str in (enum_member.value, enum_member.name.lower()):
                return enum_member

        raise ValueError(f"Unknown entity_type: {entity_type}. Valid values: {[e.value for e in AuditEntityType]}")

    def _add(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        action: AuditAction,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        operator_id: str,
    ) -> AuditLog:
        log = AuditLog(
            id=str(uuid4()),
            entity_type=self._normalize_entity_type(entity_type),
            entity_id=entity_id,
            action=action,
            changed_attribute=changed_attribute,
            before_value=self.serialize_audit_value(before_value),
            after_value=self.serialize_audit_value(after_value),
            operator_id=operator_id,
            timestamp=datetime.now(),
        )
        self.db.add(log)
        return log

    def record_create(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        operator_id: str,
    ) -> None:
        '''
        Record the creation of a user, customer, job or estimate.

        :param entity_type: AuditEntityType or its string form
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: id of the created entity
        :type entity_id: str
        :param operator_id: id of the acting user
        :type operator_id: str
        '''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.create,
            changed_attribute="__all__",
            before_value=None,
            after_value=None,
            operator_id=operator_id,
        )

    def record_update(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        operator_id: str,
    ) -> None:
        '''
        Record one changed attribute. Call once per attribute.

        :param entity_type: AuditEntityType or its string form
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: id of the updated entity
        :type entity_id: str
        :param changed_attribute: attribute name
        :type changed_attribute: str
        :param before_value: value before the change
        :type before_value: Any
        :param after_value: value after the change
        :type after_value: Any
        :param operator_id: id of the acting user
        :type operator_id: str
        '''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.update,
            changed_attribute=changed_attribute,
            before_value=before_value,
            after_value=after_value,
            operator_id=operator_id,
        )

    def record_delete(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        operator_id: str,
    ) -> None:
        '''Soft delete (deleted_at set) or hard delete of an estimate.'''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.delete,
            changed_attribute="__all__",
            before_value=None,
            after_value=None,
            operator_id=operator_id,
        )

    def record_purge(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        before_value: Any = None,
    ) -> None:
        '''Permanent removal by the cleanup routine.'''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.purge,
            changed_attribute="__all__",
            before_value=before_value,
            after_value=None,
            operator_id=SYSTEM_OPERATOR,
        )

    def record_system_update(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
    ) -> None:
        '''
        Record a change made by the system rather than a user, such as a
        phase-entry timestamp stamped on a status change.

        :param entity_type: AuditEntityType or its string form
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: id of the entity
        :type entity_id: str
        :param changed_attribute: attribute name
        :type changed_attribute: str
        :param before_value: value before the change
        :type before_value: Any
        :param after_value: value after the change
        :type after_value: Any
        '''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.system,
            changed_attribute=changed_attribute,
            before_value=before_value,
            after_value=after_value,
            operator_id=SYSTEM_OPERATOR,
        )

    def list_logs(
        self,
        *,
        entity_type: Optional[Union[str, AuditEntityType]] = None,
        entity_id: Optional[str] = None,
        operator_id: Optional[str] = None,
        action: Optional[Union[str, AuditAction]] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[AuditLog], int]:
        query = self.db.query(AuditLog)
        if entity_type:
            query = query.filter(AuditLog.entity_type == self._normalize_entity_type(entity_type))
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id)
        if operator_id:
            query = query.filter(AuditLog.operator_id == operator_id)
        if action:
            query = query.filter(AuditLog.action == AuditAction(action))

        total = query.count()
        page = max(page, 1)
        logs = (
            query.order_by(AuditLog.timestamp.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return logs, total
