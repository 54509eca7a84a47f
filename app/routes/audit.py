# app/routes/audit.py
from flask import Blueprint, request

from app.db.enums import AuditAction, AuditEntityType
from app.db.session import get_session
from app.errors import Forbidden
from app.routes.common import arg_enum, arg_int, ok, require_login
from app.schemas.audit_log import AuditLogDTO
from app.services.audit_log_service import AuditLogService
from app.services.permissions import has_permission

audit_bp = Blueprint('audit', __name__, url_prefix='/audit-logs')

PER_PAGE = 50


@audit_bp.route('', methods=['GET'])
def list_logs():
    """Audit trail, newest first, 50 per page."""
    db = get_session()
    try:
        user = require_login(db)
        if not has_permission(user.role, 'canManageUsers'):
            raise Forbidden("You do not have permission to view audit logs")

        page = arg_int('page', 1, minimum=1)
        logs, total = AuditLogService(db).list_logs(
            entity_type=arg_enum('entityType', AuditEntityType),
            entity_id=(request.args.get('entityId') or '').strip() or None,
            operator_id=(request.args.get('operatorId') or '').strip() or None,
            action=arg_enum('action', AuditAction),
            page=page,
            per_page=PER_PAGE,
        )
        return ok(
            [AuditLogDTO.from_orm_model(log).to_json() for log in logs],
            pagination={
                'total': total,
                'page': page,
                'perPage': PER_PAGE,
                'pages': (total + PER_PAGE - 1) // PER_PAGE,
            },
        )
    finally:
        db.close()
