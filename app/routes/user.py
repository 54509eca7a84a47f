# app/routes/user.py
from flask import Blueprint, current_app, request

from app.db.enums import UserRole
from app.db.session import get_session
from app.errors import Forbidden
from app.routes.common import arg_enum, ok, parse_body, require_login
from app.schemas.user import UserCreateRequest, UserDTO, UserUpdateRequest
from app.services.audit_log_service import AuditLogService
from app.services.permissions import has_permission
from app.services.user_service import UserService

user_bp = Blueprint('user', __name__, url_prefix='/users')


def _user_service(db) -> UserService:
    return UserService(db, AuditLogService(db), bcrypt_rounds=current_app.config['BCRYPT_ROUNDS'])


def require_user_admin(db):
    user = require_login(db)
    if not has_permission(user.role, 'canManageUsers'):
        raise Forbidden("You do not have permission to manage users")
    return user


@user_bp.route('', methods=['GET'])
def list_users():
    """Active users, optionally by role (used to fill PM / estimator pickers)."""
    db = get_session()
    try:
        user = require_login(db)
        include_inactive = (
            request.args.get('includeInactive') == 'true'
            and has_permission(user.role, 'canManageUsers')
        )
        users = _user_service(db).list_users(
            role=arg_enum('role', UserRole),
            active_only=not include_inactive,
        )
        return ok([UserDTO.from_orm_model(u).to_json() for u in users])
    finally:
        db.close()


@user_bp.route('', methods=['POST'])
def create_user():
    db = get_session()
    try:
        admin = require_user_admin(db)
        payload = parse_body(UserCreateRequest)

        user = _user_service(db).create_user(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            operator_id=admin.id,
        )
        db.commit()
        return ok(UserDTO.from_orm_model(user).to_json(), 201)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@user_bp.route('/<user_id>', methods=['GET'])
def get_user(user_id):
    db = get_session()
    try:
        require_login(db)
        user = _user_service(db).require_user(user_id)
        return ok(UserDTO.from_orm_model(user).to_json())
    finally:
        db.close()


@user_bp.route('/<user_id>', methods=['PUT'])
def update_user(user_id):
    db = get_session()
    try:
        admin = require_user_admin(db)
        payload = parse_body(UserUpdateRequest)

        user = _user_service(db).update_user(
            user_id=user_id,
            operator_id=admin.id,
            name=payload.name,
            email=payload.email,
            role=payload.role,
            is_active=payload.is_active,
            password=payload.password,
        )
        db.commit()
        return ok(UserDTO.from_orm_model(user).to_json())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
