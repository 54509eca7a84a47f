# app/routes/auth.py
from flask import Blueprint, current_app, session

from app.db.session import get_session
from app.logger import get_logger
from app.routes.common import ok, parse_body, require_login
from app.schemas.user import LoginRequest, UserDTO
from app.services.permissions import capabilities_of
from app.services.user_service import UserService

logger = get_logger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _me(user) -> dict:
    data = UserDTO.from_orm_model(user).to_json()
    data["permissions"] = capabilities_of(user.role).to_dict()
    return data


@auth_bp.route('/login', methods=['POST'])
def login():
    """Email + password sign-in; identity is kept in the server-side session."""
    payload = parse_body(LoginRequest)

    db = get_session()
    try:
        user_service = UserService(db, bcrypt_rounds=current_app.config['BCRYPT_ROUNDS'])
        user = user_service.authenticate(email=payload.email, password=payload.password)

        session.clear()
        session['user_id'] = user.id
        session['user_role'] = user.role.value
        data = _me(user)
    finally:
        db.close()

    logger.info(f"User signed in: {data['email']}")
    return ok(data)


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return ok(message="Signed out")


@auth_bp.route('/me', methods=['GET'])
def me():
    db = get_session()
    try:
        user = require_login(db)
        return ok(_me(user))
    finally:
        db.close()
