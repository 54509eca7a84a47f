# app/routes/common.py
"""Helpers shared by the JSON blueprints: session identity, body parsing, envelopes."""
from typing import Iterable, Type, TypeVar

from flask import current_app, jsonify, request, session
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.errors import Unauthorized, ValidationFailed
from app.models.user import User

M = TypeVar("M", bound=BaseModel)


def require_login(db: Session) -> User:
    """Return the signed-in user, or raise Unauthorized."""
    user_id = session.get("user_id")
    if not user_id:
        raise Unauthorized("Unauthorized")
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        session.clear()
        raise Unauthorized("Unauthorized")
    return user


def parse_body(model: Type[M]) -> M:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return model.model_validate(body)


def ok(data=None, status: int = 200, **extra):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def publish(events: Iterable) -> None:
    """Hand collected domain events to the notification dispatcher. Call after commit."""
    events = list(events)
    if events:
        current_app.extensions["notifications"].publish(events)


def arg_int(name: str, default: int, *, minimum: int = 0, maximum: int = None) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationFailed(f"Query parameter {name} must be an integer") from None
    value = max(value, minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value


def arg_enum(name: str, enum_cls, *, wildcard: str = "all"):
    raw = (request.args.get(name) or "").strip()
    if not raw or raw == wildcard:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        raise ValidationFailed(
            f"Invalid {name}",
            details={name: f"must be one of {[m.value for m in enum_cls]}"},
        ) from None
