# app/schemas/user.py
import re
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from app.db.enums import UserRole
from app.models.user import User
from app.schemas.base import BaseDTO, RequestModel, normalize_email


def check_password_policy(password: str) -> str:
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        raise ValueError("Password must contain at least one number")
    return password


class LoginRequest(RequestModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return normalize_email(value)


class UserCreateRequest(RequestModel):
    name: str = Field(min_length=2, max_length=100)
    email: str
    password: str
    role: UserRole

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return check_password_policy(value)


class UserUpdateRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def check_optional_password(cls, value: Optional[str]) -> Optional[str]:
        # blank means "leave unchanged"
        if value is None or not value.strip():
            return None
        return check_password_policy(value)


class UserRefDTO(BaseDTO):
    id: str
    name: str
    email: str

    @classmethod
    def from_orm_model(cls, user: Optional[User]) -> Optional["UserRefDTO"]:
        if user is None:
            return None
        return cls(id=user.id, name=user.name, email=user.email)


class UserDTO(BaseDTO):
    id: str
    name: str
    email: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, user: User) -> "UserDTO":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.value,
            is_active=user.is_active,
            created_at=user.created_at,
        )
