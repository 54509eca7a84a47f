# app/models/user.py
from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    Enum,
    func,
)
from app.db.base import Base
from app.db.enums import UserRole
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime


class User(Base):
    """
    Staff member who signs in to the tracker.
    Users are never hard-deleted; they are deactivated.
    """

    __tablename__ = "users"

    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="User UUID")

    name :Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Display name",
    )

    email :Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Login email, stored lower-cased",
    )

    password_hash :Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash",
    )

    role :Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.Viewer,
        comment="Role, mutable only by an Admin",
    )

    is_active :Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, comment="Whether the user account is active")

    created_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Account creation timestamp",
    )
    updated_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Last update timestamp",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role.value}>"
