# app/models/customer.py
from app.db.base import Base
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column


class Customer(Base):
    __tablename__ = "customers"

    # =========
    # Identity
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Customer UUID")
    company_name :Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        comment="Company name (required)",
    )

    # =========
    # Contact
    # =========
    name :Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="Contact name")
    email :Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Contact email, lower-cased")
    phone :Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="Contact phone")
    street :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip :Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Free text, up to 2000 chars")

    # =========
    # Lifecycle
    # =========
    deleted_at :Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Soft-delete marker",
    )
    created_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def address(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
        }

    def __repr__(self) -> str:
        return f"<Customer id={self.id} company_name={self.company_name}>"
