# app/models/notification.py
from sqlalchemy import String, Text, Boolean, DateTime, Enum, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.db.enums import NotificationType
from datetime import datetime
from typing import Optional


class Notification(Base):
    """
    Advisory message for one user.
    Written only by NotificationService; recipients may flip `read` or delete it.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
        Index("ix_notifications_user_read", "user_id", "read"),
    )

    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Notification UUID")
    user_id :Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, comment="Recipient")
    type :Mapped[NotificationType] = mapped_column(Enum(NotificationType, name="notification_type"), nullable=False)
    title :Mapped[str] = mapped_column(String(200), nullable=False)
    message :Mapped[str] = mapped_column(Text, nullable=False)

    job_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    estimate_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("estimates.id", ondelete="SET NULL"), nullable=True)

    read :Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at :Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, server_default=func.now(), nullable=False)

    job = relationship("Job", lazy="joined")

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user={self.user_id} type={self.type.value} read={self.read}>"
