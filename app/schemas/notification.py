# app/schemas/notification.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import StrictBool

from app.models.notification import Notification
from app.schemas.base import BaseDTO, RequestModel
from app.schemas.job import JobRefDTO


class NotificationReadRequest(RequestModel):
    notification_id: str
    read: StrictBool


class NotificationActionRequest(RequestModel):
    action: Literal["markAllRead"]


class NotificationDTO(BaseDTO):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    job_id: Optional[str] = None
    job: Optional[JobRefDTO] = None
    customer_id: Optional[str] = None
    estimate_id: Optional[str] = None
    read: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, notification: Notification) -> "NotificationDTO":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            job_id=notification.job_id,
            job=JobRefDTO.from_orm_model(notification.job),
            customer_id=notification.customer_id,
            estimate_id=notification.estimate_id,
            read=notification.read,
            created_at=notification.created_at,
        )
