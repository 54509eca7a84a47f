# app/services/notification_service.py
"""
Notification fan-out and the per-user inbox.

Write services never create notifications themselves. They collect
events (see app.services.events) and the request handler publishes them
through ``NotificationDispatcher`` once its own transaction has committed.
Delivery is a best-effort side channel: a failing event is rolled back and
logged, and never reaches the caller of the triggering request.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy.orm import Session

from app.db.enums import NotificationType, UserRole
from app.errors import NotFound
from app.logger import get_logger
from app.models.job import Job
from app.models.notification import Notification
from app.models.user import User
from app.services.events import (
    CustomerCreated,
    EstimateAssigned,
    EstimateSubmitted,
    JobCreated,
    JobDeleted,
    JobUpdated,
)

logger = get_logger(__name__)

# request field -> label used in "Changes: ..." messages
TRACKED_JOB_FIELDS = (
    ("job_name", "job name"),
    ("status", "status"),
    ("priority", "priority"),
    ("quoted_amount", "quoted amount"),
    ("notes", "notes"),
)
PROJECT_MANAGER_LABEL = "project manager"


def detect_job_changes(job: Job, updates: dict) -> List[str]:
    """
    Labels of tracked fields whose new value differs from the job's current one.

    A falsy new value (None, "", 0) never counts as a change, so clearing
    notes or zeroing the quoted amount is applied but not announced.
    """
    changes = []
    for field, label in TRACKED_JOB_FIELDS:
        new_value = updates.get(field)
        if new_value and new_value != getattr(job, field):
            changes.append(label)
    return changes


def format_changes(changes: Sequence[str]) -> str:
    if not changes:
        return ""
    if len(changes) == 1:
        return changes[0]
    return ", ".join(changes[:-1]) + " and " + changes[-1]


class NotificationService:
    """
    Creates Notification rows for domain events and serves the inbox of
    their recipients. Only active users ever receive a notification.
    """

    def __init__(self, db: Session):
        self.db = db
        self._handlers: Dict[type, Callable] = {
            CustomerCreated: self._on_customer_created,
            JobCreated: self._on_job_created,
            JobUpdated: self._on_job_updated,
            JobDeleted: self._on_job_deleted,
            EstimateSubmitted: self._on_estimate_submitted,
            EstimateAssigned: self._on_estimate_assigned,
        }

    # ======================================================
    # Recipient lookups
    # ======================================================

    def active_users_with_role(self, role: UserRole) -> List[User]:
        return (
            self.db.query(User)
            .filter(User.role == role, User.is_active.is_(True))
            .order_by(User.created_at)
            .all()
        )

    def _active_user(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        user = self.db.get(User, user_id)
        if user is None or not user.is_active:
            logger.info(f"Skipping notification for missing or inactive user {user_id}")
            return None
        return user

    def _notify(
        self,
        user_id: str,
        *,
        type: NotificationType,
        title: str,
        message: str,
        job_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        estimate_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            id=str(uuid4()),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            job_id=job_id,
            customer_id=customer_id,
            estimate_id=estimate_id,
            read=False,
        )
        self.db.add(notification)
        return notification

    # ======================================================
    # Fan-out
    # ======================================================

    def handle(self, event) -> List[Notification]:
        '''
        Persist one notification per recipient of ``event``.
        The caller owns the transaction.

        :param event: one of the dataclasses in app.services.events
        :return: the notifications added to the session
        :rtype: List[Notification]
        '''
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"No notification rule for {type(event).__name__}")
        created = handler(event)
        self.db.flush()
        logger.info(f"{type(event).__name__}: {len(created)} notification(s) created")
        return created

    def _on_customer_created(self, event: CustomerCreated) -> List[Notification]:
        if event.actor.role != UserRole.ProjectManager.value:
            return []
        message = f'{event.actor.name} (Project Manager) added a new customer: "{event.company_name}"'
        return [
            self._notify(
                admin.id,
                type=NotificationType.customer_created,
                title="New Customer Added",
                message=message,
                customer_id=event.customer_id,
            )
            for admin in self.active_users_with_role(UserRole.Admin)
        ]

    def _assignment(self, pm_id: Optional[str], job_id: str, job_name: str, job_number: str) -> List[Notification]:
        pm = self._active_user(pm_id)
        if pm is None:
            return []
        return [
            self._notify(
                pm.id,
                type=NotificationType.job_assigned,
                title="New Job Assigned",
                message=f'You have been assigned to job "{job_name}" ({job_number})',
                job_id=job_id,
            )
        ]

    def _on_job_created(self, event: JobCreated) -> List[Notification]:
        return self._assignment(event.project_manager_id, event.job_id, event.job_name, event.job_number)

    def _on_job_updated(self, event: JobUpdated) -> List[Notification]:
        created = []

        # 1. the project manager: assignment wins over an update notice
        if event.pm_newly_assigned or event.pm_changed:
            created += self._assignment(event.new_pm_id, event.job_id, event.job_name, event.job_number)
        elif event.previous_pm_id and event.changes:
            pm = self._active_user(event.previous_pm_id)
            if pm is not None:
                created.append(
                    self._notify(
                        pm.id,
                        type=NotificationType.job_updated,
                        title="Job Updated",
                        message=(
                            f'Job "{event.job_name}" ({event.job_number}) has been updated. '
                            f"Changes: {format_changes(event.changes)}"
                        ),
                        job_id=event.job_id,
                    )
                )

        # 2. admins, unless an admin made the change
        if event.actor.role == UserRole.Admin.value:
            return created
        changes = list(event.changes)
        if event.pm_newly_assigned or event.pm_changed:
            changes.append(PROJECT_MANAGER_LABEL)
        if not changes:
            return created

        actor_name = event.actor.name or "A user"
        message = (
            f'{actor_name} ({event.actor.role}) updated job "{event.job_name}" ({event.job_number}). '
            f"Changes: {format_changes(changes)}"
        )
        for admin in self.active_users_with_role(UserRole.Admin):
            created.append(
                self._notify(
                    admin.id,
                    type=NotificationType.job_updated,
                    title="Job Updated",
                    message=message,
                    job_id=event.job_id,
                )
            )
        return created

    def _on_job_deleted(self, event: JobDeleted) -> List[Notification]:
        created = []
        actor_name = event.actor.name or "A user"

        pm = self._active_user(event.project_manager_id)
        if pm is not None:
            created.append(
                self._notify(
                    pm.id,
                    type=NotificationType.job_deleted,
                    title="Job Deleted",
                    message=(
                        f'Job "{event.job_name}" ({event.job_number}) has been deleted '
                        f"by {actor_name} ({event.actor.role})"
                    ),
                    job_id=event.job_id,
                )
            )

        if event.actor.role != UserRole.Admin.value:
            message = f'{actor_name} ({event.actor.role}) deleted job "{event.job_name}" ({event.job_number})'
            for admin in self.active_users_with_role(UserRole.Admin):
                created.append(
                    self._notify(
                        admin.id,
                        type=NotificationType.job_deleted,
                        title="Job Deleted",
                        message=message,
                        job_id=event.job_id,
                    )
                )
        return created

    def _on_estimate_submitted(self, event: EstimateSubmitted) -> List[Notification]:
        actor_name = event.actor.name or "An estimator"
        message = (
            f'{actor_name} submitted a quote for job "{event.job_name}" ({event.job_number}). '
            f"Quoted price: ${event.quoted_price:.2f}"
        )
        admin_title = "New Quote Submitted" if event.is_new else "Quote Submitted"

        created = []
        for role, title in ((UserRole.Admin, admin_title), (UserRole.ProjectManager, "New Quote Available")):
            for user in self.active_users_with_role(role):
                created.append(
                    self._notify(
                        user.id,
                        type=NotificationType.quote_created,
                        title=title,
                        message=message,
                        job_id=event.job_id,
                        estimate_id=event.estimate_id,
                    )
                )
        return created

    def _on_estimate_assigned(self, event: EstimateAssigned) -> List[Notification]:
        pm = self._active_user(event.assigned_pm_id)
        if pm is None:
            return []
        actor_name = event.actor.name or "An estimator"

        created = [
            self._notify(
                pm.id,
                type=NotificationType.quote_assigned,
                title="Quote Assigned to You",
                message=(
                    f'{actor_name} assigned you a quote for job "{event.job_name}" ({event.job_number}). '
                    f"Quoted price: ${event.quoted_price:.2f}"
                ),
                job_id=event.job_id,
                estimate_id=event.estimate_id,
            )
        ]
        message = f'{actor_name} assigned a quote to {pm.name} for job "{event.job_name}" ({event.job_number})'
        for admin in self.active_users_with_role(UserRole.Admin):
            created.append(
                self._notify(
                    admin.id,
                    type=NotificationType.quote_assigned,
                    title="Quote Assigned to PM",
                    message=message,
                    job_id=event.job_id,
                    estimate_id=event.estimate_id,
                )
            )
        return created

    # ======================================================
    # Inbox
    # ======================================================

    def _owned(self, user_id: str, notification_id: str) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if notification is None:
            raise NotFound("Notification not found")
        return notification

    def list_for_user(self, user_id: str, *, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    def unread_count(self, user_id: str) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .count()
        )

    def mark_read(self, user_id: str, notification_id: str, read: bool) -> Notification:
        notification = self._owned(user_id, notification_id)
        notification.read = read
        self.db.flush()
        return notification

    def mark_all_read(self, user_id: str) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .update({Notification.read: True}, synchronize_session=False)
        )

    def delete(self, user_id: str, notification_id: str) -> None:
        self.db.delete(self._owned(user_id, notification_id))
        self.db.flush()

    def clear_read(self, user_id: str) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(True))
            .delete(synchronize_session=False)
        )


class NotificationDispatcher:
    """
    Hands events to a small worker pool. Each event is delivered in its own
    session and transaction; failures are logged and dropped.

    With ``sync=True`` events are delivered inline, in order, before
    ``publish`` returns.
    """

    def __init__(self, database, *, sync: bool = False, max_workers: int = 2):
        self.database = database
        self.sync = sync
        self._executor: Optional[ThreadPoolExecutor] = None
        if not sync:
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix="notifications",
            )

    def publish(self, events: Iterable) -> List[Future]:
        futures = []
        for event in events:
            if self._executor is None:
                self.deliver(event)
            else:
                futures.append(self._executor.submit(self.deliver, event))
        return futures

    def deliver(self, event) -> bool:
        db = self.database.session()
        try:
            NotificationService(db).handle(event)
            db.commit()
            return True
        except Exception:
            db.rollback()
            logger.exception(f"Notification delivery failed for {type(event).__name__}")
            return False
        finally:
            db.close()

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
            logger.info("Notification dispatcher stopped")
