# app/services/job_service.py
import os
from datetime import datetime
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple
from uuid import uuid4

import pandas as pd
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.utils import secure_filename

from app.db.enums import AuditEntityType, JobStatus
from app.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.logger import get_logger
from app.models.customer import Customer
from app.models.job import Job
from app.models.user import User
from app.services.audit_log_service import AuditLogService
from app.services.events import Actor, JobCreated, JobDeleted, JobUpdated
from app.services.notification_service import detect_job_changes
from app.services.permissions import can_modify, has_permission

logger = get_logger(__name__)


# ======================================================
# Job lifecycle: phase-entry timestamps
# ======================================================

PHASE_TIMESTAMP_FIELDS: Mapping[JobStatus, str] = MappingProxyType({
    JobStatus.Estimation: "estimate_date",
    JobStatus.Drafting: "draft_start_date",
    JobStatus.InProduction: "production_start_date",
    JobStatus.Delivered: "delivery_date",
})


def stamp_phase_timestamp(job: Job, status: JobStatus, now: datetime) -> Optional[str]:
    '''
    Stamp the phase-entry timestamp for ``status`` if the job has not
    reached that phase before. Any status may follow any other.

    :return: name of the stamped field, or None when nothing changed
    '''
    field = PHASE_TIMESTAMP_FIELDS.get(status)
    if field is None or getattr(job, field) is not None:
        return None
    setattr(job, field, now)
    return field


# ======================================================
# Quote attachments
# ======================================================

class QuoteStorage:
    """Stores quote PDFs under ``<upload_folder>/quotes`` and returns their public URL."""

    def __init__(self, upload_folder: str, url_prefix: str = "/uploads/quotes"):
        self.directory = os.path.join(upload_folder, "quotes")
        self.url_prefix = url_prefix

    def save(self, file_storage, job_number: str) -> str:
        os.makedirs(self.directory, exist_ok=True)
        timestamp = int(datetime.now().timestamp() * 1000)
        filename = secure_filename(f"{job_number}-{timestamp}.pdf")
        file_storage.save(os.path.join(self.directory, filename))
        return f"{self.url_prefix}/{filename}"


PERSONNEL_FIELDS = ("estimator_id", "drafter_id", "project_manager_id")
# columns that cannot be cleared through an update
REQUIRED_FIELDS = ("job_name", "job_number", "customer_id", "status", "priority")
AUDITED_FIELDS = (
    "job_name", "job_number", "customer_id", "status", "priority",
    "estimator_id", "drafter_id", "project_manager_id",
    "quoted_amount", "quote_pdf_url", "notes", "tags", "estimate_due_date",
)


def actor_of(user: User) -> Actor:
    return Actor(id=user.id, name=user.name, role=user.role.value)


class JobService:
    """
    Job CRUD and the job lifecycle.

    Mutations are flushed, never committed; the caller owns the transaction.
    Domain events for the notification fan-out are collected in
    ``pending_events`` and must be published only after commit.
    """

    def __init__(
        self,
        db: Session,
        audit_log_service: AuditLogService,
        quote_storage: Optional[QuoteStorage] = None,
    ):
        self.db = db
        self.audit_log_service = audit_log_service
        self.quote_storage = quote_storage
        self.pending_events: list = []

    # ======================================================
    # Read side
    # ======================================================

    def _filtered_query(
        self,
        *,
        status: Optional[JobStatus] = None,
        priority=None,
        job_number: Optional[str] = None,
        project_manager_id: Optional[str] = None,
        include_deleted: bool = False,
    ):
        query = self.db.query(Job)
        if not include_deleted:
            query = query.filter(Job.deleted_at.is_(None))
        if status is not None:
            query = query.filter(Job.status == status)
        if priority is not None:
            query = query.filter(Job.priority == priority)
        if job_number:
            query = query.filter(Job.job_number == job_number)
        if project_manager_id:
            query = query.filter(Job.project_manager_id == project_manager_id)
        return query

    def list_jobs(
        self,
        *,
        status: Optional[JobStatus] = None,
        priority=None,
        job_number: Optional[str] = None,
        project_manager_id: Optional[str] = None,
        limit: int = 50,
        skip: int = 0,
        include_deleted: bool = False,
    ) -> Tuple[List[Job], int]:
        '''
        Jobs newest first, soft-deleted ones excluded unless asked for.

        :return: (page of jobs, total matching)
        :rtype: Tuple[List[Job], int]
        '''
        query = self._filtered_query(
            status=status,
            priority=priority,
            job_number=job_number,
            project_manager_id=project_manager_id,
            include_deleted=include_deleted,
        )
        total = query.count()
        jobs = (
            query.order_by(Job.created_date.desc(), Job.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return jobs, total

    def get_job(self, job_id: str, *, include_deleted: bool = False) -> Job:
        job = self.db.get(Job, job_id)
        if job is None or (job.deleted_at is not None and not include_deleted):
            raise NotFound("Job not found")
        return job

    # ======================================================
    # Validation helpers
    # ======================================================

    def _live_customer(self, customer_id: str) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if customer is None or customer.deleted_at is not None:
            raise NotFound("Customer not found")
        return customer

    def _check_personnel(self, fields: dict) -> None:
        details = {}
        for field in PERSONNEL_FIELDS:
            user_id = fields.get(field)
            if user_id and self.db.get(User, user_id) is None:
                details[field] = f"User {user_id} does not exist"
        if details:
            raise ValidationFailed("Referenced user not found", details=details)

    def _check_job_number_free(self, job_number: str, *, exclude_id: Optional[str] = None) -> None:
        query = self.db.query(Job.id).filter(
            Job.job_number == job_number,
            Job.deleted_at.is_(None),
        )
        if exclude_id:
            query = query.filter(Job.id != exclude_id)
        if query.first() is not None:
            raise Conflict(f"Job number {job_number} already exists")

    def _flush_job(self, job_number: str) -> None:
        # the partial unique index settles races the pre-check cannot see
        try:
            with self.db.begin_nested():
                self.db.flush()
        except IntegrityError:
            raise Conflict(f"Job number {job_number} already exists") from None

    # ======================================================
    # Write side
    # ======================================================

    def create_job(self, *, data, actor: User, quote_file=None) -> Job:
        '''
        Create a job in the Estimation phase.

        :param data: validated JobCreateRequest
        :param actor: acting user, needs canCreateJobs
        :type actor: User
        :param quote_file: optional uploaded PDF (werkzeug FileStorage); a
            failure to store it is logged and the job is created without it
        :return: the new job, flushed
        :rtype: Job
        '''
        # 1. authorization
        if not has_permission(actor.role, "canCreateJobs"):
            raise Forbidden("You do not have permission to create jobs")

        fields = data.model_dump()

        # 2. references
        self._live_customer(fields["customer_id"])
        self._check_personnel(fields)
        self._check_job_number_free(fields["job_number"])

        # 3. attachment (best effort)
        quote_pdf_url = fields.get("quote_pdf_url")
        if quote_file is not None and self.quote_storage is not None:
            try:
                quote_pdf_url = self.quote_storage.save(quote_file, fields["job_number"])
            except Exception:
                logger.exception(f"Quote upload failed for job {fields['job_number']}, creating job without it")

        now = datetime.now()
        job = Job(
            id=str(uuid4()),
            job_number=fields["job_number"],
            job_name=fields["job_name"],
            customer_id=fields["customer_id"],
            status=JobStatus.Estimation,
            priority=fields["priority"],
            estimator_id=fields.get("estimator_id"),
            drafter_id=fields.get("drafter_id"),
            project_manager_id=fields.get("project_manager_id"),
            created_by=actor.id,
            created_date=now,
            quoted_amount=fields.get("quoted_amount"),
            quote_pdf_url=quote_pdf_url,
            notes=fields.get("notes"),
            tags=fields.get("tags") or [],
        )
        stamp_phase_timestamp(job, JobStatus.Estimation, now)

        self.db.add(job)
        self._flush_job(job.job_number)

        # 4. audit + events
        self.audit_log_service.record_create(
            entity_type=AuditEntityType.Job,
            entity_id=job.id,
            operator_id=actor.id,
        )
        self.pending_events.append(
            JobCreated(
                job_id=job.id,
                job_number=job.job_number,
                job_name=job.job_name,
                project_manager_id=job.project_manager_id,
                actor=actor_of(actor),
            )
        )
        logger.info(f"Job created: {job.job_number} (id={job.id})")
        return job

    def update_job(self, *, job_id: str, data, actor: User) -> Job:
        '''
        Full edit (PUT). Only fields present in the request are applied.

        :param job_id: target job
        :type job_id: str
        :param data: validated JobUpdateRequest
        :param actor: acting user; must be an Admin or the job's creator
        :type actor: User
        '''
        fields = data.model_dump(exclude_unset=True)
        if "estimate_due" in fields:
            fields["estimate_due_date"] = fields.pop("estimate_due")
        return self._apply_update(job_id, fields, actor)

    def patch_job(self, *, job_id: str, data, actor: User) -> Job:
        '''Quick edit (PATCH) of status, priority, notes and personnel.'''
        return self._apply_update(job_id, data.model_dump(exclude_unset=True), actor)

    def _apply_update(self, job_id: str, fields: dict, actor: User) -> Job:
        # 1. existence, then authorization
        job = self.get_job(job_id)
        if not can_modify(actor.role, None, job.created_by, actor.id):
            raise Forbidden("Only admins or the job creator can edit jobs")

        for field in REQUIRED_FIELDS:
            if field in fields and fields[field] is None:
                del fields[field]

        # 2. references
        self._check_personnel(fields)
        if "customer_id" in fields and fields["customer_id"] != job.customer_id:
            self._live_customer(fields["customer_id"])
        if "job_number" in fields and fields["job_number"] != job.job_number:
            self._check_job_number_free(fields["job_number"], exclude_id=job.id)

        # 3. change detection against the state before the write
        changes = detect_job_changes(job, fields)
        previous_pm_id = job.project_manager_id
        new_pm_id = fields.get("project_manager_id")

        # 4. apply + audit
        for field, value in fields.items():
            before = getattr(job, field)
            if before == value:
                continue
            setattr(job, field, value)
            if field in AUDITED_FIELDS:
                self.audit_log_service.record_update(
                    entity_type=AuditEntityType.Job,
                    entity_id=job.id,
                    changed_attribute=field,
                    before_value=before,
                    after_value=value,
                    operator_id=actor.id,
                )

        # 5. lifecycle
        if fields.get("status") is not None:
            stamped = stamp_phase_timestamp(job, fields["status"], datetime.now())
            if stamped:
                self.audit_log_service.record_system_update(
                    entity_type=AuditEntityType.Job,
                    entity_id=job.id,
                    changed_attribute=stamped,
                    before_value=None,
                    after_value=getattr(job, stamped),
                )

        self._flush_job(job.job_number)

        self.pending_events.append(
            JobUpdated(
                job_id=job.id,
                job_number=job.job_number,
                job_name=job.job_name,
                previous_pm_id=previous_pm_id,
                new_pm_id=new_pm_id,
                changes=tuple(changes),
                actor=actor_of(actor),
            )
        )
        logger.info(f"Job updated: {job.job_number} (id={job.id}) changes={changes}")
        return job

    def delete_job(self, *, job_id: str, actor: User) -> Job:
        '''Soft delete. The job number becomes free for a new job immediately.'''
        job = self.get_job(job_id)
        if not can_modify(actor.role, "canDeleteJobs", job.created_by, actor.id):
            raise Forbidden("Only admins or the job creator can delete jobs")

        job.deleted_at = datetime.now()
        self.db.flush()

        self.audit_log_service.record_delete(
            entity_type=AuditEntityType.Job,
            entity_id=job.id,
            operator_id=actor.id,
        )
        self.pending_events.append(
            JobDeleted(
                job_id=job.id,
                job_number=job.job_number,
                job_name=job.job_name,
                project_manager_id=job.project_manager_id,
                actor=actor_of(actor),
            )
        )
        logger.info(f"Job soft-deleted: {job.job_number} (id={job.id})")
        return job

    def purge_deleted_jobs(self) -> List[str]:
        '''
        Permanently remove soft-deleted jobs together with their estimates.

        :return: job numbers that were freed
        :rtype: List[str]
        '''
        jobs = self.db.query(Job).filter(Job.deleted_at.isnot(None)).all()
        purged = []
        for job in jobs:
            self.audit_log_service.record_purge(
                entity_type=AuditEntityType.Job,
                entity_id=job.id,
                before_value=job.job_number,
            )
            purged.append(job.job_number)
            self.db.delete(job)
        self.db.flush()
        if purged:
            logger.info(f"Purged {len(purged)} soft-deleted job(s): {', '.join(purged)}")
        return purged

    # ======================================================
    # Export
    # ======================================================

    def export_jobs_dataframe(self, *, actor: User, **filters) -> pd.DataFrame:
        if not has_permission(actor.role, "canExportData"):
            raise Forbidden("You do not have permission to export data")

        jobs = self._filtered_query(**filters).order_by(Job.created_date.desc()).all()
        rows = [_export_row(job) for job in jobs]
        return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


EXPORT_COLUMNS = [
    "Job Number",
    "Job Name",
    "Customer",
    "Status",
    "Priority",
    "Project Manager",
    "Estimator",
    "Drafter",
    "Quoted Amount",
    "Created",
    "Estimate Due",
    "Delivered",
]


def _name(user: Optional[User]) -> Optional[str]:
    return user.name if user is not None else None


def _export_row(job: Job) -> dict:
    return {
        "Job Number": job.job_number,
        "Job Name": job.job_name,
        "Customer": job.customer.company_name if job.customer else None,
        "Status": job.status.value,
        "Priority": job.priority.value,
        "Project Manager": _name(job.project_manager),
        "Estimator": _name(job.estimator),
        "Drafter": _name(job.drafter),
        "Quoted Amount": job.quoted_amount,
        "Created": job.created_date,
        "Estimate Due": job.estimate_due_date,
        "Delivered": job.delivery_date,
    }
