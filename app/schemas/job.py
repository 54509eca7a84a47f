# app/schemas/job.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.db.enums import JobPriority, JobStatus
from app.models.job import Job
from app.schemas.base import BaseDTO, RequestModel
from app.schemas.customer import CustomerRefDTO
from app.schemas.user import UserRefDTO


class JobCreateRequest(RequestModel):
    job_name: str = Field(min_length=1, max_length=200)
    job_number: str = Field(min_length=1, max_length=100)
    customer_id: str = Field(min_length=1)
    priority: JobPriority = JobPriority.medium
    quoted_amount: Optional[float] = Field(default=None, ge=0)
    quote_pdf_url: Optional[str] = None
    estimator_id: Optional[str] = None
    drafter_id: Optional[str] = None
    project_manager_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    tags: Optional[List[str]] = None


class JobUpdateRequest(RequestModel):
    """Full edit (PUT). Only keys present in the body are applied."""
    job_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    job_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    customer_id: Optional[str] = Field(default=None, min_length=1)
    status: Optional[JobStatus] = None
    priority: Optional[JobPriority] = None
    quoted_amount: Optional[float] = Field(default=None, ge=0)
    quote_pdf_url: Optional[str] = None
    estimator_id: Optional[str] = None
    drafter_id: Optional[str] = None
    project_manager_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    tags: Optional[List[str]] = None
    estimate_due: Optional[datetime] = None


class JobPatchRequest(RequestModel):
    """Quick edit (PATCH): status, priority, notes and personnel only."""
    status: Optional[JobStatus] = None
    priority: Optional[JobPriority] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    estimator_id: Optional[str] = None
    drafter_id: Optional[str] = None
    project_manager_id: Optional[str] = None


class JobRefDTO(BaseDTO):
    id: str
    job_number: str
    job_name: str
    status: str

    @classmethod
    def from_orm_model(cls, job: Optional[Job]) -> Optional["JobRefDTO"]:
        if job is None:
            return None
        return cls(id=job.id, job_number=job.job_number, job_name=job.job_name, status=job.status.value)


class JobDTO(BaseDTO):
    id: str
    job_number: str
    job_name: str
    customer_id: str
    customer: Optional[CustomerRefDTO] = None
    status: str
    priority: str

    estimator_id: Optional[str] = None
    drafter_id: Optional[str] = None
    project_manager_id: Optional[str] = None
    created_by: Optional[str] = None
    estimator: Optional[UserRefDTO] = None
    drafter: Optional[UserRefDTO] = None
    project_manager: Optional[UserRefDTO] = None
    creator: Optional[UserRefDTO] = None

    created_date: Optional[datetime] = None
    estimate_date: Optional[datetime] = None
    estimate_due_date: Optional[datetime] = None
    draft_start_date: Optional[datetime] = None
    draft_completion_date: Optional[datetime] = None
    submission_date: Optional[datetime] = None
    acceptance_date: Optional[datetime] = None
    production_start_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None

    quoted_amount: Optional[float] = None
    quote_pdf_url: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = []
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, job: Job) -> "JobDTO":
        return cls(
            id=job.id,
            job_number=job.job_number,
            job_name=job.job_name,
            customer_id=job.customer_id,
            customer=CustomerRefDTO.from_orm_model(job.customer),
            status=job.status.value,
            priority=job.priority.value,
            estimator_id=job.estimator_id,
            drafter_id=job.drafter_id,
            project_manager_id=job.project_manager_id,
            created_by=job.created_by,
            estimator=UserRefDTO.from_orm_model(job.estimator),
            drafter=UserRefDTO.from_orm_model(job.drafter),
            project_manager=UserRefDTO.from_orm_model(job.project_manager),
            creator=UserRefDTO.from_orm_model(job.creator),
            created_date=job.created_date,
            estimate_date=job.estimate_date,
            estimate_due_date=job.estimate_due_date,
            draft_start_date=job.draft_start_date,
            draft_completion_date=job.draft_completion_date,
            submission_date=job.submission_date,
            acceptance_date=job.acceptance_date,
            production_start_date=job.production_start_date,
            delivery_date=job.delivery_date,
            quoted_amount=job.quoted_amount,
            quote_pdf_url=job.quote_pdf_url,
            notes=job.notes,
            tags=job.tags or [],
            deleted_at=job.deleted_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
