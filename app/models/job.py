# app/models/job.py
from app.db.base import Base
from app.db.enums import JobStatus, JobPriority
from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, Text, DateTime, Enum, JSON, Numeric, ForeignKey, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class Job(Base):
    """
    A unit of manufacturing work moving through the production pipeline.
    job_number is unique among jobs that are not soft-deleted.
    """
    __tablename__ = "jobs"
    __table_args__ = (
        Index(
            "uq_jobs_job_number_live",
            "job_number",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("ix_jobs_customer_created", "customer_id", "created_date"),
    )

    # =========
    # 🔒 Identity
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Job UUID")
    job_number :Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Business key (immutable by convention)",
    )
    job_name :Mapped[str] = mapped_column(String(200), nullable=False)
    customer_id :Mapped[str] = mapped_column(
        String(36),
        ForeignKey("customers.id"),
        nullable=False,
        index=True,
    )

    # =========
    # 🔁 Pipeline
    # =========
    status :Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, name="job_status", values_callable=_enum_values),
        nullable=False,
        default=JobStatus.Estimation,
        index=True,
    )
    priority :Mapped[JobPriority] = mapped_column(
        Enum(JobPriority, name="job_priority", values_callable=_enum_values),
        nullable=False,
        default=JobPriority.medium,
        index=True,
    )

    # =========
    # 👷 Personnel
    # =========
    estimator_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    drafter_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    project_manager_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    created_by :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    # =========
    # ⏱ Phase-entry timestamps
    # =========
    created_date :Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=func.now())
    estimate_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    estimate_due_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    draft_start_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    draft_completion_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    submission_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    acceptance_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    production_start_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivery_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # =========
    # 💰 Financials & metadata
    # =========
    quoted_amount :Mapped[Optional[float]] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=True, default=0)
    quote_pdf_url :Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags :Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    deleted_at :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="Soft-delete marker")
    created_at :Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # =========
    # Relations (read side, loaded explicitly by the service)
    # =========
    customer = relationship("Customer", lazy="joined")
    estimator = relationship("User", foreign_keys=[estimator_id], lazy="joined")
    drafter = relationship("User", foreign_keys=[drafter_id], lazy="joined")
    project_manager = relationship("User", foreign_keys=[project_manager_id], lazy="joined")
    creator = relationship("User", foreign_keys=[created_by], lazy="joined")
    estimates = relationship(
        "Estimate",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Job id={self.id} job_number={self.job_number} status={self.status.value}>"
