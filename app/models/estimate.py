# app/models/estimate.py
from sqlalchemy import (
    String,
    Text,
    Numeric,
    DateTime,
    Integer,
    Boolean,
    Enum,
    JSON,
    ForeignKey,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.db.enums import EstimateStatus
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class Estimate(Base):
    """
    Versioned costing document attached to a Job.

    Invariants:
    - (job_id, version) is unique; versions start at 1 per job
    - total_cost and quoted_price are derived, see app.services.estimate_service
    """

    __tablename__ = "estimates"
    __table_args__ = (
        UniqueConstraint("job_id", "version", name="uq_estimates_job_version"),
    )

    # =========
    # 🔒 Identity & ownership
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Estimate UUID")

    job_id :Mapped[str] = mapped_column(
        String(36),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    version :Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Incremental version of the estimate for the job",
    )

    estimator_id :Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    status :Mapped[EstimateStatus] = mapped_column(
        Enum(EstimateStatus, name="estimate_status"),
        nullable=False,
        default=EstimateStatus.draft,
        index=True,
    )

    # =========
    # 💰 Cost components
    # =========
    labor_cost :Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    material_cost :Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    equipment_cost :Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    overhead_cost :Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    profit_margin :Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("30"))

    # derived, recomputed before every insert/update
    total_cost :Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=Decimal("0"))
    quoted_price :Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=Decimal("0"))

    # =========
    # 📎 Assignment & notes
    # =========
    assigned_pm_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    assigned_date :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    revision_reason :Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at :Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    job = relationship("Job", back_populates="estimates", lazy="joined")
    estimator = relationship("User", foreign_keys=[estimator_id], lazy="joined")
    assigned_pm = relationship("User", foreign_keys=[assigned_pm_id], lazy="joined")

    structures :Mapped[List["EstimateStructure"]] = relationship(
        back_populates="estimate",
        cascade="all, delete-orphan",
        order_by="EstimateStructure.position",
        lazy="selectin",
    )
    items_to_purchase :Mapped[List["EstimatePurchaseItem"]] = relationship(
        back_populates="estimate",
        cascade="all, delete-orphan",
        order_by="EstimatePurchaseItem.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<Estimate id={self.id} "
            f"job={self.job_id} "
            f"version={self.version} "
            f"quoted={self.quoted_price}>"
        )


class EstimateStructure(Base):
    """Precast structure line item. total_cost is supplied by the caller."""

    __tablename__ = "estimate_structures"

    id :Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    estimate_id :Mapped[str] = mapped_column(
        String(36),
        ForeignKey("estimates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position :Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    structure_type :Mapped[str] = mapped_column(String(100), nullable=False)
    description :Mapped[str] = mapped_column(String(500), nullable=False)
    quantity :Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost :Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_cost :Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    specifications :Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    estimate = relationship("Estimate", back_populates="structures")


class EstimatePurchaseItem(Base):
    """Item to purchase line item. total_cost is supplied by the caller."""

    __tablename__ = "estimate_purchase_items"

    id :Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    estimate_id :Mapped[str] = mapped_column(
        String(36),
        ForeignKey("estimates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position :Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    item_name :Mapped[str] = mapped_column(String(200), nullable=False)
    category :Mapped[str] = mapped_column(String(100), nullable=False)
    supplier :Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    quantity :Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost :Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_cost :Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    needs_ordering :Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    estimate = relationship("Estimate", back_populates="items_to_purchase")
