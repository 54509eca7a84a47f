# app/schemas/estimate.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from app.db.enums import EstimateStatus
from app.models.estimate import Estimate
from app.schemas.base import BaseDTO, RequestModel
from app.schemas.job import JobRefDTO
from app.schemas.user import UserRefDTO


class StructureLineIn(RequestModel):
    structure_type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    unit_cost: Decimal = Field(ge=0)
    total_cost: Decimal = Field(ge=0)
    specifications: Optional[dict] = None


class PurchaseLineIn(RequestModel):
    item_name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    supplier: Optional[str] = None
    quantity: int = Field(ge=1)
    unit_cost: Decimal = Field(ge=0)
    total_cost: Decimal = Field(ge=0)
    needs_ordering: bool = True


class EstimateCreateRequest(RequestModel):
    job_id: str = Field(min_length=1)
    structures: List[StructureLineIn] = []
    items_to_purchase: List[PurchaseLineIn] = []
    labor_cost: Decimal = Field(default=Decimal("0"), ge=0)
    material_cost: Decimal = Field(default=Decimal("0"), ge=0)
    equipment_cost: Decimal = Field(default=Decimal("0"), ge=0)
    overhead_cost: Decimal = Field(default=Decimal("0"), ge=0)
    profit_margin: Decimal = Field(default=Decimal("30"), ge=0, le=100)
    notes: Optional[str] = Field(default=None, max_length=2000)
    revision_reason: Optional[str] = Field(default=None, max_length=500)
    status: EstimateStatus = EstimateStatus.draft
    assigned_pm_id: Optional[str] = Field(default=None, alias="assignedPMId")


class EstimateUpdateRequest(RequestModel):
    structures: Optional[List[StructureLineIn]] = None
    items_to_purchase: Optional[List[PurchaseLineIn]] = None
    labor_cost: Optional[Decimal] = Field(default=None, ge=0)
    material_cost: Optional[Decimal] = Field(default=None, ge=0)
    equipment_cost: Optional[Decimal] = Field(default=None, ge=0)
    overhead_cost: Optional[Decimal] = Field(default=None, ge=0)
    profit_margin: Optional[Decimal] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = Field(default=None, max_length=2000)
    revision_reason: Optional[str] = Field(default=None, max_length=500)
    status: Optional[EstimateStatus] = None
    assigned_pm_id: Optional[str] = Field(default=None, alias="assignedPMId")


class StructureLineDTO(BaseDTO):
    structure_type: str
    description: str
    quantity: int
    unit_cost: float
    total_cost: float
    specifications: Optional[dict] = None


class PurchaseLineDTO(BaseDTO):
    item_name: str
    category: str
    supplier: Optional[str] = None
    quantity: int
    unit_cost: float
    total_cost: float
    needs_ordering: bool


class EstimateDTO(BaseDTO):
    id: str
    job_id: str
    job: Optional[JobRefDTO] = None
    version: int
    estimator_id: str
    estimator: Optional[UserRefDTO] = None
    status: str

    structures: List[StructureLineDTO]
    items_to_purchase: List[PurchaseLineDTO]

    labor_cost: float
    material_cost: float
    equipment_cost: float
    overhead_cost: float
    profit_margin: float
    total_cost: float
    quoted_price: float

    assigned_pm_id: Optional[str] = Field(default=None, alias="assignedPMId")
    assigned_pm: Optional[UserRefDTO] = Field(default=None, alias="assignedPM")
    assigned_date: Optional[datetime] = None
    notes: Optional[str] = None
    revision_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, estimate: Estimate) -> "EstimateDTO":
        return cls(
            id=estimate.id,
            job_id=estimate.job_id,
            job=JobRefDTO.from_orm_model(estimate.job),
            version=estimate.version,
            estimator_id=estimate.estimator_id,
            estimator=UserRefDTO.from_orm_model(estimate.estimator),
            status=estimate.status.value,
            structures=[
                StructureLineDTO(
                    structure_type=s.structure_type,
                    description=s.description,
                    quantity=s.quantity,
                    unit_cost=float(s.unit_cost),
                    total_cost=float(s.total_cost),
                    specifications=s.specifications,
                )
                for s in estimate.structures
            ],
            items_to_purchase=[
                PurchaseLineDTO(
                    item_name=i.item_name,
                    category=i.category,
                    supplier=i.supplier,
                    quantity=i.quantity,
                    unit_cost=float(i.unit_cost),
                    total_cost=float(i.total_cost),
                    needs_ordering=i.needs_ordering,
                )
                for i in estimate.items_to_purchase
            ],
            labor_cost=float(estimate.labor_cost or 0),
            material_cost=float(estimate.material_cost or 0),
            equipment_cost=float(estimate.equipment_cost or 0),
            overhead_cost=float(estimate.overhead_cost or 0),
            profit_margin=float(estimate.profit_margin or 0),
            total_cost=float(estimate.total_cost or 0),
            quoted_price=float(estimate.quoted_price or 0),
            assigned_pm_id=estimate.assigned_pm_id,
            assigned_pm=UserRefDTO.from_orm_model(estimate.assigned_pm),
            assigned_date=estimate.assigned_date,
            notes=estimate.notes,
            revision_reason=estimate.revision_reason,
            created_at=estimate.created_at,
            updated_at=estimate.updated_at,
        )
