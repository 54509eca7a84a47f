# app/services/estimate_service.py
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import event, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.enums import AuditEntityType, EstimateStatus, UserRole
from app.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.logger import get_logger
from app.models.estimate import Estimate, EstimatePurchaseItem, EstimateStructure
from app.models.job import Job
from app.models.user import User
from app.services.audit_log_service import AuditLogService
from app.services.events import EstimateAssigned, EstimateSubmitted
from app.services.job_service import actor_of
from app.services.permissions import can_modify, has_permission

logger = get_logger(__name__)

CENT = Decimal("0.01")
MAX_VERSION_ATTEMPTS = 5
LIST_LIMIT = 100

COST_FIELDS = ("labor_cost", "material_cost", "equipment_cost", "overhead_cost", "profit_margin")
SCALAR_FIELDS = COST_FIELDS + ("notes", "revision_reason", "status")


# ======================================================
# Cost calculator
# ======================================================

def _dec(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def recalculate_costs(estimate: Estimate) -> Estimate:
    '''
    total_cost = labor + material + equipment + overhead
    quoted_price = total_cost * (1 + profit_margin / 100)

    Both are quantized to cents with ROUND_HALF_UP. Line item totals are
    taken as supplied.
    '''
    total = (
        _dec(estimate.labor_cost)
        + _dec(estimate.material_cost)
        + _dec(estimate.equipment_cost)
        + _dec(estimate.overhead_cost)
    )
    margin = _dec(estimate.profit_margin)
    estimate.total_cost = total.quantize(CENT, rounding=ROUND_HALF_UP)
    estimate.quoted_price = (total * (1 + margin / 100)).quantize(CENT, rounding=ROUND_HALF_UP)
    return estimate


@event.listens_for(Estimate, "before_insert")
@event.listens_for(Estimate, "before_update")
def _recalculate_before_persist(mapper, connection, target):
    recalculate_costs(target)


def _structures(lines) -> List[EstimateStructure]:
    return [
        EstimateStructure(
            position=position,
            structure_type=line.structure_type,
            description=line.description,
            quantity=line.quantity,
            unit_cost=line.unit_cost,
            total_cost=line.total_cost,
            specifications=line.specifications,
        )
        for position, line in enumerate(lines)
    ]


def _purchase_items(lines) -> List[EstimatePurchaseItem]:
    return [
        EstimatePurchaseItem(
            position=position,
            item_name=line.item_name,
            category=line.category,
            supplier=line.supplier,
            quantity=line.quantity,
            unit_cost=line.unit_cost,
            total_cost=line.total_cost,
            needs_ordering=line.needs_ordering,
        )
        for position, line in enumerate(lines)
    ]


class EstimateService:
    """
    Versioned estimates per job.

    - version = highest existing version for the job + 1, starting at 1
    - (job_id, version) is unique in storage; a lost race is retried
    - derived costs are recomputed on every persist
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service
        self.pending_events: list = []

    # ======================================================
    # Read side
    # ======================================================

    def list_estimates(
        self,
        *,
        actor: User,
        job_id: Optional[str] = None,
        status: Optional[EstimateStatus] = None,
    ) -> List[Estimate]:
        '''
        Estimators see their own estimates, project managers those assigned
        to them, everyone else sees all.
        '''
        query = self.db.query(Estimate)
        if actor.role is UserRole.Estimator:
            query = query.filter(Estimate.estimator_id == actor.id)
        elif actor.role is UserRole.ProjectManager:
            query = query.filter(Estimate.assigned_pm_id == actor.id)
        if job_id:
            query = query.filter(Estimate.job_id == job_id)
        if status is not None:
            query = query.filter(Estimate.status == status)
        return query.order_by(Estimate.created_at.desc(), Estimate.version.desc()).limit(LIST_LIMIT).all()

    def get_estimate(self, estimate_id: str) -> Estimate:
        estimate = self.db.get(Estimate, estimate_id)
        if estimate is None:
            raise NotFound("Estimate not found")
        return estimate

    def next_version(self, job_id: str) -> int:
        '''
        Highest version for the job + 1, or 1 when the job has none.

        :param job_id: job id
        :type job_id: str
        :rtype: int
        '''
        latest = (
            self.db.query(func.max(Estimate.version))
            .filter(Estimate.job_id == job_id)
            .scalar()
        )
        return 1 if latest is None else latest + 1

    # ======================================================
    # Write side
    # ======================================================

    def _check_pm(self, pm_id: Optional[str]) -> None:
        if pm_id and self.db.get(User, pm_id) is None:
            raise ValidationFailed(
                "Referenced user not found",
                details={"assignedPMId": f"User {pm_id} does not exist"},
            )

    def create_estimate(self, *, data, actor: User) -> Estimate:
        '''
        Create the next version of an estimate for a job.

        :param data: validated EstimateCreateRequest
        :param actor: acting user, needs canCreateEstimates
        :type actor: User
        :return: the new estimate, flushed with derived costs filled in
        :rtype: Estimate
        '''
        if not has_permission(actor.role, "canCreateEstimates"):
            raise Forbidden("You do not have permission to create estimates")

        job = self.db.get(Job, data.job_id)
        if job is None or job.deleted_at is not None:
            raise NotFound("Job not found")
        self._check_pm(data.assigned_pm_id)

        estimate = None
        for attempt in range(1, MAX_VERSION_ATTEMPTS + 1):
            version = self.next_version(job.id)
            candidate = Estimate(
                id=str(uuid4()),
                job_id=job.id,
                version=version,
                estimator_id=actor.id,
                status=data.status,
                structures=_structures(data.structures),
                items_to_purchase=_purchase_items(data.items_to_purchase),
                labor_cost=data.labor_cost,
                material_cost=data.material_cost,
                equipment_cost=data.equipment_cost,
                overhead_cost=data.overhead_cost,
                profit_margin=data.profit_margin,
                notes=data.notes,
                revision_reason=data.revision_reason,
                assigned_pm_id=data.assigned_pm_id or None,
                assigned_date=datetime.now() if data.assigned_pm_id else None,
            )
            recalculate_costs(candidate)
            try:
                with self.db.begin_nested():
                    self.db.add(candidate)
                    self.db.flush()
            except IntegrityError:
                logger.warning(f"Estimate version {version} for job {job.job_number} taken, retrying ({attempt})")
                continue
            estimate = candidate
            break
        if estimate is None:
            raise Conflict("Could not assign an estimate version, please retry")

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.Estimate,
            entity_id=estimate.id,
            operator_id=actor.id,
        )

        if estimate.status is EstimateStatus.submitted:
            self.pending_events.append(self._submitted(estimate, job, actor, is_new=True))
        if estimate.assigned_pm_id:
            self._adopt_pm(job, estimate.assigned_pm_id, actor)
            self.pending_events.append(self._assigned(estimate, job, actor))

        logger.info(f"Estimate created: job {job.job_number} v{estimate.version} (id={estimate.id})")
        return estimate

    def update_estimate(self, *, estimate_id: str, data, actor: User) -> Estimate:
        '''
        Update an estimate. Only its author or an Admin may do so.

        :param estimate_id: target estimate
        :type estimate_id: str
        :param data: validated EstimateUpdateRequest
        :param actor: acting user
        :type actor: User
        '''
        estimate = self.get_estimate(estimate_id)
        if not can_modify(actor.role, None, estimate.estimator_id, actor.id):
            raise Forbidden("You do not have permission to update this estimate")

        fields = data.model_dump(exclude_unset=True)
        previous_status = estimate.status
        previous_pm_id = estimate.assigned_pm_id

        if "structures" in fields and data.structures is not None:
            estimate.structures = _structures(data.structures)
        if "items_to_purchase" in fields and data.items_to_purchase is not None:
            estimate.items_to_purchase = _purchase_items(data.items_to_purchase)

        for field in SCALAR_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if value is None and field in COST_FIELDS + ("status",):
                continue
            before = getattr(estimate, field)
            if before == value:
                continue
            setattr(estimate, field, value)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.Estimate,
                entity_id=estimate.id,
                changed_attribute=field,
                before_value=before,
                after_value=value,
                operator_id=actor.id,
            )

        pm_changed = False
        if "assigned_pm_id" in fields and (fields["assigned_pm_id"] or None) != previous_pm_id:
            new_pm_id = fields["assigned_pm_id"] or None
            self._check_pm(new_pm_id)
            estimate.assigned_pm_id = new_pm_id
            estimate.assigned_date = datetime.now() if new_pm_id else None
            pm_changed = new_pm_id is not None
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.Estimate,
                entity_id=estimate.id,
                changed_attribute="assigned_pm_id",
                before_value=previous_pm_id,
                after_value=new_pm_id,
                operator_id=actor.id,
            )

        recalculate_costs(estimate)
        self.db.flush()

        job = estimate.job
        if pm_changed:
            self._adopt_pm(job, estimate.assigned_pm_id, actor)
            self.pending_events.append(self._assigned(estimate, job, actor))
        if estimate.status is EstimateStatus.submitted and previous_status is not EstimateStatus.submitted:
            self.pending_events.append(self._submitted(estimate, job, actor, is_new=False))

        logger.info(f"Estimate updated: job {job.job_number} v{estimate.version} (id={estimate.id})")
        return estimate

    def delete_estimate(self, *, estimate_id: str, actor: User) -> None:
        estimate = self.get_estimate(estimate_id)
        if not can_modify(actor.role, None, estimate.estimator_id, actor.id):
            raise Forbidden("You do not have permission to delete this estimate")

        self.audit_log_service.record_delete(
            entity_type=AuditEntityType.Estimate,
            entity_id=estimate.id,
            operator_id=actor.id,
        )
        self.db.delete(estimate)
        self.db.flush()
        logger.info(f"Estimate deleted: id={estimate_id}")

    # ======================================================
    # Helpers
    # ======================================================

    def _adopt_pm(self, job: Job, pm_id: str, actor: User) -> None:
        # the job inherits the estimate's PM only when it has none
        if job.project_manager_id:
            return
        job.project_manager_id = pm_id
        self.audit_log_service.record_update(
            entity_type=AuditEntityType.Job,
            entity_id=job.id,
            changed_attribute="project_manager_id",
            before_value=None,
            after_value=pm_id,
            operator_id=actor.id,
        )
        self.db.flush()

    def _submitted(self, estimate: Estimate, job: Job, actor: User, *, is_new: bool) -> EstimateSubmitted:
        return EstimateSubmitted(
            estimate_id=estimate.id,
            job_id=job.id,
            job_number=job.job_number,
            job_name=job.job_name,
            quoted_price=estimate.quoted_price,
            is_new=is_new,
            actor=actor_of(actor),
        )

    def _assigned(self, estimate: Estimate, job: Job, actor: User) -> EstimateAssigned:
        return EstimateAssigned(
            estimate_id=estimate.id,
            job_id=job.id,
            job_number=job.job_number,
            job_name=job.job_name,
            quoted_price=estimate.quoted_price,
            assigned_pm_id=estimate.assigned_pm_id,
            actor=actor_of(actor),
        )
