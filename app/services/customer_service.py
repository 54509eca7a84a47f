# app/services/customer_service.py
from datetime import datetime
from typing import List
from uuid import uuid4

from sqlalchemy.orm import Session

from app.db.enums import AuditEntityType, UserRole
from app.errors import Forbidden, NotFound
from app.logger import get_logger
from app.models.customer import Customer
from app.models.job import Job
from app.models.user import User
from app.services.audit_log_service import AuditLogService
from app.services.events import CustomerCreated
from app.services.job_service import actor_of
from app.services.permissions import has_permission

logger = get_logger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "zip")


class CustomerService:
    """
    Customer records. Any signed-in user may add a customer; editing needs
    canEditJobs and soft deletion needs canDeleteJobs.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service
        self.pending_events: list = []

    def _flatten(self, fields: dict) -> dict:
        address = fields.pop("address", None) or {}
        for key in ADDRESS_FIELDS:
            if key in address:
                fields[key] = address[key]
        return fields

    def create_customer(self, *, data, actor: User) -> Customer:
        '''
        :param data: validated CustomerCreateRequest
        :param actor: acting user
        :type actor: User
        :rtype: Customer
        '''
        fields = self._flatten(data.model_dump())
        customer = Customer(id=str(uuid4()), **fields)
        self.db.add(customer)
        self.db.flush()

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.Customer,
            entity_id=customer.id,
            operator_id=actor.id,
        )
        if actor.role is UserRole.ProjectManager:
            self.pending_events.append(
                CustomerCreated(
                    customer_id=customer.id,
                    company_name=customer.company_name,
                    actor=actor_of(actor),
                )
            )
        logger.info(f"Customer created: {customer.company_name} (id={customer.id})")
        return customer

    def list_customers(self, *, include_deleted: bool = False) -> List[Customer]:
        query = self.db.query(Customer)
        if not include_deleted:
            query = query.filter(Customer.deleted_at.is_(None))
        return query.order_by(Customer.created_at.desc()).all()

    def get_customer(self, customer_id: str, *, include_deleted: bool = False) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if customer is None or (customer.deleted_at is not None and not include_deleted):
            raise NotFound("Customer not found")
        return customer

    def update_customer(self, *, customer_id: str, data, actor: User) -> Customer:
        customer = self.get_customer(customer_id)
        if not has_permission(actor.role, "canEditJobs"):
            raise Forbidden("You do not have permission to edit customers")

        fields = self._flatten(data.model_dump(exclude_unset=True))
        if fields.get("company_name") is None:
            fields.pop("company_name", None)

        for field, value in fields.items():
            before = getattr(customer, field)
            if before == value:
                continue
            setattr(customer, field, value)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.Customer,
                entity_id=customer.id,
                changed_attribute=field,
                before_value=before,
                after_value=value,
                operator_id=actor.id,
            )
        self.db.flush()
        logger.info(f"Customer updated: {customer.company_name} (id={customer.id})")
        return customer

    def delete_customer(self, *, customer_id: str, actor: User) -> Customer:
        customer = self.get_customer(customer_id)
        if not has_permission(actor.role, "canDeleteJobs"):
            raise Forbidden("You do not have permission to delete customers")

        customer.deleted_at = datetime.now()
        self.db.flush()
        self.audit_log_service.record_delete(
            entity_type=AuditEntityType.Customer,
            entity_id=customer.id,
            operator_id=actor.id,
        )
        logger.info(f"Customer soft-deleted: {customer.company_name} (id={customer.id})")
        return customer

    def purge_deleted_customers(self) -> List[str]:
        '''
        Permanently remove soft-deleted customers that no job refers to any more.

        :return: company names of the purged customers
        :rtype: List[str]
        '''
        customers = self.db.query(Customer).filter(Customer.deleted_at.isnot(None)).all()
        purged = []
        for customer in customers:
            in_use = self.db.query(Job.id).filter(Job.customer_id == customer.id).first()
            if in_use is not None:
                logger.warning(f"Customer {customer.company_name} (id={customer.id}) still referenced by jobs, kept")
                continue
            self.audit_log_service.record_purge(
                entity_type=AuditEntityType.Customer,
                entity_id=customer.id,
                before_value=customer.company_name,
            )
            purged.append(customer.company_name)
            self.db.delete(customer)
        self.db.flush()
        return purged
