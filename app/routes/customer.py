# app/routes/customer.py
from flask import Blueprint, request

from app.db.session import get_session
from app.routes.common import ok, parse_body, publish, require_login
from app.schemas.customer import CustomerCreateRequest, CustomerDTO, CustomerUpdateRequest
from app.services.audit_log_service import AuditLogService
from app.services.customer_service import CustomerService
from app.services.permissions import is_admin

customer_bp = Blueprint('customer', __name__, url_prefix='/customers')


@customer_bp.route('', methods=['GET'])
def list_customers():
    db = get_session()
    try:
        user = require_login(db)
        include_deleted = request.args.get('includeDeleted') == 'true' and is_admin(user.role)
        customers = CustomerService(db, AuditLogService(db)).list_customers(include_deleted=include_deleted)
        return ok([CustomerDTO.from_orm_model(c).to_json() for c in customers])
    finally:
        db.close()


@customer_bp.route('', methods=['POST'])
def create_customer():
    db = get_session()
    try:
        user = require_login(db)
        payload = parse_body(CustomerCreateRequest)

        service = CustomerService(db, AuditLogService(db))
        customer = service.create_customer(data=payload, actor=user)
        db.commit()

        data = CustomerDTO.from_orm_model(customer).to_json()
        events = service.pending_events
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    publish(events)
    return ok(data, 201)


@customer_bp.route('/<customer_id>', methods=['GET'])
def get_customer(customer_id):
    db = get_session()
    try:
        require_login(db)
        customer = CustomerService(db, AuditLogService(db)).get_customer(customer_id)
        return ok(CustomerDTO.from_orm_model(customer).to_json())
    finally:
        db.close()


@customer_bp.route('/<customer_id>', methods=['PATCH', 'PUT'])
def update_customer(customer_id):
    db = get_session()
    try:
        user = require_login(db)
        payload = parse_body(CustomerUpdateRequest)

        customer = CustomerService(db, AuditLogService(db)).update_customer(
            customer_id=customer_id,
            data=payload,
            actor=user,
        )
        db.commit()
        return ok(CustomerDTO.from_orm_model(customer).to_json())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@customer_bp.route('/<customer_id>', methods=['DELETE'])
def delete_customer(customer_id):
    db = get_session()
    try:
        user = require_login(db)
        CustomerService(db, AuditLogService(db)).delete_customer(customer_id=customer_id, actor=user)
        db.commit()
        return ok(message="Customer deleted successfully")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
