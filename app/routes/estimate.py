# app/routes/estimate.py
from flask import Blueprint, request

from app.db.enums import EstimateStatus
from app.db.session import get_session
from app.routes.common import arg_enum, ok, parse_body, publish, require_login
from app.schemas.estimate import EstimateCreateRequest, EstimateDTO, EstimateUpdateRequest
from app.services.audit_log_service import AuditLogService
from app.services.estimate_service import EstimateService

estimate_bp = Blueprint('estimate', __name__, url_prefix='/estimates')


@estimate_bp.route('', methods=['GET'])
def list_estimates():
    db = get_session()
    try:
        user = require_login(db)
        estimates = EstimateService(db, AuditLogService(db)).list_estimates(
            actor=user,
            job_id=(request.args.get('jobId') or '').strip() or None,
            status=arg_enum('status', EstimateStatus),
        )
        return ok([EstimateDTO.from_orm_model(e).to_json() for e in estimates])
    finally:
        db.close()


@estimate_bp.route('', methods=['POST'])
def create_estimate():
    db = get_session()
    try:
        user = require_login(db)
        payload = parse_body(EstimateCreateRequest)

        service = EstimateService(db, AuditLogService(db))
        estimate = service.create_estimate(data=payload, actor=user)
        db.commit()

        data = EstimateDTO.from_orm_model(estimate).to_json()
        events = service.pending_events
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    publish(events)
    return ok(data, 201)


@estimate_bp.route('/<estimate_id>', methods=['GET'])
def get_estimate(estimate_id):
    db = get_session()
    try:
        require_login(db)
        estimate = EstimateService(db, AuditLogService(db)).get_estimate(estimate_id)
        return ok(EstimateDTO.from_orm_model(estimate).to_json())
    finally:
        db.close()


@estimate_bp.route('/<estimate_id>', methods=['PUT'])
def update_estimate(estimate_id):
    db = get_session()
    try:
        user = require_login(db)
        payload = parse_body(EstimateUpdateRequest)

        service = EstimateService(db, AuditLogService(db))
        estimate = service.update_estimate(estimate_id=estimate_id, data=payload, actor=user)
        db.commit()

        data = EstimateDTO.from_orm_model(estimate).to_json()
        events = service.pending_events
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    publish(events)
    return ok(data)


@estimate_bp.route('/<estimate_id>', methods=['DELETE'])
def delete_estimate(estimate_id):
    db = get_session()
    try:
        user = require_login(db)
        EstimateService(db, AuditLogService(db)).delete_estimate(estimate_id=estimate_id, actor=user)
        db.commit()
        return ok(message='Estimate deleted successfully')
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
