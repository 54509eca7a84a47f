# app/routes/job.py
import io
from datetime import datetime

import pandas as pd
from flask import Blueprint, current_app, request, send_file

from app.db.enums import JobPriority, JobStatus
from app.db.session import get_session
from app.routes.common import arg_enum, arg_int, ok, parse_body, publish, require_login
from app.schemas.job import JobCreateRequest, JobDTO, JobPatchRequest, JobUpdateRequest
from app.services.audit_log_service import AuditLogService
from app.services.job_service import JobService, QuoteStorage
from app.services.permissions import is_admin

job_bp = Blueprint('job', __name__, url_prefix='/jobs')


def _job_service(db) -> JobService:
    return JobService(
        db,
        AuditLogService(db),
        QuoteStorage(current_app.config['UPLOAD_FOLDER']),
    )


def _list_filters(user) -> dict:
    return dict(
        status=arg_enum('status', JobStatus),
        priority=arg_enum('priority', JobPriority),
        job_number=(request.args.get('jobNumber') or '').strip() or None,
        project_manager_id=(request.args.get('projectManagerId') or '').strip() or None,
        include_deleted=request.args.get('includeDeleted') == 'true' and is_admin(user.role),
    )


def _create_payload():
    """JSON body, or multipart form with an optional ``quoteFile`` PDF."""
    if request.mimetype == 'multipart/form-data' or request.mimetype == 'application/x-www-form-urlencoded':
        body = {key: value for key, value in request.form.items() if value.strip() != ''}
        if 'tags' in body:
            body['tags'] = [t.strip() for t in body['tags'].split(',') if t.strip()]
        quote_file = request.files.get('quoteFile')
        if quote_file is not None and not quote_file.filename:
            quote_file = None
        return JobCreateRequest.model_validate(body), quote_file
    return parse_body(JobCreateRequest), None


@job_bp.route('', methods=['GET'])
def list_jobs():
    db = get_session()
    try:
        user = require_login(db)
        limit = arg_int('limit', 50, minimum=1, maximum=500)
        skip = arg_int('skip', 0)

        jobs, total = _job_service(db).list_jobs(limit=limit, skip=skip, **_list_filters(user))
        return ok(
            [JobDTO.from_orm_model(job).to_json() for job in jobs],
            pagination={'total': total, 'limit': limit, 'skip': skip},
        )
    finally:
        db.close()


@job_bp.route('', methods=['POST'])
def create_job():
    db = get_session()
    try:
        user = require_login(db)
        payload, quote_file = _create_payload()

        service = _job_service(db)
        job = service.create_job(data=payload, actor=user, quote_file=quote_file)
        db.commit()

        data = JobDTO.from_orm_model(job).to_json()
        events = service.pending_events
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    publish(events)
    return ok(data, 201)


@job_bp.route('/export', methods=['GET'])
def export_jobs():
    """Excel export of the (filtered) job list."""
    db = get_session()
    try:
        user = require_login(db)
        df = _job_service(db).export_jobs_dataframe(actor=user, **_list_filters(user))
    finally:
        db.close()

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name='Jobs')
    output.seek(0)

    filename = f"jobs_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
    return send_file(
        output,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=filename,
    )


@job_bp.route('/<job_id>', methods=['GET'])
def get_job(job_id):
    db = get_session()
    try:
        user = require_login(db)
        include_deleted = request.args.get('includeDeleted') == 'true' and is_admin(user.role)
        job = _job_service(db).get_job(job_id, include_deleted=include_deleted)
        return ok(JobDTO.from_orm_model(job).to_json())
    finally:
        db.close()


def _update(job_id, schema, method_name):
    db = get_session()
    try:
        user = require_login(db)
        payload = parse_body(schema)

        service = _job_service(db)
        job = getattr(service, method_name)(job_id=job_id, data=payload, actor=user)
        db.commit()

        data = JobDTO.from_orm_model(job).to_json()
        events = service.pending_events
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    publish(events)
    return ok(data)


@job_bp.route('/<job_id>', methods=['PUT'])
def update_job(job_id):
    return _update(job_id, JobUpdateRequest, 'update_job')


@job_bp.route('/<job_id>', methods=['PATCH'])
def patch_job(job_id):
    return _update(job_id, JobPatchRequest, 'patch_job')


@job_bp.route('/<job_id>', methods=['DELETE'])
def delete_job(job_id):
    db = get_session()
    try:
        user = require_login(db)
        service = _job_service(db)
        service.delete_job(job_id=job_id, actor=user)
        db.commit()
        events = service.pending_events
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    publish(events)
    return ok(message='Job deleted successfully')
