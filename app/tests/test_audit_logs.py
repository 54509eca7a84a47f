# app/tests/test_audit_logs.py
from decimal import Decimal
from enum import Enum

from app.db.enums import UserRole
from app.services.audit_log_service import AuditLogService


def test_serialize_audit_value(database):
    class Color(Enum):
        red = "red"

    db = database.session()
    try:
        service = AuditLogService(db)
        assert service.serialize_audit_value(Decimal("1.50")) == 1.5
        assert service.serialize_audit_value(Color.red) == "red"
        assert service.serialize_audit_value(["a", Color.red]) == ["a", "red"]
        assert service.serialize_audit_value(None) is None
    finally:
        db.close()


def test_job_edits_are_audited(make_user, make_job, login):
    admin = make_user(UserRole.Admin)
    client = login(admin)
    job_id = make_job()

    client.patch(f"/jobs/{job_id}", json={"status": "Drafting", "priority": "high"})

    logs = client.get(f"/audit-logs?entityType=job&entityId={job_id}").get_json()["data"]
    changes = {(log["action"], log["changedAttribute"]) for log in logs}
    assert ("update", "status") in changes
    assert ("update", "priority") in changes
    assert ("system", "draft_start_date") in changes

    status_log = next(log for log in logs if log["changedAttribute"] == "status")
    assert status_log["beforeValue"] == "Estimation"
    assert status_log["afterValue"] == "Drafting"
    assert status_log["operatorId"] == admin.id


def test_audit_trail_is_admin_only(make_user, login):
    res = login(make_user(UserRole.ProjectManager)).get("/audit-logs")
    assert res.status_code == 403


def test_audit_filters_and_pagination(make_user, make_customer, login):
    admin = make_user(UserRole.Admin)
    client = login(admin)
    for i in range(3):
        client.post("/customers", json={"companyName": f"Customer {i}"})

    body = client.get("/audit-logs?entityType=customer&action=create").get_json()
    assert body["pagination"] == {"total": 3, "page": 1, "perPage": 50, "pages": 1}
    assert all(log["operatorId"] == admin.id for log in body["data"])
    assert client.get("/audit-logs?entityType=customer&page=2").get_json()["data"] == []
    assert client.get("/audit-logs?action=explode").status_code == 400
