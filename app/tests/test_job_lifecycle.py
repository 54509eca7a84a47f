# app/tests/test_job_lifecycle.py
from datetime import datetime, timedelta

import pytest

from app.db.enums import JobStatus, UserRole
from app.models.job import Job
from app.services.job_service import PHASE_TIMESTAMP_FIELDS, stamp_phase_timestamp


@pytest.mark.parametrize("status,field", [
    (JobStatus.Estimation, "estimate_date"),
    (JobStatus.Drafting, "draft_start_date"),
    (JobStatus.InProduction, "production_start_date"),
    (JobStatus.Delivered, "delivery_date"),
])
def test_stamps_first_entry(status, field):
    job = Job()
    now = datetime(2024, 5, 1, 8, 30)
    assert stamp_phase_timestamp(job, status, now) == field
    assert getattr(job, field) == now


def test_second_entry_is_a_no_op():
    job = Job()
    first = datetime(2024, 5, 1)
    stamp_phase_timestamp(job, JobStatus.Drafting, first)
    assert stamp_phase_timestamp(job, JobStatus.Drafting, first + timedelta(days=3)) is None
    assert job.draft_start_date == first


@pytest.mark.parametrize("status", [
    JobStatus.PMReview, JobStatus.Submitted, JobStatus.UnderRevision, JobStatus.Accepted,
])
def test_untracked_phases_stamp_nothing(status):
    job = Job()
    assert stamp_phase_timestamp(job, status, datetime.now()) is None
    assert all(getattr(job, f) is None for f in PHASE_TIMESTAMP_FIELDS.values())


def _get(client, job_id):
    res = client.get(f"/jobs/{job_id}")
    assert res.status_code == 200
    return res.get_json()["data"]


def test_create_enters_estimation(make_user, make_customer, login):
    pm = make_user(UserRole.ProjectManager)
    client = login(pm)
    res = client.post("/jobs", json={
        "jobName": "Wet Well", "jobNumber": "LP-001", "customerId": make_customer(),
    })
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["status"] == "Estimation"
    assert data["priority"] == "medium"
    assert data["estimateDate"] is not None
    assert data["createdBy"] == pm.id


def test_drafting_twice_keeps_first_timestamp(make_user, make_job, login):
    admin = make_user(UserRole.Admin)
    job_id = make_job()
    client = login(admin)

    assert client.patch(f"/jobs/{job_id}", json={"status": "Drafting"}).status_code == 200
    first = _get(client, job_id)["draftStartDate"]
    assert first is not None

    client.patch(f"/jobs/{job_id}", json={"status": "PM Review"})
    client.put(f"/jobs/{job_id}", json={"status": "Drafting"})
    assert _get(client, job_id)["draftStartDate"] == first


def test_any_status_may_follow_any_other(make_user, make_job, login):
    admin = make_user(UserRole.Admin)
    job_id = make_job(status=JobStatus.Delivered)
    client = login(admin)

    res = client.put(f"/jobs/{job_id}", json={"status": "Estimation"})
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["status"] == "Estimation"
    assert data["estimateDate"] is not None


def test_delivery_stamps_delivery_date(make_user, make_job, login):
    admin = make_user(UserRole.Admin)
    job_id = make_job()
    client = login(admin)

    data = client.patch(f"/jobs/{job_id}", json={"status": "In Production"}).get_json()["data"]
    assert data["productionStartDate"] is not None
    assert data["deliveryDate"] is None

    data = client.patch(f"/jobs/{job_id}", json={"status": "Delivered"}).get_json()["data"]
    assert data["deliveryDate"] is not None


def test_unknown_status_rejected(make_user, make_job, login):
    client = login(make_user(UserRole.Admin))
    res = client.patch(f"/jobs/{make_job()}", json={"status": "Cancelled"})
    assert res.status_code == 400
    assert res.get_json()["errorType"] == "VALIDATION_ERROR"


def test_edit_requires_admin_or_creator(make_user, make_job, login):
    creator = make_user(UserRole.Drafter)
    other = make_user(UserRole.Drafter)
    job_id = make_job(created_by=creator.id)

    res = login(other).patch(f"/jobs/{job_id}", json={"priority": "high"})
    assert res.status_code == 403
    assert res.get_json()["errorType"] == "FORBIDDEN"

    # holding canEditJobs is not enough without being the creator
    pm = login(make_user(UserRole.ProjectManager))
    res = pm.put(f"/jobs/{job_id}", json={"jobName": "Renamed", "status": "Delivered"})
    assert res.status_code == 403
    assert pm.patch(f"/jobs/{job_id}", json={"priority": "urgent"}).status_code == 403

    admin = login(make_user(UserRole.Admin))
    data = admin.get(f"/jobs/{job_id}").get_json()["data"]
    assert (data["jobName"], data["status"], data["priority"]) == ("Wet Well", "Estimation", "medium")
    assert admin.patch(f"/jobs/{job_id}", json={"priority": "low"}).status_code == 200

    assert login(creator).patch(f"/jobs/{job_id}", json={"priority": "high"}).status_code == 200


def test_missing_job_is_404(make_user, login):
    client = login(make_user(UserRole.Admin))
    res = client.patch("/jobs/does-not-exist", json={"status": "Drafting"})
    assert res.status_code == 404
    assert res.get_json()["errorType"] == "NOT_FOUND"
