# app/tests/test_dashboard.py
from datetime import datetime, timedelta

from app.db.enums import JobStatus, UserRole


def test_admin_sees_global_counters(make_user, make_customer, make_job, login):
    customer = make_customer()
    make_job(job_number="LP-001", customer_id=customer, quoted_amount=1234.5)
    make_job(job_number="LP-002", customer_id=customer, status=JobStatus.InProduction, quoted_amount=1000)
    make_job(job_number="LP-003", status=JobStatus.Delivered)
    make_job(job_number="LP-004", quoted_amount=99999, created_date=datetime.now() - timedelta(days=400))
    make_job(job_number="LP-005", quoted_amount=50, deleted_at=datetime.now())

    stats = login(make_user(UserRole.Admin)).get("/dashboard/stats").get_json()["data"]
    assert stats == {
        "activeJobs": 3,
        "inProduction": 1,
        "customers": 4,
        "thisMonth": "2,234.50",
    }


def test_pm_sees_own_jobs(make_user, make_customer, make_job, login):
    pm = make_user(UserRole.ProjectManager)
    customer = make_customer()
    make_job(job_number="LP-001", project_manager_id=pm.id, customer_id=customer)
    make_job(job_number="LP-002", project_manager_id=pm.id, customer_id=customer, status=JobStatus.InProduction)
    make_job(job_number="LP-003", project_manager_id=pm.id, status=JobStatus.Delivered)
    make_job(job_number="LP-004")

    stats = login(pm).get("/dashboard/stats").get_json()["data"]
    assert stats == {"activeJobs": 2, "inProduction": 1, "customers": 2, "thisMonth": 0}


def test_other_roles_get_zeros(make_user, make_job, login):
    make_job()
    stats = login(make_user(UserRole.Drafter)).get("/dashboard/stats").get_json()["data"]
    assert stats == {"activeJobs": 0, "inProduction": 0, "customers": 0, "thisMonth": 0}
