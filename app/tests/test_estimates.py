# app/tests/test_estimates.py
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.db.enums import UserRole
from app.models.estimate import Estimate
from app.models.user import User
from app.schemas.estimate import EstimateCreateRequest
from app.services.audit_log_service import AuditLogService
from app.services.estimate_service import EstimateService, recalculate_costs


# ======================================================
# Cost calculator
# ======================================================

@pytest.mark.parametrize("costs,margin,total,quoted", [
    (("1000", "500", "250", "250"), "30", "2000.00", "2600.00"),
    (("0", "0", "0", "0"), "30", "0.00", "0.00"),
    (("100.005", "0", "0", "0"), "0", "100.01", "100.01"),
    (("33.33", "0", "0", "0"), "15", "33.33", "38.33"),
    (("10", "0", "0", "0"), "100", "10.00", "20.00"),
])
def test_recalculate_costs(costs, margin, total, quoted):
    labor, material, equipment, overhead = costs
    estimate = SimpleNamespace(
        labor_cost=Decimal(labor),
        material_cost=Decimal(material),
        equipment_cost=Decimal(equipment),
        overhead_cost=Decimal(overhead),
        profit_margin=Decimal(margin),
    )
    recalculate_costs(estimate)
    assert estimate.total_cost == Decimal(total)
    assert estimate.quoted_price == Decimal(quoted)


def test_missing_components_count_as_zero():
    estimate = SimpleNamespace(labor_cost=None, material_cost=Decimal("5"), equipment_cost=None,
                               overhead_cost=None, profit_margin=None)
    recalculate_costs(estimate)
    assert estimate.total_cost == Decimal("5.00")
    assert estimate.quoted_price == Decimal("5.00")


def test_direct_field_change_is_recomputed_on_flush(make_user, make_job, session_scope, login):
    estimator = make_user(UserRole.Estimator)
    job_id = make_job()
    estimate_id = login(estimator).post("/estimates", json={
        "jobId": job_id, "laborCost": "100",
    }).get_json()["data"]["id"]

    with session_scope() as db:
        estimate = db.get(Estimate, estimate_id)
        estimate.material_cost = Decimal("100")
    with session_scope() as db:
        estimate = db.get(Estimate, estimate_id)
        assert estimate.total_cost == Decimal("200.00")
        assert estimate.quoted_price == Decimal("260.00")


# ======================================================
# Versioning
# ======================================================

def test_versions_count_up_per_job(make_user, make_job, login):
    client = login(make_user(UserRole.Estimator))
    first_job = make_job(job_number="LP-001")
    second_job = make_job(job_number="LP-002")

    versions = [
        client.post("/estimates", json={"jobId": first_job}).get_json()["data"]["version"]
        for _ in range(3)
    ]
    assert versions == [1, 2, 3]
    assert client.post("/estimates", json={"jobId": second_job}).get_json()["data"]["version"] == 1


def test_version_follows_highest_after_delete(make_user, make_job, login):
    client = login(make_user(UserRole.Estimator))
    job_id = make_job()
    ids = [client.post("/estimates", json={"jobId": job_id}).get_json()["data"]["id"] for _ in range(2)]

    assert client.delete(f"/estimates/{ids[0]}").status_code == 200
    assert client.post("/estimates", json={"jobId": job_id}).get_json()["data"]["version"] == 3

def test_taken_version_is_retried(make_user, make_job, login, monkeypatch):
    client = login(make_user(UserRole.Estimator))
    job_id = make_job()
    assert client.post("/estimates", json={"jobId": job_id}).get_json()["data"]["version"] == 1

    real_next_version = EstimateService.next_version
    calls = []

    def stale_first(self, job_id):
        # the first read misses a concurrent writer's version 1
        calls.append(job_id)
        return 1 if len(calls) == 1 else real_next_version(self, job_id)

    monkeypatch.setattr(EstimateService, "next_version", stale_first)
    res = client.post("/estimates", json={"jobId": job_id})
    assert res.status_code == 201
    assert res.get_json()["data"]["version"] == 2
    assert len(calls) == 2


def test_gives_up_after_repeated_collisions(make_user, make_job, login, monkeypatch):
    client = login(make_user(UserRole.Estimator))
    job_id = make_job()
    client.post("/estimates", json={"jobId": job_id})

    monkeypatch.setattr(EstimateService, "next_version", lambda self, job_id: 1)
    res = client.post("/estimates", json={"jobId": job_id})
    assert res.status_code == 409
    assert res.get_json()["errorType"] == "CONFLICT"

    monkeypatch.undo()
    data = client.get(f"/estimates?jobId={job_id}").get_json()["data"]
    assert [e["version"] for e in data] == [1]


# ======================================================
# API
# ======================================================

def test_create_returns_derived_costs_and_line_items(make_user, make_job, login):
    client = login(make_user(UserRole.Estimator))
    res = client.post("/estimates", json={
        "jobId": make_job(),
        "structures": [{
            "structureType": "Manhole", "description": "48in base",
            "quantity": 2, "unitCost": "1500", "totalCost": "3000",
        }],
        "itemsToPurchase": [{
            "itemName": "Rebar #4", "category": "Steel",
            "quantity": 10, "unitCost": "12.5", "totalCost": "125",
        }],
        "laborCost": "1000", "materialCost": "500", "equipmentCost": "250", "overheadCost": "250",
    })
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["totalCost"] == 2000.0
    assert data["quotedPrice"] == 2600.0
    assert data["profitMargin"] == 30.0
    assert data["status"] == "draft"
    assert data["structures"][0]["structureType"] == "Manhole"
    assert data["itemsToPurchase"][0]["needsOrdering"] is True


def test_update_recomputes_quote(make_user, make_job, login):
    client = login(make_user(UserRole.Estimator))
    estimate_id = client.post("/estimates", json={
        "jobId": make_job(), "laborCost": "100",
    }).get_json()["data"]["id"]

    data = client.put(f"/estimates/{estimate_id}", json={"profitMargin": "50"}).get_json()["data"]
    assert data["totalCost"] == 100.0
    assert data["quotedPrice"] == 150.0


@pytest.mark.parametrize("body", [
    {"profitMargin": "101"},
    {"laborCost": "-1"},
    {"unknownField": 1},
])
def test_rejects_invalid_payloads(make_user, make_job, login, body):
    client = login(make_user(UserRole.Estimator))
    res = client.post("/estimates", json={"jobId": make_job(), **body})
    assert res.status_code == 400
    assert res.get_json()["errorType"] == "VALIDATION_ERROR"


def test_only_estimate_creators_may_create(make_user, make_job, login):
    res = login(make_user(UserRole.Drafter)).post("/estimates", json={"jobId": make_job()})
    assert res.status_code == 403


def test_unknown_job_is_404(make_user, login):
    res = login(make_user(UserRole.Estimator)).post("/estimates", json={"jobId": "nope"})
    assert res.status_code == 404


def test_soft_deleted_job_is_404(make_user, make_job, login, notifications_for):
    admin = make_user(UserRole.Admin)
    job_id = make_job(deleted_at=datetime.now())

    res = login(make_user(UserRole.Estimator)).post("/estimates", json={
        "jobId": job_id, "laborCost": "1", "status": "submitted",
    })
    assert res.status_code == 404
    assert res.get_json()["errorType"] == "NOT_FOUND"
    assert notifications_for(admin.id) == []
    assert login(admin).get(f"/estimates?jobId={job_id}").get_json()["data"] == []


def test_only_author_or_admin_may_update(make_user, make_job, login):
    author = make_user(UserRole.Estimator)
    other = make_user(UserRole.Estimator)
    estimate_id = login(author).post("/estimates", json={"jobId": make_job()}).get_json()["data"]["id"]

    assert login(other).put(f"/estimates/{estimate_id}", json={"notes": "x"}).status_code == 403
    assert login(other).delete(f"/estimates/{estimate_id}").status_code == 403
    admin = login(make_user(UserRole.Admin))
    assert admin.put(f"/estimates/{estimate_id}", json={"notes": "x"}).status_code == 200


def test_assigned_pm_is_adopted_by_job_without_one(make_user, make_job, login):
    client = login(make_user(UserRole.Estimator))
    pm = make_user(UserRole.ProjectManager)
    other_pm = make_user(UserRole.ProjectManager)
    bare_job = make_job(job_number="LP-010")
    staffed_job = make_job(job_number="LP-011", project_manager_id=other_pm.id)

    res = client.post("/estimates", json={"jobId": bare_job, "assignedPMId": pm.id})
    assert res.get_json()["data"]["assignedPMId"] == pm.id
    assert res.get_json()["data"]["assignedDate"] is not None
    client.post("/estimates", json={"jobId": staffed_job, "assignedPMId": pm.id})

    admin = login(make_user(UserRole.Admin))
    assert admin.get(f"/jobs/{bare_job}").get_json()["data"]["projectManagerId"] == pm.id
    assert admin.get(f"/jobs/{staffed_job}").get_json()["data"]["projectManagerId"] == other_pm.id


def test_unknown_assigned_pm_rejected(make_user, make_job, login):
    client = login(make_user(UserRole.Estimator))
    res = client.post("/estimates", json={"jobId": make_job(), "assignedPMId": "ghost"})
    assert res.status_code == 400
    assert "assignedPMId" in res.get_json()["details"]


def test_list_is_scoped_by_role(make_user, make_job, login):
    mine = make_user(UserRole.Estimator)
    theirs = make_user(UserRole.Estimator)
    pm = make_user(UserRole.ProjectManager)
    job_id = make_job()

    login(mine).post("/estimates", json={"jobId": job_id, "assignedPMId": pm.id})
    login(theirs).post("/estimates", json={"jobId": job_id})

    assert len(login(mine).get("/estimates").get_json()["data"]) == 1
    assert len(login(pm).get("/estimates").get_json()["data"]) == 1
    assert len(login(make_user(UserRole.Viewer)).get("/estimates").get_json()["data"]) == 2
    submitted = login(make_user(UserRole.Admin)).get("/estimates?status=submitted").get_json()["data"]
    assert submitted == []


def test_concurrent_creates_yield_distinct_versions(database, make_user, make_job):
    estimator = make_user(UserRole.Estimator)
    job_id = make_job()
    workers = 8

    def create(_):
        db = database.session()
        try:
            actor = db.get(User, estimator.id)
            estimate = EstimateService(db, AuditLogService(db)).create_estimate(
                data=EstimateCreateRequest(job_id=job_id, labor_cost=Decimal("10")),
                actor=actor,
            )
            db.commit()
            return estimate.version
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        versions = list(pool.map(create, range(workers)))
    assert sorted(versions) == list(range(1, workers + 1))
