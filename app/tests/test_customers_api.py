# app/tests/test_customers_api.py
from app.db.enums import UserRole
from app.services.audit_log_service import AuditLogService
from app.services.customer_service import CustomerService


def test_any_user_may_add_a_customer(make_user, login):
    client = login(make_user(UserRole.Drafter))
    res = client.post("/customers", json={
        "companyName": "Acme Precast",
        "name": "Jane Roe",
        "email": " Jane@Acme.COM ",
        "address": {"street": "1 Main St", "city": "Austin", "state": "TX", "zip": "78701"},
    })
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["companyName"] == "Acme Precast"
    assert data["email"] == "jane@acme.com"
    assert data["address"] == {"street": "1 Main St", "city": "Austin", "state": "TX", "zip": "78701"}


def test_company_name_required_and_email_checked(make_user, login):
    client = login(make_user(UserRole.Admin))
    assert client.post("/customers", json={"name": "No Company"}).status_code == 400
    assert client.post("/customers", json={"companyName": "Acme", "email": "nope"}).status_code == 400


def test_update_needs_edit_capability(make_user, make_customer, login):
    customer_id = make_customer()
    assert login(make_user(UserRole.Estimator)).put(
        f"/customers/{customer_id}", json={"phone": "555"}
    ).status_code == 403

    res = login(make_user(UserRole.ProjectManager)).patch(f"/customers/{customer_id}", json={"phone": "555-0100"})
    assert res.status_code == 200
    assert res.get_json()["data"]["phone"] == "555-0100"
    assert res.get_json()["data"]["companyName"] == "Acme Precast"


def test_soft_delete_hides_customer(make_user, make_customer, login):
    customer_id = make_customer()
    assert login(make_user(UserRole.ProjectManager)).delete(f"/customers/{customer_id}").status_code == 403

    admin = login(make_user(UserRole.Admin))
    assert admin.delete(f"/customers/{customer_id}").status_code == 200
    assert admin.get(f"/customers/{customer_id}").status_code == 404
    assert admin.get("/customers").get_json()["data"] == []
    assert len(admin.get("/customers?includeDeleted=true").get_json()["data"]) == 1


def test_purge_keeps_customers_still_used_by_jobs(make_customer, make_job, session_scope):
    used = make_customer("Used Co", deleted=True)
    make_customer("Gone Co", deleted=True)
    make_customer("Live Co")
    make_job(customer_id=used)

    with session_scope() as db:
        purged = CustomerService(db, AuditLogService(db)).purge_deleted_customers()
    assert purged == ["Gone Co"]

    with session_scope() as db:
        names = {c.company_name for c in CustomerService(db, AuditLogService(db)).list_customers(include_deleted=True)}
    assert names == {"Used Co", "Live Co"}
