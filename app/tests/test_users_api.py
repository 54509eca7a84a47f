# app/tests/test_users_api.py
from app.db.enums import UserRole

PASSWORD = "Passw0rd1"


def test_login_me_logout(app, make_user):
    user = make_user(UserRole.Estimator, email="eve@example.com")
    client = app.test_client()

    res = client.post("/auth/login", json={"email": "EVE@example.com", "password": PASSWORD})
    assert res.status_code == 200
    me = client.get("/auth/me").get_json()["data"]
    assert me["id"] == user.id
    assert me["role"] == "Estimator"
    assert me["permissions"]["canCreateEstimates"] is True
    assert me["permissions"]["canCreateJobs"] is False

    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401


def test_bad_credentials_and_inactive_accounts(app, make_user):
    make_user(UserRole.Viewer, email="v@example.com")
    make_user(UserRole.Viewer, email="gone@example.com", active=False)
    client = app.test_client()

    res = client.post("/auth/login", json={"email": "v@example.com", "password": "wrong"})
    assert res.status_code == 401
    res = client.post("/auth/login", json={"email": "gone@example.com", "password": PASSWORD})
    assert res.status_code == 403


def test_deactivated_user_loses_session(make_user, login):
    admin = login(make_user(UserRole.Admin))
    viewer = make_user(UserRole.Viewer)
    client = login(viewer)

    assert admin.put(f"/users/{viewer.id}", json={"isActive": False}).status_code == 200
    assert client.get("/jobs").status_code == 401


def test_admin_creates_users(make_user, login):
    admin = login(make_user(UserRole.Admin))
    res = admin.post("/users", json={
        "name": "Pat Manager", "email": "pat@example.com", "password": "Str0ngPass", "role": "Project Manager",
    })
    assert res.status_code == 201
    assert res.get_json()["data"]["role"] == "Project Manager"

    dup = admin.post("/users", json={
        "name": "Pat Again", "email": "PAT@example.com", "password": "Str0ngPass", "role": "Viewer",
    })
    assert dup.status_code == 409


def test_password_policy(make_user, login):
    admin = login(make_user(UserRole.Admin))
    res = admin.post("/users", json={"name": "Weak", "email": "w@example.com", "password": "short", "role": "Viewer"})
    assert res.status_code == 400
    assert res.get_json()["details"][0]["field"] == "password"


def test_only_user_managers_may_create(make_user, login):
    pm = login(make_user(UserRole.ProjectManager))
    res = pm.post("/users", json={"name": "Nope", "email": "n@example.com", "password": "Str0ngPass", "role": "Viewer"})
    assert res.status_code == 403


def test_list_users_by_role(make_user, login):
    make_user(UserRole.ProjectManager, name="Active PM")
    make_user(UserRole.ProjectManager, name="Retired PM", active=False)
    client = login(make_user(UserRole.Estimator))

    names = [u["name"] for u in client.get("/users", query_string={"role": "Project Manager"}).get_json()["data"]]
    assert names == ["Active PM"]
    # inactive users only for user managers
    assert len(client.get("/users", query_string={"role": "Project Manager", "includeInactive": "true"}).get_json()["data"]) == 1
    admin = login(make_user(UserRole.Admin))
    assert len(admin.get("/users", query_string={"role": "Project Manager", "includeInactive": "true"}).get_json()["data"]) == 2
