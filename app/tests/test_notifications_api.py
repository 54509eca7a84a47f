# app/tests/test_notifications_api.py
import pytest

from app.db.enums import UserRole


@pytest.fixture
def inbox(make_user, login, notifications_for):
    """An admin with three notifications, produced by a PM adding customers."""
    admin = make_user(UserRole.Admin)
    pm_client = login(make_user(UserRole.ProjectManager, name="Sam"))
    for name in ("Acme", "Bolt", "Crane"):
        assert pm_client.post("/customers", json={"companyName": name}).status_code == 201
    return admin, [n.id for n in notifications_for(admin.id)]


def test_list_returns_own_notifications_with_unread_count(inbox, make_user, login):
    admin, ids = inbox
    body = login(admin).get("/notifications").get_json()
    assert body["unreadCount"] == 3
    assert {n["id"] for n in body["data"]} == set(ids)
    assert body["data"][0]["type"] == "customer_created"

    other = login(make_user(UserRole.Admin)).get("/notifications").get_json()
    assert other["data"] == [] and other["unreadCount"] == 0


def test_mark_read_and_unread(inbox, login):
    admin, ids = inbox
    client = login(admin)

    res = client.patch("/notifications", json={"notificationId": ids[0], "read": True})
    assert res.status_code == 200
    assert res.get_json()["data"]["read"] is True
    assert client.get("/notifications").get_json()["unreadCount"] == 2
    assert len(client.get("/notifications?unreadOnly=true").get_json()["data"]) == 2

    client.patch("/notifications", json={"notificationId": ids[0], "read": False})
    assert client.get("/notifications").get_json()["unreadCount"] == 3


def test_read_flag_must_be_boolean(inbox, login):
    admin, ids = inbox
    res = login(admin).patch("/notifications", json={"notificationId": ids[0], "read": "yes"})
    assert res.status_code == 400


def test_cannot_touch_someone_elses_notification(inbox, make_user, login):
    _, ids = inbox
    intruder = login(make_user(UserRole.Admin))
    assert intruder.patch("/notifications", json={"notificationId": ids[0], "read": True}).status_code == 404
    assert intruder.delete(f"/notifications?id={ids[0]}").status_code == 404


def test_mark_all_read(inbox, login):
    admin, _ = inbox
    client = login(admin)
    res = client.post("/notifications", json={"action": "markAllRead"})
    assert res.get_json() == {"success": True, "message": "All notifications marked as read", "updated": 3}
    assert client.get("/notifications").get_json()["unreadCount"] == 0


def test_unknown_action_rejected(inbox, login):
    admin, _ = inbox
    assert login(admin).post("/notifications", json={"action": "explode"}).status_code == 400


def test_delete_one_then_clear_read(inbox, login):
    admin, ids = inbox
    client = login(admin)

    assert client.delete(f"/notifications?id={ids[0]}").get_json()["message"] == "Notification deleted"
    client.patch("/notifications", json={"notificationId": ids[1], "read": True})

    assert client.delete("/notifications").status_code == 200
    remaining = client.get("/notifications").get_json()["data"]
    assert [n["id"] for n in remaining] == [ids[2]]
