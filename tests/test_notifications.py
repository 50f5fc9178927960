from __future__ import annotations

from models import ReviewNotification


def _seed(session_factory, user_id="emp-1", is_read=False, title="Hello"):
    with session_factory() as db:
        notification = ReviewNotification(
            user_id=user_id,
            notification_type="reminder",
            title=title,
            message="Please finish your review",
            is_read=is_read,
        )
        db.add(notification)
        db.commit()
        return notification.id


def test_list_returns_only_own_notifications(client, auth, session_factory):
    mine = _seed(session_factory, "emp-1")
    _seed(session_factory, "emp-2")

    res = client.get("/api/notifications", headers=auth("emp-1"))
    assert res.status_code == 200
    assert [n["id"] for n in res.json()["data"]] == [mine]


def test_list_filters_by_read_flag(client, auth, session_factory):
    unread = _seed(session_factory, is_read=False)
    _seed(session_factory, is_read=True)

    res = client.get("/api/notifications", params={"is_read": "false"}, headers=auth("emp-1"))
    assert [n["id"] for n in res.json()["data"]] == [unread]


def test_mark_read(client, auth, session_factory):
    notification_id = _seed(session_factory)
    res = client.patch(f"/api/notifications/{notification_id}/read", headers=auth("emp-1"))
    assert res.status_code == 200
    assert res.json()["data"]["is_read"] is True


def test_mark_read_on_someone_elses_notification(client, auth, session_factory):
    notification_id = _seed(session_factory, "emp-2")
    res = client.patch(f"/api/notifications/{notification_id}/read", headers=auth("emp-1"))
    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"

    res = client.patch("/api/notifications/999/read", headers=auth("emp-1"))
    assert res.status_code == 404


def test_admin_sends_notification(client, admin_headers, auth):
    res = client.post(
        "/api/notifications",
        json={"userId": "emp-1", "notificationType": "reminder", "title": "Due", "message": "Review due Friday"},
        headers=admin_headers,
    )
    assert res.status_code == 201
    assert res.json()["data"]["user_id"] == "emp-1"

    inbox = client.get("/api/notifications", headers=auth("emp-1")).json()["data"]
    assert [n["title"] for n in inbox] == ["Due"]


def test_send_notification_validation(client, admin_headers, hr_headers):
    body = {"userId": "emp-1", "notificationType": "party", "title": "x", "message": "y"}
    res = client.post("/api/notifications", json=body, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_NOTIFICATION_TYPE"

    res = client.post("/api/notifications", json={**body, "notificationType": "reminder", "userId": "ghost"},
                      headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "USER_NOT_FOUND"

    res = client.post("/api/notifications", json={**body, "notificationType": "reminder"}, headers=hr_headers)
    assert res.status_code == 403
