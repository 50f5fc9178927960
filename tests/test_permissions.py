from __future__ import annotations

import pytest

from utils.permissions import can_perform


@pytest.mark.parametrize("operation", [
    "manage_users",
    "review_onboarding",
    "manage_cycles",
    "manage_assignments",
    "manage_appraisals",
    "send_notifications",
    "delete_forms",
])
def test_admin_can_perform_every_workflow_operation(operation):
    assert can_perform("admin", operation) is True


def test_hr_reviews_onboarding_but_does_not_manage_cycles():
    assert can_perform("hr", "review_onboarding") is True
    assert can_perform("hr", "manage_appraisals") is True
    assert can_perform("hr", "manage_cycles") is False
    assert can_perform("hr", "manage_assignments") is False
    assert can_perform("hr", "manage_users") is False


@pytest.mark.parametrize("role", ["manager", "employee", "intern"])
def test_non_privileged_roles_have_no_admin_operations(role):
    assert can_perform(role, "review_onboarding") is False
    assert can_perform(role, "manage_cycles") is False
    assert can_perform(role, "view_all_forms") is False


def test_unknown_or_missing_role_is_denied():
    assert can_perform(None, "manage_cycles") is False
    assert can_perform("", "manage_cycles") is False
    assert can_perform("superuser", "manage_cycles") is False


def test_role_lookup_is_case_insensitive():
    assert can_perform("ADMIN", "manage_cycles") is True


def test_missing_token_is_401(client):
    res = client.get("/api/review-cycles")
    assert res.status_code == 401
    assert res.json()["success"] is False
    assert res.json()["code"] == "AUTHENTICATION_REQUIRED"


def test_garbage_token_is_401(client):
    res = client.get("/api/review-cycles", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_TOKEN"


def test_employee_token_is_403_on_admin_route(client, auth):
    res = client.post("/api/review-cycles", json={}, headers=auth("emp-1"))
    assert res.status_code == 403
    assert res.json()["code"] == "INSUFFICIENT_PERMISSIONS"


def test_role_comes_from_store_not_token(client, auth):
    # Token claims admin, stored user is an employee
    res = client.post("/api/review-cycles", json={}, headers=auth("emp-1", "admin"))
    assert res.status_code == 403


def test_inactive_user_is_rejected(client, auth, session_factory):
    from models import User

    with session_factory() as db:
        user = db.query(User).filter(User.id == "emp-2").first()
        user.status = "inactive"
        db.commit()

    res = client.get("/api/notifications", headers=auth("emp-2"))
    assert res.status_code == 403
    assert res.json()["code"] == "ACCOUNT_INACTIVE"
