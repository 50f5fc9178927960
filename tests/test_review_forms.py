from __future__ import annotations

import pytest

from models import ReviewComment, ReviewCycle, ReviewerAssignment, ReviewForm, ReviewNotification
from services.review_form_service import rating_from_kpis

COMPLETE = {
    "overallRating": 4,
    "goalsAchievement": "Shipped the billing rewrite",
    "strengths": "Ownership",
    "improvements": "Delegation",
}


@pytest.fixture
def form_id(client, admin_headers, make_cycle):
    cycle_id = make_cycle("active")
    res = client.post(
        f"/api/review-cycles/{cycle_id}/assignments",
        json={"assignments": [{"employeeId": "emp-1", "reviewerId": "emp-2", "reviewerType": "peer"}]},
        headers=admin_headers,
    )
    assert res.status_code == 201
    with_forms = client.get(f"/api/review-cycles/{cycle_id}", headers=admin_headers).json()["data"]
    return with_forms["forms"][0]["id"]


def _put(client, headers, form_id, body):
    return client.put(f"/api/review-forms/{form_id}", json=body, headers=headers)


def test_reviewer_saves_draft(client, auth, form_id):
    res = _put(client, auth("emp-2"), form_id, {"status": "draft", "strengths": "Ownership"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status"] == "draft"
    assert data["strengths"] == "Ownership"
    assert data["submitted_at"] is None
    assert res.json()["message"] == "Review form saved"


def test_submit_completes_assignment_and_notifies_employee(client, auth, form_id, session_factory):
    res = _put(client, auth("emp-2"), form_id, {**COMPLETE, "status": "submitted"})
    assert res.status_code == 200, res.json()
    data = res.json()["data"]
    assert data["status"] == "submitted"
    assert data["submitted_at"] is not None
    assert data["employee"]["id"] == "emp-1"

    with session_factory() as db:
        form = db.query(ReviewForm).filter(ReviewForm.id == form_id).one()
        assignment = db.query(ReviewerAssignment).filter(ReviewerAssignment.id == form.assignment_id).one()
        assert assignment.status == "completed"
        notification = db.query(ReviewNotification).filter(
            ReviewNotification.notification_type == "review_submitted"
        ).one()
        assert notification.user_id == "emp-1"
        assert notification.related_id == form_id


def test_incomplete_submission_is_rejected(client, auth, form_id, session_factory):
    res = _put(client, auth("emp-2"), form_id, {"status": "submitted", "overallRating": 3})
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "INCOMPLETE_FORM"
    assert body["details"]["missing_fields"] == ["goals_achievement", "strengths", "improvements"]

    with session_factory() as db:
        assert db.query(ReviewForm).filter(ReviewForm.id == form_id).one().status == "pending"


def test_rating_out_of_range(client, auth, form_id):
    res = _put(client, auth("emp-2"), form_id, {"overallRating": 6})
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_RATING"


def test_rating_derived_from_kpis(client, auth, form_id):
    res = _put(client, auth("emp-2"), form_id, {
        "kpiScores": [{"name": "Delivery", "score": 4}, {"name": "Quality", "score": 5}],
    })
    assert res.status_code == 200
    assert res.json()["data"]["overall_rating"] == 5


@pytest.mark.parametrize("scores, expected", [
    ([{"score": 3}, {"score": 4}], 4),
    ([{"score": 2}, {"score": 2}, {"score": 3}], 2),
    ([], None),
    (None, None),
])
def test_rating_from_kpis_rounds_half_up(scores, expected):
    assert rating_from_kpis(scores) == expected


def test_other_employee_cannot_edit(client, auth, form_id):
    res = _put(client, auth("manager-1"), form_id, {"strengths": "x"})
    assert res.status_code == 403
    assert res.json()["code"] == "PERMISSION_DENIED"


def test_locked_cycle_blocks_edits(client, auth, form_id, session_factory):
    with session_factory() as db:
        db.query(ReviewCycle).update({"status": "locked"})
        db.commit()

    res = _put(client, auth("emp-2"), form_id, {"strengths": "x"})
    assert res.status_code == 409
    assert res.json()["code"] == "CYCLE_LOCKED"


def test_submitted_form_is_locked_except_for_approval(client, auth, hr_headers, form_id):
    _put(client, auth("emp-2"), form_id, {**COMPLETE, "status": "submitted"})

    res = _put(client, auth("emp-2"), form_id, {"strengths": "Changed my mind"})
    assert res.status_code == 409
    assert res.json()["code"] == "FORM_LOCKED"

    res = _put(client, auth("emp-2"), form_id, {"status": "approved"})
    assert res.status_code == 409

    res = _put(client, hr_headers, form_id, {"status": "approved"})
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "approved"


def test_pending_form_cannot_jump_to_approved(client, hr_headers, form_id):
    res = _put(client, hr_headers, form_id, {"status": "approved"})
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_STATUS_TRANSITION"


def test_form_visibility(client, auth, hr_headers, form_id):
    assert client.get(f"/api/review-forms/{form_id}", headers=auth("emp-1")).status_code == 200
    assert client.get(f"/api/review-forms/{form_id}", headers=auth("emp-2")).status_code == 200
    assert client.get(f"/api/review-forms/{form_id}", headers=hr_headers).status_code == 200

    res = client.get(f"/api/review-forms/{form_id}", headers=auth("manager-1"))
    assert res.status_code == 403
    assert res.json()["code"] == "PERMISSION_DENIED"

    assert client.get("/api/review-forms", headers=auth("manager-1")).json()["data"] == []
    assert len(client.get("/api/review-forms", headers=auth("emp-2")).json()["data"]) == 1


def test_only_admin_deletes_forms(client, admin_headers, hr_headers, form_id):
    assert client.delete(f"/api/review-forms/{form_id}", headers=hr_headers).status_code == 403
    assert client.delete(f"/api/review-forms/{form_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/review-forms/{form_id}", headers=admin_headers).status_code == 404


def test_review_stats(client, auth, hr_headers, form_id):
    _put(client, auth("emp-2"), form_id, {**COMPLETE, "status": "submitted"})

    res = client.get("/api/review-forms/stats", headers=hr_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["forms"] == {"submitted": 1}
    assert data["assignments"] == {"completed": 1}
    assert data["cycles"] == {"active": 1}

    res = client.get("/api/review-forms/stats", headers=auth("emp-1"))
    data = res.json()["data"]
    assert data["reviews_received"] == {"submitted": 1}
    assert data["reviews_to_complete"] == {}


def test_comments_on_a_form(client, auth, hr_headers, form_id):
    manager = auth("manager-1", "manager")
    res = client.post(f"/api/review-forms/{form_id}/comments", json={"comment": "  Solid peer feedback  "}, headers=manager)
    assert res.status_code == 201, res.json()
    data = res.json()["data"]
    assert data["comment"] == "Solid peer feedback"
    assert data["commenter_role"] == "manager"
    assert data["commenter_name"] == "Max Manager"

    client.post(f"/api/review-forms/{form_id}/comments", json={"comment": "Agreed"}, headers=hr_headers)

    res = client.get(f"/api/review-forms/{form_id}/comments", headers=hr_headers)
    assert res.status_code == 200
    assert [c["comment"] for c in res.json()["data"]] == ["Solid peer feedback", "Agreed"]
    assert res.json()["data"][1]["commenter_email"] == "hr@example.com"


def test_comment_rules(client, auth, form_id):
    manager = auth("manager-1", "manager")
    res = client.post(f"/api/review-forms/{form_id}/comments", json={"comment": "   "}, headers=manager)
    assert res.status_code == 400
    assert res.json()["code"] == "COMMENT_REQUIRED"

    res = client.post("/api/review-forms/999/comments", json={"comment": "Hi"}, headers=manager)
    assert res.status_code == 404

    res = client.post(f"/api/review-forms/{form_id}/comments", json={"comment": "Hi"}, headers=auth("emp-2"))
    assert res.status_code == 403
    assert client.get(f"/api/review-forms/{form_id}/comments", headers=auth("emp-1")).status_code == 403


def test_deleting_a_form_removes_its_comments(client, admin_headers, form_id, session_factory):
    client.post(f"/api/review-forms/{form_id}/comments", json={"comment": "Note"}, headers=admin_headers)
    res = client.delete(f"/api/review-forms/{form_id}", headers=admin_headers)
    assert res.status_code == 200

    with session_factory() as db:
        assert db.query(ReviewComment).count() == 0
