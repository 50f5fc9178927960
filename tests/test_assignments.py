from __future__ import annotations

from unittest import mock

import pytest

from models import ReviewerAssignment, ReviewForm, ReviewNotification
from services.notification_service import NotificationService


def _post(client, headers, cycle_id, assignments):
    return client.post(
        f"/api/review-cycles/{cycle_id}/assignments",
        json={"assignments": assignments},
        headers=headers,
    )


def _counts(session_factory, cycle_id):
    with session_factory() as db:
        return (
            db.query(ReviewerAssignment).filter(ReviewerAssignment.cycle_id == cycle_id).count(),
            db.query(ReviewForm).filter(ReviewForm.cycle_id == cycle_id).count(),
            db.query(ReviewNotification).filter(ReviewNotification.notification_type == "review_requested").count(),
        )


ENTRIES = [
    {"employeeId": "emp-1", "reviewerId": "emp-2", "reviewerType": "peer"},
    {"employeeId": "emp-1", "reviewerId": "manager-1", "reviewerType": "manager"},
    {"employeeId": "emp-1", "reviewerId": "emp-1", "reviewerType": "self"},
]


def test_bulk_create_fans_out_forms_and_notifications(client, admin_headers, make_cycle, session_factory):
    cycle_id = make_cycle("active", name="2025 H1")

    res = _post(client, admin_headers, cycle_id, ENTRIES)
    assert res.status_code == 201, res.json()
    body = res.json()
    assert body["data"]["forms_created"] == 3
    assert len(body["data"]["assignments"]) == 3
    assert all(a["notified_at"] is not None for a in body["data"]["assignments"])
    assert all(a["status"] == "pending" for a in body["data"]["assignments"])
    assert "3" in body["message"]

    assert _counts(session_factory, cycle_id) == (3, 3, 3)

    with session_factory() as db:
        for assignment in db.query(ReviewerAssignment).filter(ReviewerAssignment.cycle_id == cycle_id):
            form = db.query(ReviewForm).filter(ReviewForm.assignment_id == assignment.id).one()
            assert form.composite_key == assignment.composite_key
            assert form.status == "pending"
            assert form.overall_rating is None

            notification = db.query(ReviewNotification).filter(ReviewNotification.related_id == form.id).one()
            assert notification.user_id == assignment.reviewer_id
            assert notification.is_read is False
            assert "Eve Employee" in notification.message
            assert "2025 H1" in notification.message


@pytest.mark.parametrize("status", ["locked", "completed"])
def test_closed_cycle_rejects_assignments_without_writing(client, admin_headers, make_cycle, session_factory, status):
    cycle_id = make_cycle(status)

    res = _post(client, admin_headers, cycle_id, ENTRIES)
    assert res.status_code == 409
    assert res.json()["code"] == "CYCLE_LOCKED"
    assert _counts(session_factory, cycle_id) == (0, 0, 0)


def test_duplicates_of_existing_tuple_are_all_reported(client, admin_headers, make_cycle, session_factory):
    cycle_id = make_cycle("active")
    assert _post(client, admin_headers, cycle_id, ENTRIES[:1]).status_code == 201

    res = _post(client, admin_headers, cycle_id, [ENTRIES[0], dict(ENTRIES[0])])
    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "DUPLICATE_ASSIGNMENTS"
    assert len(body["details"]) == 2
    assert all(d["employee_id"] == "emp-1" and d["reviewer_type"] == "peer" for d in body["details"])
    assert _counts(session_factory, cycle_id) == (1, 1, 1)


def test_duplicates_within_one_request_are_rejected(client, admin_headers, make_cycle, session_factory):
    cycle_id = make_cycle("active")

    res = _post(client, admin_headers, cycle_id, [ENTRIES[0], ENTRIES[1], dict(ENTRIES[0])])
    assert res.status_code == 409
    assert res.json()["code"] == "DUPLICATE_ASSIGNMENTS"
    assert len(res.json()["details"]) == 1
    assert _counts(session_factory, cycle_id) == (0, 0, 0)


def test_same_pair_with_different_type_is_not_a_duplicate(client, admin_headers, make_cycle):
    cycle_id = make_cycle("active")
    res = _post(client, admin_headers, cycle_id, [
        {"employeeId": "emp-1", "reviewerId": "emp-2", "reviewerType": "peer"},
        {"employeeId": "emp-1", "reviewerId": "emp-2", "reviewerType": "client"},
    ])
    assert res.status_code == 201


def test_all_missing_user_ids_are_collected(client, admin_headers, make_cycle, session_factory):
    cycle_id = make_cycle("active")

    res = _post(client, admin_headers, cycle_id, [
        {"employeeId": "ghost-1", "reviewerId": "emp-2", "reviewerType": "peer"},
        {"employeeId": "emp-1", "reviewerId": "ghost-2", "reviewerType": "peer"},
    ])
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "INVALID_USER_IDS"
    assert body["details"]["missing_user_ids"] == ["ghost-1", "ghost-2"]
    assert _counts(session_factory, cycle_id) == (0, 0, 0)


def test_malformed_entries_are_all_reported(client, admin_headers, make_cycle):
    cycle_id = make_cycle("active")
    res = _post(client, admin_headers, cycle_id, [
        {"employeeId": "emp-1", "reviewerId": "", "reviewerType": "peer"},
        {"employeeId": "emp-1", "reviewerId": "emp-2", "reviewerType": "boss"},
    ])
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"
    assert len(res.json()["details"]) == 2


def test_empty_list_and_unknown_cycle(client, admin_headers, make_cycle):
    cycle_id = make_cycle("active")
    res = _post(client, admin_headers, cycle_id, [])
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_ASSIGNMENTS"

    res = _post(client, admin_headers, 999, ENTRIES)
    assert res.status_code == 404
    assert res.json()["code"] == "CYCLE_NOT_FOUND"


def test_hr_cannot_create_assignments(client, hr_headers, make_cycle):
    cycle_id = make_cycle("active")
    assert _post(client, hr_headers, cycle_id, ENTRIES).status_code == 403


def test_list_assignments_includes_people(client, admin_headers, hr_headers, make_cycle):
    cycle_id = make_cycle("active")
    _post(client, admin_headers, cycle_id, ENTRIES)

    res = client.get(
        f"/api/review-cycles/{cycle_id}/assignments",
        params={"reviewer_id": "emp-2"},
        headers=hr_headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert len(data) == 1
    assert data[0]["employee"]["name"] == "Eve Employee"
    assert data[0]["reviewer"]["name"] == "Sam Staff"


def test_delete_assignment_removes_its_form(client, admin_headers, make_cycle, session_factory):
    cycle_id = make_cycle("active")
    created = _post(client, admin_headers, cycle_id, ENTRIES[:1]).json()["data"]["assignments"][0]

    res = client.delete(f"/api/assignments/{created['id']}", headers=admin_headers)
    assert res.status_code == 200

    with session_factory() as db:
        assert db.query(ReviewerAssignment).count() == 0
        assert db.query(ReviewForm).count() == 0


def test_delete_assignment_with_submitted_review_is_refused(client, admin_headers, make_cycle, session_factory):
    cycle_id = make_cycle("active")
    created = _post(client, admin_headers, cycle_id, ENTRIES[:1]).json()["data"]["assignments"][0]

    with session_factory() as db:
        db.query(ReviewForm).filter(ReviewForm.assignment_id == created["id"]).update({"status": "submitted"})
        db.commit()

    res = client.delete(f"/api/assignments/{created['id']}", headers=admin_headers)
    assert res.status_code == 409
    assert res.json()["code"] == "COMPLETED_REVIEW_EXISTS"


def test_failure_midway_through_fan_out_leaves_no_rows(client, admin_headers, make_cycle, session_factory):
    cycle_id = make_cycle("active")
    original = NotificationService.notify_review_requested
    calls = []

    def fail_on_second(self, *args, **kwargs):
        calls.append(1)
        if len(calls) == 2:
            raise RuntimeError("notification store unavailable")
        return original(self, *args, **kwargs)

    with mock.patch.object(NotificationService, "notify_review_requested", fail_on_second):
        with pytest.raises(RuntimeError):
            _post(client, admin_headers, cycle_id, ENTRIES)

    assert len(calls) == 2
    assert _counts(session_factory, cycle_id) == (0, 0, 0)
