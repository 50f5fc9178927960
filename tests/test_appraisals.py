from __future__ import annotations

import pytest

from services.appraisal_service import compute_hike_percentage


@pytest.fixture
def cycle_id(make_cycle):
    return make_cycle("active")


def _create(client, headers, cycle_id, **overrides):
    payload = {
        "employeeId": "emp-1",
        "cycleId": cycle_id,
        "reviewYear": 2025,
        "pastCtc": 100000,
        "currentCtc": 112000,
    }
    payload.update(overrides)
    return client.post("/api/appraisals", json=payload, headers=headers)


@pytest.mark.parametrize("past, current, expected", [
    (100000, 112000, 12.0),
    (100000, 90000, -10.0),
    (300000, 400000, 33.33),
    (0, 50000, 0.0),
])
def test_compute_hike_percentage(past, current, expected):
    assert compute_hike_percentage(past, current) == expected


def test_create_computes_hike_and_stamps_actor(client, hr_headers, cycle_id):
    res = _create(client, hr_headers, cycle_id)
    assert res.status_code == 201, res.json()
    data = res.json()["data"]
    assert data["hike_percentage"] == 12.0
    assert data["updated_by"] == "hr-1"
    assert data["employee"]["id"] == "emp-1"


def test_zero_past_ctc_gives_zero_hike(client, hr_headers, cycle_id):
    res = _create(client, hr_headers, cycle_id, pastCtc=0, currentCtc=50000)
    assert res.status_code == 201
    assert res.json()["data"]["hike_percentage"] == 0


def test_explicit_hike_is_kept(client, hr_headers, cycle_id):
    res = _create(client, hr_headers, cycle_id, hikePercentage=15.5)
    assert res.json()["data"]["hike_percentage"] == 15.5


def test_review_year_before_2000_is_rejected(client, hr_headers, cycle_id):
    res = _create(client, hr_headers, cycle_id, reviewYear=1999)
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_REVIEW_YEAR"


def test_updated_by_in_body_is_rejected(client, hr_headers, cycle_id):
    res = _create(client, hr_headers, cycle_id, updatedBy="emp-2")
    assert res.status_code == 400
    assert res.json()["code"] == "UPDATED_BY_NOT_ALLOWED"


def test_duplicate_employee_cycle_pair_is_409(client, hr_headers, cycle_id):
    assert _create(client, hr_headers, cycle_id).status_code == 201
    res = _create(client, hr_headers, cycle_id, reviewYear=2026)
    assert res.status_code == 409
    assert res.json()["code"] == "DUPLICATE_APPRAISAL"


def test_unknown_employee_or_cycle_is_404(client, hr_headers, cycle_id):
    res = _create(client, hr_headers, cycle_id, employeeId="ghost")
    assert res.status_code == 404
    assert res.json()["code"] == "EMPLOYEE_NOT_FOUND"

    res = _create(client, hr_headers, 999)
    assert res.status_code == 404
    assert res.json()["code"] == "CYCLE_NOT_FOUND"


def test_employees_cannot_manage_appraisals(client, auth, cycle_id):
    assert _create(client, auth("emp-1"), cycle_id).status_code == 403


def test_update_recomputes_hike_only_when_ctc_changes(client, hr_headers, admin_headers, cycle_id):
    appraisal_id = _create(client, hr_headers, cycle_id).json()["data"]["id"]

    res = client.put(f"/api/appraisals/{appraisal_id}", json={"notes": "Promoted"}, headers=admin_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["hike_percentage"] == 12.0
    assert data["notes"] == "Promoted"
    assert data["updated_by"] == "admin-1"

    res = client.put(f"/api/appraisals/{appraisal_id}", json={"currentCtc": 120000}, headers=hr_headers)
    assert res.json()["data"]["hike_percentage"] == 20.0

    res = client.put(
        f"/api/appraisals/{appraisal_id}",
        json={"currentCtc": 130000, "hikePercentage": 25},
        headers=hr_headers,
    )
    data = res.json()["data"]
    assert data["current_ctc"] == 130000
    assert data["hike_percentage"] == 25


def test_update_rejects_employee_change(client, hr_headers, cycle_id):
    appraisal_id = _create(client, hr_headers, cycle_id).json()["data"]["id"]
    res = client.put(f"/api/appraisals/{appraisal_id}", json={"employeeId": "emp-2"}, headers=hr_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "EMPLOYEE_ID_IMMUTABLE"


def test_update_cycle_checks_existence_and_uniqueness(client, hr_headers, make_cycle, cycle_id):
    other_cycle = make_cycle("active", name="H2")
    first = _create(client, hr_headers, cycle_id).json()["data"]["id"]
    _create(client, hr_headers, other_cycle)

    res = client.put(f"/api/appraisals/{first}", json={"cycleId": 999}, headers=hr_headers)
    assert res.status_code == 404

    res = client.put(f"/api/appraisals/{first}", json={"cycleId": other_cycle}, headers=hr_headers)
    assert res.status_code == 409
    assert res.json()["code"] == "DUPLICATE_APPRAISAL"

    # Re-saving its own cycle is not a conflict
    res = client.put(f"/api/appraisals/{first}", json={"cycleId": cycle_id}, headers=hr_headers)
    assert res.status_code == 200


def test_list_get_delete(client, hr_headers, cycle_id):
    appraisal_id = _create(client, hr_headers, cycle_id).json()["data"]["id"]
    _create(client, hr_headers, cycle_id, employeeId="emp-2")

    res = client.get("/api/appraisals", params={"employee_id": "emp-2"}, headers=hr_headers)
    assert [a["employee_id"] for a in res.json()["data"]] == ["emp-2"]

    res = client.get(f"/api/appraisals/{appraisal_id}", headers=hr_headers)
    assert res.status_code == 200
    assert res.json()["data"]["cycle_name"] == "H1 Review"

    assert client.delete(f"/api/appraisals/{appraisal_id}", headers=hr_headers).status_code == 200
    assert client.get(f"/api/appraisals/{appraisal_id}", headers=hr_headers).status_code == 404


def test_object_notes_are_rejected_before_storage(client, hr_headers, cycle_id):
    res = _create(client, hr_headers, cycle_id, notes={"x": 1})
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_NOTES"

    created = _create(client, hr_headers, cycle_id)
    res = client.put(
        f"/api/appraisals/{created.json()['data']['id']}",
        json={"notes": ["a", "b"]},
        headers=hr_headers,
    )
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_NOTES"
