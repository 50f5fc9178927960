"""
Bulk reviewer assignment with review form and notification fan-out.

One request creates N assignments, N review forms and N ``review_requested``
notifications in a single transaction. Rows are matched to each other by
their (employee_id, reviewer_id, reviewer_type) key, never by list position.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import atomic
from models import ReviewComment, ReviewCycle, ReviewerAssignment, ReviewForm, User
from services.notification_service import notification_service
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.validation import unwrap, validate_assignment_entries

logger = logging.getLogger(__name__)


def _composite_key(entry: Dict[str, Any]):
    return (entry["employee_id"], entry["reviewer_id"], entry["reviewer_type"])


def _key_dict(key) -> Dict[str, str]:
    employee_id, reviewer_id, reviewer_type = key
    return {"employee_id": employee_id, "reviewer_id": reviewer_id, "reviewer_type": reviewer_type}


def _missing_user_ids(db: Session, entries: List[Dict[str, Any]]) -> List[str]:
    referenced = []
    for entry in entries:
        for user_id in (entry["employee_id"], entry["reviewer_id"]):
            if user_id not in referenced:
                referenced.append(user_id)

    found = {row.id for row in db.query(User.id).filter(User.id.in_(referenced)).all()}
    return [user_id for user_id in referenced if user_id not in found]


def _duplicate_entries(db: Session, cycle_id: int, entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    existing = {
        assignment.composite_key
        for assignment in db.query(ReviewerAssignment).filter(ReviewerAssignment.cycle_id == cycle_id).all()
    }

    duplicates = []
    seen = set()
    for entry in entries:
        key = _composite_key(entry)
        if key in existing:
            duplicates.append({**_key_dict(key), "reason": "already assigned in this cycle"})
        elif key in seen:
            duplicates.append({**_key_dict(key), "reason": "repeated in request"})
        seen.add(key)
    return duplicates


def create_assignments(db: Session, cycle_id: int, entries: Any, assigner: User) -> Dict[str, Any]:
    """
    Create reviewer assignments for a cycle.

    All preconditions are checked before the first write and each check
    reports every offending entry, not only the first one found.
    """
    if not isinstance(entries, list) or not entries:
        raise ValidationError(
            "Assignments array is required and must not be empty",
            code="INVALID_ASSIGNMENTS"
        )

    cycle = db.query(ReviewCycle).filter(ReviewCycle.id == cycle_id).first()
    if not cycle:
        raise NotFoundError("Review cycle not found", code="CYCLE_NOT_FOUND")

    if cycle.is_closed:
        logger.warning(f"Rejected assignments for {cycle.status} cycle {cycle_id}")
        raise ConflictError(
            f"Cannot create assignments for a {cycle.status} cycle",
            code="CYCLE_LOCKED",
            current_status=cycle.status
        )

    data = unwrap(validate_assignment_entries(entries))

    missing = _missing_user_ids(db, data)
    if missing:
        raise ValidationError(
            f"Unknown user id(s): {', '.join(missing)}",
            code="INVALID_USER_IDS",
            details={"missing_user_ids": missing}
        )

    duplicates = _duplicate_entries(db, cycle.id, data)
    if duplicates:
        raise ConflictError(
            f"{len(duplicates)} assignment(s) already exist for this cycle",
            code="DUPLICATE_ASSIGNMENTS",
            details=duplicates
        )

    employee_names = {
        user.id: user.name
        for user in db.query(User).filter(User.id.in_({entry["employee_id"] for entry in data})).all()
    }

    try:
        with atomic(db):
            assignments = [
                ReviewerAssignment(
                    cycle_id=cycle.id,
                    assigned_by=assigner.id,
                    status="pending",
                    notified_at=None,
                    **entry
                )
                for entry in data
            ]
            db.add_all(assignments)
            db.flush()

            by_key = {assignment.composite_key: assignment for assignment in assignments}

            forms = [
                ReviewForm(
                    assignment_id=assignment.id,
                    cycle_id=cycle.id,
                    employee_id=assignment.employee_id,
                    reviewer_id=assignment.reviewer_id,
                    reviewer_type=assignment.reviewer_type,
                    status="pending"
                )
                for assignment in by_key.values()
            ]
            db.add_all(forms)
            db.flush()

            notified_at = datetime.now(timezone.utc)
            for form in forms:
                notification_service.notify_review_requested(
                    db, form, cycle, employee_names.get(form.employee_id)
                )
                by_key[form.composite_key].notified_at = notified_at
    except IntegrityError as e:
        # A concurrent request inserted one of the tuples after our duplicate check
        logger.warning(f"Assignment insert for cycle {cycle_id} hit a uniqueness conflict: {str(e)}")
        raise ConflictError(
            "One or more assignments already exist for this cycle",
            code="DUPLICATE_ASSIGNMENTS"
        )

    for assignment in assignments:
        db.refresh(assignment)

    logger.info(f"👥 Created {len(assignments)} assignments and {len(forms)} review forms for cycle {cycle_id}")
    return {
        "assignments": [assignment.to_dict() for assignment in assignments],
        "forms_created": len(forms),
        "message": f"Successfully created {len(assignments)} assignments and {len(forms)} review forms",
    }


def list_assignments(
    db: Session,
    cycle_id: int,
    employee_id: Optional[str] = None,
    reviewer_id: Optional[str] = None,
    status: Optional[str] = None
) -> List[Dict[str, Any]]:
    query = db.query(ReviewerAssignment).filter(ReviewerAssignment.cycle_id == cycle_id)
    if employee_id:
        query = query.filter(ReviewerAssignment.employee_id == employee_id)
    if reviewer_id:
        query = query.filter(ReviewerAssignment.reviewer_id == reviewer_id)
    if status:
        query = query.filter(ReviewerAssignment.status == status)
    assignments = query.order_by(ReviewerAssignment.id).all()

    user_ids = {a.employee_id for a in assignments} | {a.reviewer_id for a in assignments}
    users = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()} if user_ids else {}

    results = []
    for assignment in assignments:
        employee = users.get(assignment.employee_id)
        reviewer = users.get(assignment.reviewer_id)
        results.append({
            **assignment.to_dict(),
            "employee": employee.summary() if employee else None,
            "reviewer": reviewer.summary() if reviewer else None,
        })
    return results


def delete_assignment(db: Session, assignment_id: int) -> Dict[str, Any]:
    assignment = db.query(ReviewerAssignment).filter(ReviewerAssignment.id == assignment_id).first()
    if not assignment:
        raise NotFoundError("Assignment not found")

    form = db.query(ReviewForm).filter(ReviewForm.assignment_id == assignment.id).first()
    if form and form.status == "submitted":
        raise ConflictError(
            "Cannot delete an assignment whose review has been submitted",
            code="COMPLETED_REVIEW_EXISTS"
        )

    snapshot = assignment.to_dict()
    with atomic(db):
        if form:
            db.query(ReviewComment).filter(ReviewComment.form_id == form.id).delete(synchronize_session=False)
            db.delete(form)
            db.flush()
        db.delete(assignment)

    logger.info(f"🗑️ Assignment {assignment_id} deleted")
    return snapshot
