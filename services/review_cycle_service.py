"""
Review cycle lifecycle: create, lock, reopen, update, delete.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from database import atomic
from models import ReviewComment, ReviewCycle, ReviewerAssignment, ReviewForm, User
from models.review import CYCLE_STATUSES, CYCLE_TYPES
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.validation import unwrap, validate_cycle_create, validate_cycle_update

logger = logging.getLogger(__name__)

LOCKABLE_STATUSES = ("active", "draft")
EXPORTED_FORM_STATUSES = ("submitted", "approved")


def get_cycle_or_404(db: Session, cycle_id: int) -> ReviewCycle:
    cycle = db.query(ReviewCycle).filter(ReviewCycle.id == cycle_id).first()
    if not cycle:
        raise NotFoundError("Review cycle not found")
    return cycle


def summarize_forms(forms: List[ReviewForm]) -> Dict[str, Any]:
    ratings = [f.overall_rating for f in forms if f.overall_rating is not None]
    return {
        "total": len(forms),
        "submitted": sum(1 for f in forms if f.status in ("submitted", "approved")),
        "pending": sum(1 for f in forms if f.status in ("pending", "draft")),
        "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
    }


def create_cycle(db: Session, payload: Dict[str, Any], creator: User) -> ReviewCycle:
    data = unwrap(validate_cycle_create(payload))

    cycle = ReviewCycle(created_by=creator.id, **data)
    with atomic(db):
        db.add(cycle)

    db.refresh(cycle)
    logger.info(f"📅 Review cycle {cycle.id} '{cycle.name}' created by {creator.id}")
    return cycle


def list_cycles(db: Session, status: Optional[str] = None, cycle_type: Optional[str] = None) -> List[ReviewCycle]:
    query = db.query(ReviewCycle)
    if status in CYCLE_STATUSES:
        query = query.filter(ReviewCycle.status == status)
    if cycle_type in CYCLE_TYPES:
        query = query.filter(ReviewCycle.cycle_type == cycle_type)
    return query.order_by(ReviewCycle.start_date.desc(), ReviewCycle.id.desc()).all()


def get_cycle_detail(db: Session, cycle_id: int) -> Dict[str, Any]:
    cycle = get_cycle_or_404(db, cycle_id)
    forms = (
        db.query(ReviewForm)
        .filter(ReviewForm.cycle_id == cycle.id)
        .order_by(ReviewForm.id)
        .all()
    )
    return {
        **cycle.to_dict(),
        "forms": [form.to_dict() for form in forms],
        "summary": summarize_forms(forms),
    }


def lock_cycle(db: Session, cycle_id: int) -> ReviewCycle:
    cycle = get_cycle_or_404(db, cycle_id)

    if cycle.status not in LOCKABLE_STATUSES:
        raise ValidationError(
            f"Cannot lock cycle with status: {cycle.status}",
            code="INVALID_STATUS_TRANSITION",
            current_status=cycle.status
        )

    with atomic(db):
        cycle.status = "locked"

    db.refresh(cycle)
    logger.info(f"🔒 Review cycle {cycle_id} locked")
    return cycle


def reopen_cycle(db: Session, cycle_id: int) -> ReviewCycle:
    cycle = get_cycle_or_404(db, cycle_id)

    # Completed is terminal even though nothing in this service produces it
    if cycle.status == "completed":
        raise ValidationError(
            "Cannot reopen a completed cycle",
            code="CANNOT_REOPEN_COMPLETED",
            current_status=cycle.status
        )
    if cycle.status != "locked":
        raise ValidationError(
            f"Cannot reopen cycle with status: {cycle.status}. Only locked cycles can be reopened.",
            code="INVALID_STATUS_TRANSITION",
            current_status=cycle.status
        )

    with atomic(db):
        cycle.status = "active"

    db.refresh(cycle)
    logger.info(f"🔓 Review cycle {cycle_id} reopened")
    return cycle


def update_cycle(db: Session, cycle_id: int, payload: Dict[str, Any]) -> ReviewCycle:
    cycle = get_cycle_or_404(db, cycle_id)
    changes = unwrap(validate_cycle_update(payload, cycle.start_date, cycle.end_date))

    if cycle.status == "locked" and changes.get("status") == "active":
        raise ValidationError(
            "Cannot unlock cycle via update. Use the reopen endpoint instead.",
            code="LOCKED_CYCLE",
            current_status=cycle.status
        )

    with atomic(db):
        for field, value in changes.items():
            setattr(cycle, field, value)

    db.refresh(cycle)
    logger.info(f"✏️ Review cycle {cycle_id} updated: {', '.join(changes) or 'no changes'}")
    return cycle


def delete_cycle(db: Session, cycle_id: int) -> Dict[str, Any]:
    cycle = get_cycle_or_404(db, cycle_id)

    submitted = db.query(ReviewForm).filter(
        ReviewForm.cycle_id == cycle.id,
        ReviewForm.status == "submitted"
    ).count()
    if submitted:
        raise ConflictError(
            f"Cannot delete cycle with {submitted} submitted review form(s)",
            code="HAS_SUBMITTED_FORMS",
            submitted_count=submitted
        )

    snapshot = cycle.to_dict()
    with atomic(db):
        form_ids = db.query(ReviewForm.id).filter(ReviewForm.cycle_id == cycle.id)
        db.query(ReviewComment).filter(
            ReviewComment.form_id.in_(form_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        forms_deleted = db.query(ReviewForm).filter(
            ReviewForm.cycle_id == cycle.id
        ).delete(synchronize_session=False)
        assignments_deleted = db.query(ReviewerAssignment).filter(
            ReviewerAssignment.cycle_id == cycle.id
        ).delete(synchronize_session=False)
        db.delete(cycle)

    logger.info(
        f"🗑️ Review cycle {cycle_id} deleted "
        f"({forms_deleted} forms, {assignments_deleted} assignments)"
    )
    return snapshot


def _average(ratings: List[int]) -> float:
    return round(sum(ratings) / len(ratings), 2) if ratings else 0


def export_cycle(db: Session, cycle_id: int) -> Dict[str, Any]:
    """
    Completed reviews of a cycle, grouped per employee.

    Submitted and approved forms count as completed. Employees are sorted by
    name; ratings outside 1-5 are left out of the distribution.
    """
    cycle = get_cycle_or_404(db, cycle_id)
    forms = (
        db.query(ReviewForm)
        .filter(ReviewForm.cycle_id == cycle.id, ReviewForm.status.in_(EXPORTED_FORM_STATUSES))
        .order_by(ReviewForm.id)
        .all()
    )

    people_ids = {f.employee_id for f in forms} | {f.reviewer_id for f in forms}
    people = {u.id: u for u in db.query(User).filter(User.id.in_(people_ids)).all()} if people_ids else {}

    by_employee: Dict[str, List[ReviewForm]] = {}
    for form in forms:
        by_employee.setdefault(form.employee_id, []).append(form)

    reviews = []
    for employee_id, employee_forms in by_employee.items():
        employee = people.get(employee_id)
        reviews.append({
            "employee_id": employee_id,
            "employee_name": employee.name if employee else "Unknown",
            "employee_email": employee.email if employee else None,
            "reviews": [
                {
                    "form_id": form.id,
                    "reviewer_id": form.reviewer_id,
                    "reviewer_name": people[form.reviewer_id].name if form.reviewer_id in people else "Unknown",
                    "reviewer_type": form.reviewer_type,
                    "status": form.status,
                    "overall_rating": form.overall_rating,
                    "goals_achievement": form.goals_achievement,
                    "strengths": form.strengths,
                    "improvements": form.improvements,
                    "kpi_scores": form.kpi_scores,
                    "additional_comments": form.additional_comments,
                    "submitted_at": form.submitted_at.isoformat() if form.submitted_at else None,
                }
                for form in employee_forms
            ],
            "average_rating": _average([f.overall_rating for f in employee_forms if f.overall_rating is not None]),
            "review_count": len(employee_forms),
        })
    reviews.sort(key=lambda item: item["employee_name"])

    ratings = [f.overall_rating for f in forms if f.overall_rating is not None]
    distribution = {str(score): 0 for score in range(1, 6)}
    for rating in ratings:
        if 1 <= rating <= 5:
            distribution[str(rating)] += 1

    logger.info(f"📤 Review cycle {cycle_id} exported ({len(forms)} reviews)")
    return {
        "cycle": {
            "id": cycle.id,
            "name": cycle.name,
            "cycle_type": cycle.cycle_type,
            "start_date": cycle.start_date.isoformat(),
            "end_date": cycle.end_date.isoformat(),
            "status": cycle.status,
        },
        "statistics": {
            "total_employees": len(by_employee),
            "total_reviews": len(forms),
            "average_rating": _average(ratings),
            "rating_distribution": distribution,
        },
        "reviews": reviews,
    }
