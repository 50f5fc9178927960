"""
Review forms: reading, filling in, submitting and approving.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database import atomic
from models import ReviewComment, ReviewCycle, ReviewerAssignment, ReviewForm, User
from models.review import FORM_STATUSES
from services.notification_service import notification_service
from utils.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from utils.permissions import can_perform
from utils.validation import unwrap, validate_comment_create, validate_form_update

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = ("pending", "draft")
REQUIRED_FOR_SUBMISSION = ("overall_rating", "goals_achievement", "strengths", "improvements")


def _can_view(user: User, form: ReviewForm) -> bool:
    return (
        can_perform(user.role, "view_all_forms")
        or form.reviewer_id == user.id
        or form.employee_id == user.id
    )


def _get_form(db: Session, form_id: int) -> ReviewForm:
    form = db.query(ReviewForm).filter(ReviewForm.id == form_id).first()
    if not form:
        raise NotFoundError("Review form not found")
    return form


def _with_people(db: Session, form: ReviewForm) -> Dict[str, Any]:
    people = {
        u.id: u for u in db.query(User).filter(User.id.in_({form.employee_id, form.reviewer_id})).all()
    }
    cycle = db.query(ReviewCycle).filter(ReviewCycle.id == form.cycle_id).first()
    employee = people.get(form.employee_id)
    reviewer = people.get(form.reviewer_id)
    return {
        **form.to_dict(),
        "employee": employee.summary() if employee else None,
        "reviewer": reviewer.summary() if reviewer else None,
        "cycle_name": cycle.name if cycle else None,
    }


def normalize_kpi_scores(raw: Any) -> Optional[List[Dict[str, Any]]]:
    """Accepts a list of ``{name, score}``, a ``{name: score}`` mapping, or either as a JSON string."""
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError("kpi_scores is not valid JSON", code="INVALID_KPI_SCORES")
    if isinstance(raw, dict):
        raw = [{"name": name, "score": score} for name, score in raw.items()]
    if not isinstance(raw, list):
        raise ValidationError("kpi_scores must be a list of {name, score} objects", code="INVALID_KPI_SCORES")

    scores = []
    for item in raw:
        if not isinstance(item, dict) or "score" not in item:
            raise ValidationError("Each KPI entry needs a score", code="INVALID_KPI_SCORES")
        score = item["score"]
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not 1 <= score <= 5:
            raise ValidationError("KPI scores must be numbers between 1 and 5", code="INVALID_KPI_SCORES")
        scores.append({**item, "score": score})
    return scores


def rating_from_kpis(kpi_scores: Optional[List[Dict[str, Any]]]) -> Optional[int]:
    if not kpi_scores:
        return None
    average = Decimal(str(sum(item["score"] for item in kpi_scores))) / len(kpi_scores)
    return int(average.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ============================================================================
# READ
# ============================================================================

def list_forms(
    db: Session,
    user: User,
    cycle_id: Optional[int] = None,
    employee_id: Optional[str] = None,
    reviewer_id: Optional[str] = None,
    status: Optional[str] = None
) -> List[Dict[str, Any]]:
    query = db.query(ReviewForm)

    if not can_perform(user.role, "view_all_forms"):
        query = query.filter(or_(ReviewForm.reviewer_id == user.id, ReviewForm.employee_id == user.id))

    if cycle_id is not None:
        query = query.filter(ReviewForm.cycle_id == cycle_id)
    if employee_id:
        query = query.filter(ReviewForm.employee_id == employee_id)
    if reviewer_id:
        query = query.filter(ReviewForm.reviewer_id == reviewer_id)
    if status in FORM_STATUSES:
        query = query.filter(ReviewForm.status == status)

    return [form.to_dict() for form in query.order_by(ReviewForm.id.desc()).all()]


def get_form(db: Session, user: User, form_id: int) -> Dict[str, Any]:
    form = _get_form(db, form_id)
    if not _can_view(user, form):
        raise AuthorizationError("You do not have permission to view this form", code="PERMISSION_DENIED")
    return _with_people(db, form)


# ============================================================================
# UPDATE / SUBMIT / APPROVE
# ============================================================================

def update_form(db: Session, user: User, form_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Save, submit or approve a review form.

    Submitting stamps ``submitted_at``, completes the matching assignment and
    notifies the reviewed employee; all three happen in one transaction with
    the form update.
    """
    form = _get_form(db, form_id)
    privileged = can_perform(user.role, "manage_any_form")

    if not privileged and form.reviewer_id != user.id:
        raise AuthorizationError("You do not have permission to update this form", code="PERMISSION_DENIED")

    cycle = db.query(ReviewCycle).filter(ReviewCycle.id == form.cycle_id).first()
    if cycle and cycle.is_closed:
        raise ConflictError(
            f"Cannot update forms in a {cycle.status} cycle",
            code="CYCLE_LOCKED",
            current_status=cycle.status
        )

    changes = unwrap(validate_form_update(payload))
    target = changes.get("status", form.status)

    if form.status not in EDITABLE_STATUSES:
        # Submitted forms only move forward to approved, by admin or HR
        approving = form.status == "submitted" and target == "approved" and privileged
        if not approving:
            raise ConflictError(
                f"Form is {form.status} and can no longer be edited",
                code="FORM_LOCKED",
                current_status=form.status
            )
    elif target == "approved":
        raise ValidationError(
            "Only submitted forms can be approved",
            code="INVALID_STATUS_TRANSITION",
            current_status=form.status
        )

    if "kpi_scores" in changes:
        changes["kpi_scores"] = normalize_kpi_scores(changes["kpi_scores"])
        if changes.get("overall_rating") is None:
            derived = rating_from_kpis(changes["kpi_scores"])
            if derived is not None:
                changes["overall_rating"] = derived

    submitting = form.status in EDITABLE_STATUSES and target == "submitted"
    if submitting:
        merged = {name: changes.get(name, getattr(form, name)) for name in REQUIRED_FOR_SUBMISSION}
        missing = [
            name for name, value in merged.items()
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationError(
                f"Cannot submit an incomplete form. Missing: {', '.join(missing)}",
                code="INCOMPLETE_FORM",
                details={"missing_fields": missing}
            )

    now = datetime.now(timezone.utc)
    with atomic(db):
        for field, value in changes.items():
            setattr(form, field, value)
        form.updated_at = now

        if submitting:
            form.submitted_at = now
            if form.assignment_id:
                assignment = db.query(ReviewerAssignment).filter(
                    ReviewerAssignment.id == form.assignment_id
                ).first()
                if assignment:
                    assignment.status = "completed"
            notification_service.notify_review_submitted(db, form)

    db.refresh(form)
    if submitting:
        logger.info(f"📨 Review form {form_id} submitted by {user.id}")
    elif target == "approved":
        logger.info(f"✅ Review form {form_id} approved by {user.id}")
    return _with_people(db, form)


def delete_form(db: Session, form_id: int) -> Dict[str, Any]:
    form = _get_form(db, form_id)
    snapshot = form.to_dict()
    with atomic(db):
        db.query(ReviewComment).filter(ReviewComment.form_id == form.id).delete(synchronize_session=False)
        db.delete(form)
    logger.info(f"🗑️ Review form {form_id} deleted")
    return snapshot


# ============================================================================
# COMMENTS
# ============================================================================

def _comment_with_commenter(comment: ReviewComment, commenter: Optional[User]) -> Dict[str, Any]:
    return {
        **comment.to_dict(),
        "commenter_name": commenter.name if commenter else None,
        "commenter_email": commenter.email if commenter else None,
    }


def list_comments(db: Session, form_id: int) -> List[Dict[str, Any]]:
    form = _get_form(db, form_id)
    rows = (
        db.query(ReviewComment, User)
        .outerjoin(User, User.id == ReviewComment.commenter_id)
        .filter(ReviewComment.form_id == form.id)
        .order_by(ReviewComment.created_at, ReviewComment.id)
        .all()
    )
    return [_comment_with_commenter(comment, commenter) for comment, commenter in rows]


def add_comment(db: Session, user: User, form_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Reviewer-side discussion on a form; allowed in any cycle or form status."""
    text = unwrap(validate_comment_create(payload))
    form = _get_form(db, form_id)

    comment = ReviewComment(
        form_id=form.id,
        commenter_id=user.id,
        commenter_role=user.role,
        comment=text
    )
    with atomic(db):
        db.add(comment)

    db.refresh(comment)
    logger.info(f"💬 Comment {comment.id} added to review form {form_id} by {user.id}")
    return _comment_with_commenter(comment, user)


# ============================================================================
# STATS
# ============================================================================

def _count_by_status(query, column) -> Dict[str, int]:
    return {status: count for status, count in query.with_entities(column, func.count()).group_by(column).all()}


def review_stats(db: Session, user: User, cycle_id: Optional[int] = None) -> Dict[str, Any]:
    forms = db.query(ReviewForm)
    assignments = db.query(ReviewerAssignment)
    if cycle_id is not None:
        forms = forms.filter(ReviewForm.cycle_id == cycle_id)
        assignments = assignments.filter(ReviewerAssignment.cycle_id == cycle_id)

    if can_perform(user.role, "view_review_stats"):
        cycles = db.query(ReviewCycle)
        if cycle_id is not None:
            cycles = cycles.filter(ReviewCycle.id == cycle_id)
        return {
            "cycles": _count_by_status(cycles, ReviewCycle.status),
            "forms": _count_by_status(forms, ReviewForm.status),
            "assignments": _count_by_status(assignments, ReviewerAssignment.status),
        }

    return {
        "reviews_to_complete": _count_by_status(
            forms.filter(ReviewForm.reviewer_id == user.id), ReviewForm.status
        ),
        "reviews_received": _count_by_status(
            forms.filter(ReviewForm.employee_id == user.id), ReviewForm.status
        ),
    }
