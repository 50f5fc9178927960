"""
Onboarding submissions and their status state machine.

Approving a submission provisions a login account for the applicant in the
same transaction as the status change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import atomic
from models import OnboardingSubmission, User
from models.onboarding import ONBOARDING_STATUSES
from utils.errors import ConflictError, NotFoundError, TransitionError, ValidationError
from utils.security import generate_temporary_password, hash_password
from utils.validation import (
    unwrap,
    validate_onboarding_submission,
    validate_onboarding_update,
    validate_status_transition_request,
)

logger = logging.getLogger(__name__)

VALID_TRANSITIONS = {
    "pending": ("in_review", "approved", "rejected"),
    "in_review": ("approved", "rejected", "pending"),
    "approved": (),
    "rejected": ("pending",),
}
REVIEW_DECISIONS = ("approved", "rejected")
DELETABLE_STATUSES = ("pending", "rejected")
OPEN_STATUSES = ("pending", "in_review")

PROVISIONED_ROLE = "employee"
PROVISIONED_STATUS = "active"


@dataclass
class TransitionOutcome:
    submission: OnboardingSubmission
    reviewer: Optional[User] = None
    user_created: bool = False
    temporary_password: Optional[str] = None
    provisioned_user: Optional[User] = None


def allowed_transitions(status: str):
    return VALID_TRANSITIONS.get(status, ())


def _now():
    return datetime.now(timezone.utc)


def _find_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def _find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def _get_submission(db: Session, submission_id: int) -> OnboardingSubmission:
    submission = db.query(OnboardingSubmission).filter(
        OnboardingSubmission.id == submission_id
    ).first()
    if not submission:
        raise NotFoundError("Submission not found", code="NOT_FOUND")
    return submission


def serialize_submission(db: Session, submission: OnboardingSubmission) -> Dict[str, Any]:
    data = submission.to_dict()
    reviewer = _find_user(db, submission.reviewed_by) if submission.reviewed_by else None
    data["reviewer"] = reviewer.summary() if reviewer else None
    return data


# ============================================================================
# STATUS TRANSITIONS
# ============================================================================

def transition_status(
    db: Session,
    submission_id: int,
    payload: Dict[str, Any],
    password_generator: Optional[Callable[[], str]] = None,
    temp_password_length: int = 12
) -> TransitionOutcome:
    """
    Move a submission to a new status.

    Approval provisions an ``employee`` account for the applicant's personal
    email unless one already exists. If a concurrent request inserts the same
    email between our lookup and our insert, the unique constraint rejects
    ours; the whole unit is rolled back and replayed once against fresh state.
    """
    request = unwrap(validate_status_transition_request(payload))
    generator = password_generator or (lambda: generate_temporary_password(temp_password_length))

    try:
        return _apply_transition(db, submission_id, request, generator)
    except IntegrityError:
        logger.warning(f"Provisioning race on onboarding submission {submission_id}, retrying")

    try:
        return _apply_transition(db, submission_id, request, generator)
    except IntegrityError as e:
        logger.error(f"Provisioning failed twice for submission {submission_id}: {str(e)}")
        raise ConflictError(
            "Could not provision a user account for this submission",
            code="USER_PROVISIONING_CONFLICT"
        )


def _apply_transition(
    db: Session,
    submission_id: int,
    request: Dict[str, Any],
    generator: Callable[[], str]
) -> TransitionOutcome:
    target = request["status"]
    reviewer_id = request["reviewer_id"]

    submission = _get_submission(db, submission_id)
    current = submission.status

    if current == "approved":
        raise ConflictError(
            "Cannot modify approved submission. Approved submissions are immutable.",
            code="APPROVED_IMMUTABLE"
        )

    allowed = allowed_transitions(current)
    if target not in allowed:
        raise TransitionError(current, target, allowed)

    if target in REVIEW_DECISIONS and not reviewer_id:
        raise ValidationError(
            "Reviewer ID is required when approving or rejecting",
            code="REVIEWER_REQUIRED"
        )

    reviewer = None
    if reviewer_id:
        reviewer = _find_user(db, reviewer_id)
        if not reviewer:
            raise NotFoundError("Reviewer user not found", code="REVIEWER_NOT_FOUND")

    outcome = TransitionOutcome(submission=submission, reviewer=reviewer)
    now = _now()

    with atomic(db):
        submission.status = target
        if target in REVIEW_DECISIONS:
            submission.reviewed_by = reviewer.id
            submission.reviewed_at = now
        else:
            submission.reviewed_by = None
            submission.reviewed_at = None
        if request["comment"]:
            submission.reviewer_comment = request["comment"]
        submission.updated_at = now

        if target == "approved":
            existing = _find_user_by_email(db, submission.personal_email)
            if existing is None:
                temporary_password = generator()
                user = User(
                    name=submission.full_name,
                    email=submission.personal_email.lower(),
                    password_hash=hash_password(temporary_password),
                    role=PROVISIONED_ROLE,
                    status=PROVISIONED_STATUS
                )
                db.add(user)
                db.flush()
                outcome.user_created = True
                outcome.temporary_password = temporary_password
                outcome.provisioned_user = user
            else:
                outcome.provisioned_user = existing

    db.refresh(submission)
    logger.info(
        f"✅ Onboarding submission {submission_id}: {current} -> {target}"
        + (" (user provisioned)" if outcome.user_created else "")
    )
    return outcome


# ============================================================================
# SUBMISSION CRUD
# ============================================================================

def submit_onboarding(db: Session, payload: Dict[str, Any]) -> OnboardingSubmission:
    data = unwrap(validate_onboarding_submission(payload))

    open_submission = db.query(OnboardingSubmission).filter(
        OnboardingSubmission.personal_email == data["personal_email"],
        OnboardingSubmission.status.in_(OPEN_STATUSES)
    ).first()
    if open_submission:
        raise ConflictError(
            "An open onboarding submission already exists for this email",
            code="DUPLICATE_SUBMISSION",
            submission_id=open_submission.id
        )

    submission = OnboardingSubmission(status="pending", reviewed_by=None, reviewed_at=None, **data)
    with atomic(db):
        db.add(submission)

    db.refresh(submission)
    logger.info(f"📝 New onboarding submission {submission.id} for {submission.personal_email}")
    return submission


def list_submissions(
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 20,
    offset: int = 0
) -> List[OnboardingSubmission]:
    query = db.query(OnboardingSubmission)

    if status in ONBOARDING_STATUSES:
        query = query.filter(OnboardingSubmission.status == status)

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            OnboardingSubmission.full_name.ilike(pattern),
            OnboardingSubmission.personal_email.ilike(pattern),
            OnboardingSubmission.job_title.ilike(pattern),
            OnboardingSubmission.department.ilike(pattern)
        ))

    return (
        query.order_by(OnboardingSubmission.submitted_at.desc(), OnboardingSubmission.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_submission(db: Session, submission_id: int) -> OnboardingSubmission:
    return _get_submission(db, submission_id)


def update_submission(db: Session, submission_id: int, payload: Dict[str, Any]) -> OnboardingSubmission:
    submission = _get_submission(db, submission_id)
    if submission.status == "approved":
        raise ConflictError(
            "Cannot modify approved submission. Approved submissions are immutable.",
            code="APPROVED_IMMUTABLE"
        )

    changes = unwrap(validate_onboarding_update(payload))
    form_data = changes.pop("form_data", None)

    with atomic(db):
        for field, value in changes.items():
            setattr(submission, field, value)
        if form_data:
            submission.form_data = {**(submission.form_data or {}), **form_data}
        submission.updated_at = _now()

    db.refresh(submission)
    return submission


def delete_submission(db: Session, submission_id: int) -> Dict[str, Any]:
    submission = _get_submission(db, submission_id)
    if submission.status not in DELETABLE_STATUSES:
        raise ConflictError(
            f"Cannot delete submission with status: {submission.status}. "
            "Only pending or rejected submissions can be deleted.",
            code="DELETE_NOT_ALLOWED"
        )

    snapshot = submission.to_dict()
    with atomic(db):
        db.delete(submission)

    logger.info(f"🗑️ Onboarding submission {submission_id} deleted")
    return snapshot
