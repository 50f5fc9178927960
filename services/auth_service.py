import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Settings
from database import atomic
from models import (
    Appraisal,
    OnboardingSubmission,
    PasswordReset,
    ReviewComment,
    ReviewCycle,
    ReviewerAssignment,
    ReviewForm,
    ReviewNotification,
    User,
)
from models.user import USER_ROLES, USER_STATUSES
from utils.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from utils.security import create_access_token, generate_otp, hash_password, verify_password
from utils.validation import (
    unwrap,
    validate_forgot_password,
    validate_login,
    validate_reset_password,
    validate_user_create,
    validate_user_update,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def login(db: Session, payload: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    credentials = unwrap(validate_login(payload))
    email = credentials["email"]

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(credentials["password"], user.password_hash):
        logger.warning(f"Failed login attempt for {email}")
        raise AuthenticationError("Invalid email or password", code="INVALID_CREDENTIALS")

    if user.status != "active":
        raise AuthorizationError("Account is not active", code="ACCOUNT_INACTIVE")

    token = create_access_token(
        user.id,
        user.role,
        settings.SECRET_KEY,
        settings.ALGORITHM,
        settings.ACCESS_TOKEN_EXPIRE_HOURS
    )
    logger.info(f"🔐 User {user.id} logged in")
    return {"token": token, "token_type": "bearer", "user": user.to_dict()}


def forgot_password(db: Session, payload: Dict[str, Any], settings: Settings) -> None:
    """
    Issue a one-time code for the account behind ``email``.

    Returns nothing either way so callers cannot tell whether the account
    exists.
    """
    email = unwrap(validate_forgot_password(payload))
    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.info(f"Password reset requested for unknown email {email}")
        return

    otp = generate_otp()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.PASSWORD_RESET_OTP_MINUTES)
    with atomic(db):
        db.query(PasswordReset).filter(PasswordReset.email == email).delete(synchronize_session=False)
        db.add(PasswordReset(email=email, otp=otp, expires_at=expires_at))

    logger.info(f"🔑 Password reset code issued for user {user.id}")
    # No mail transport is configured; local setups can opt in to reading the code from the log
    if settings.LOG_RESET_OTP:
        logger.debug(f"Password reset OTP for {email}: {otp} (valid {settings.PASSWORD_RESET_OTP_MINUTES} min)")


def reset_password(db: Session, payload: Dict[str, Any], settings: Settings) -> None:
    """
    Set a new password using the latest code issued for the email.

    Every wrong code counts against that code; once
    ``PASSWORD_RESET_MAX_ATTEMPTS`` is reached the code is dead even if the
    right digits arrive later.
    """
    data = unwrap(validate_reset_password(payload))
    email = data["email"]

    reset = db.query(PasswordReset).filter(
        PasswordReset.email == email
    ).order_by(PasswordReset.id.desc()).first()

    if not reset or _as_utc(reset.expires_at) < datetime.now(timezone.utc):
        raise ValidationError("Invalid or expired OTP", code="INVALID_OTP")

    if reset.attempts >= settings.PASSWORD_RESET_MAX_ATTEMPTS:
        raise ValidationError("Too many attempts. Request a new code.", code="OTP_ATTEMPTS_EXCEEDED")

    if not secrets.compare_digest(reset.otp, data["otp"]):
        with atomic(db):
            reset.attempts += 1
        logger.warning(f"Wrong password reset code for {email} ({reset.attempts} attempt(s))")
        raise ValidationError("Invalid or expired OTP", code="INVALID_OTP")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise ValidationError("Invalid or expired OTP", code="INVALID_OTP")

    with atomic(db):
        user.password_hash = hash_password(data["new_password"])
        db.query(PasswordReset).filter(PasswordReset.email == email).delete(synchronize_session=False)

    logger.info(f"🔑 Password reset completed for user {user.id}")


def _email_taken(db: Session, email: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(User.id).filter(User.email == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def create_user(db: Session, payload: Dict[str, Any]) -> User:
    data = unwrap(validate_user_create(payload))

    if _email_taken(db, data["email"]):
        raise ConflictError("A user with this email already exists", code="EMAIL_EXISTS")

    user = User(
        name=data["name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        role=data["role"],
        status=data["status"]
    )
    try:
        with atomic(db):
            db.add(user)
    except IntegrityError:
        raise ConflictError("A user with this email already exists", code="EMAIL_EXISTS")

    db.refresh(user)
    logger.info(f"👤 User {user.id} created with role {user.role}")
    return user


def list_users(
    db: Session,
    role: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None
) -> List[User]:
    query = db.query(User)
    if role in USER_ROLES:
        query = query.filter(User.role == role)
    if status in USER_STATUSES:
        query = query.filter(User.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(User.name.ilike(pattern) | User.email.ilike(pattern))
    return query.order_by(User.name).all()


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    return user


def update_user(db: Session, user_id: str, payload: Dict[str, Any], actor: User) -> User:
    """Partial update of profile, role, status or password."""
    user = get_user(db, user_id)
    changes = unwrap(validate_user_update(payload))

    demoted = "role" in changes and changes["role"] != user.role
    deactivated = changes.get("status") == "inactive"
    if user.id == actor.id and (demoted or deactivated):
        raise ValidationError("You cannot change your own role or deactivate yourself", code="SELF_MODIFICATION")

    if "email" in changes and _email_taken(db, changes["email"], exclude_id=user.id):
        raise ConflictError("A user with this email already exists", code="EMAIL_EXISTS")

    password = changes.pop("password", None)
    try:
        with atomic(db):
            for field, value in changes.items():
                setattr(user, field, value)
            if password:
                user.password_hash = hash_password(password)
    except IntegrityError:
        raise ConflictError("A user with this email already exists", code="EMAIL_EXISTS")

    db.refresh(user)
    updated = list(changes) + (["password"] if password else [])
    logger.info(f"✏️ User {user.id} updated by {actor.id}: {', '.join(updated)}")
    return user


def _reference_count(db: Session, user_id: str) -> int:
    """Rows in the review workflow that point at this user."""
    return sum((
        db.query(ReviewCycle).filter(ReviewCycle.created_by == user_id).count(),
        db.query(ReviewerAssignment).filter(
            or_(
                ReviewerAssignment.employee_id == user_id,
                ReviewerAssignment.reviewer_id == user_id,
                ReviewerAssignment.assigned_by == user_id,
            )
        ).count(),
        db.query(ReviewForm).filter(
            or_(ReviewForm.employee_id == user_id, ReviewForm.reviewer_id == user_id)
        ).count(),
        db.query(ReviewComment).filter(ReviewComment.commenter_id == user_id).count(),
        db.query(Appraisal).filter(
            or_(Appraisal.employee_id == user_id, Appraisal.updated_by == user_id)
        ).count(),
        db.query(OnboardingSubmission).filter(OnboardingSubmission.reviewed_by == user_id).count(),
    ))


def delete_user(db: Session, user_id: str, actor: User) -> Dict[str, Any]:
    """
    Remove an account that has no review history.

    Accounts referenced by cycles, assignments, forms, comments, appraisals
    or onboarding decisions are kept; deactivate those instead.
    """
    user = get_user(db, user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot delete your own account", code="SELF_MODIFICATION")

    references = _reference_count(db, user.id)
    if references:
        raise ConflictError(
            "User has review history. Set status to 'inactive' instead.",
            code="USER_IN_USE",
            reference_count=references
        )

    snapshot = user.summary()
    with atomic(db):
        db.query(ReviewNotification).filter(ReviewNotification.user_id == user.id).delete(synchronize_session=False)
        db.query(PasswordReset).filter(PasswordReset.email == user.email).delete(synchronize_session=False)
        db.delete(user)

    logger.info(f"🗑️ User {user_id} deleted by {actor.id}")
    return snapshot
