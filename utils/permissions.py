from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from database import get_db
from models import User
from utils.errors import AuthenticationError, AuthorizationError
from typing import Optional
import logging
import jwt

from utils.security import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ROLE_DISPLAY_NAMES = {
    "admin": "Administrator",
    "hr": "Human Resources",
    "manager": "Manager",
    "employee": "Employee",
    "intern": "Intern"
}

ROLE_PERMISSIONS = {
    "admin": [
        "manage_users", "view_users",
        "view_onboarding", "review_onboarding", "edit_onboarding", "delete_onboarding",
        "view_cycles", "manage_cycles",
        "view_assignments", "manage_assignments",
        "view_all_forms", "manage_any_form", "delete_forms",
        "comment_on_forms", "export_reviews",
        "manage_appraisals",
        "send_notifications",
        "view_review_stats"
    ],
    "hr": [
        "view_users",
        "view_onboarding", "review_onboarding", "edit_onboarding", "delete_onboarding",
        "view_cycles",
        "view_assignments",
        "view_all_forms", "manage_any_form",
        "comment_on_forms", "export_reviews",
        "manage_appraisals",
        "view_review_stats"
    ],
    "manager": [
        "comment_on_forms"
    ],
    "employee": [],
    "intern": []
}


def can_perform(role: Optional[str], operation: str) -> bool:
    """Pure capability check: may a user holding ``role`` perform ``operation``?"""
    if not role:
        return False
    return operation in ROLE_PERMISSIONS.get(role.lower(), [])


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the bearer token to the stored user.

    The token only carries the subject; role and status always come from the
    identity store so that a role change or deactivation takes effect at once.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    settings = request.app.state.settings
    try:
        payload = decode_access_token(credentials.credentials, settings.SECRET_KEY, settings.ALGORITHM)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Could not validate credentials", code="INVALID_TOKEN")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid authentication credentials", code="INVALID_TOKEN")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User not found", code="INVALID_TOKEN")

    if user.status != "active":
        raise AuthorizationError("Account is not active", code="ACCOUNT_INACTIVE")

    return user


def require_permission(operation: str):
    """
    Dependency to check the current user's role against ``operation``.
    Usage: Depends(require_permission("manage_cycles"))
    """
    def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        if not can_perform(current_user.role, operation):
            logger.warning(f"Denied {operation} for user {current_user.id} with role {current_user.role}")
            raise AuthorizationError(
                f"Access denied. Role '{current_user.role}' cannot perform '{operation}'"
            )
        return current_user

    return permission_checker
