from . import (
    appraisal_service,
    assignment_service,
    auth_service,
    onboarding_service,
    review_cycle_service,
    review_form_service,
)
from .notification_service import notification_service

__all__ = [
    "appraisal_service",
    "assignment_service",
    "auth_service",
    "onboarding_service",
    "review_cycle_service",
    "review_form_service",
    "notification_service",
]
