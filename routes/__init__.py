# routes/__init__.py

from .auth import router as auth_router
from .users import router as users_router
from .onboarding import router as onboarding_router
from .review_cycles import router as review_cycles_router
from .assignments import router as assignments_router
from .review_forms import router as review_forms_router
from .appraisals import router as appraisals_router
from .notifications import router as notifications_router

__all__ = [
    'auth_router',
    'users_router',
    'onboarding_router',
    'review_cycles_router',
    'assignments_router',
    'review_forms_router',
    'appraisals_router',
    'notifications_router'
]
