from .user import User, PasswordReset
from .onboarding import OnboardingSubmission
from .review import ReviewCycle, ReviewerAssignment, ReviewForm, ReviewComment
from .appraisal import Appraisal
from .notification import ReviewNotification

__all__ = [
    "User", "PasswordReset", "OnboardingSubmission", "ReviewCycle",
    "ReviewerAssignment", "ReviewForm", "ReviewComment", "Appraisal", "ReviewNotification"
]
