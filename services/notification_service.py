from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from models import ReviewNotification, ReviewForm, ReviewCycle, User
from models.notification import NOTIFICATION_TYPES
from database import atomic
from utils.errors import AuthorizationError, NotFoundError, ValidationError
from utils.validation import unwrap, validate_notification_create
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """
    In-app review notifications.

    Writes made here never commit on their own: the workflow operation that
    triggers a notification owns the transaction, so a notification is
    persisted exactly when the transition that caused it is.
    """

    def create_notification(
        self,
        db: Session,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        related_id: Optional[int] = None
    ) -> ReviewNotification:
        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationError(
                f"Invalid notification_type '{notification_type}'",
                code="INVALID_NOTIFICATION_TYPE"
            )

        notification = ReviewNotification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            related_id=related_id,
            is_read=False
        )
        db.add(notification)
        return notification

    # ============================================================================
    # REVIEW WORKFLOW NOTIFICATIONS
    # ============================================================================

    def notify_review_requested(
        self,
        db: Session,
        form: ReviewForm,
        cycle: ReviewCycle,
        employee_name: Optional[str]
    ) -> ReviewNotification:
        """Tell a reviewer that a review form is waiting for them"""
        return self.create_notification(
            db=db,
            user_id=form.reviewer_id,
            notification_type="review_requested",
            title="New Review Requested",
            message=f"You have been assigned to review {employee_name or 'an employee'} for {cycle.name}",
            related_id=form.id
        )

    def notify_review_submitted(self, db: Session, form: ReviewForm) -> ReviewNotification:
        """Tell the reviewed employee that a review about them was submitted"""
        return self.create_notification(
            db=db,
            user_id=form.employee_id,
            notification_type="review_submitted",
            title="Review Submitted",
            message="A review has been submitted for you by your reviewer",
            related_id=form.id
        )

    # ============================================================================
    # INBOX
    # ============================================================================

    def send_notification(self, db: Session, payload: Dict[str, Any]) -> ReviewNotification:
        """Admin-authored notification to a single user"""
        data = unwrap(validate_notification_create(payload))

        target = db.query(User).filter(User.id == data["user_id"]).first()
        if not target:
            raise ValidationError("User not found", code="USER_NOT_FOUND")

        with atomic(db):
            notification = self.create_notification(db=db, **data)

        db.refresh(notification)
        logger.info(f"📨 {data['notification_type']} notification sent to {data['user_id']}")
        return notification

    def list_for_user(
        self,
        db: Session,
        user: User,
        is_read: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[ReviewNotification]:
        query = db.query(ReviewNotification).filter(ReviewNotification.user_id == user.id)
        if is_read is not None:
            query = query.filter(ReviewNotification.is_read == is_read)
        return (
            query.order_by(ReviewNotification.created_at.desc(), ReviewNotification.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def mark_read(self, db: Session, user: User, notification_id: int) -> ReviewNotification:
        notification = db.query(ReviewNotification).filter(
            ReviewNotification.id == notification_id
        ).first()

        if not notification:
            raise NotFoundError("Notification not found")
        if notification.user_id != user.id:
            raise AuthorizationError(
                "You do not have permission to access this notification",
                code="FORBIDDEN"
            )

        with atomic(db):
            notification.is_read = True

        db.refresh(notification)
        return notification

# Global instance for easy access
notification_service = NotificationService()
