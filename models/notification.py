from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
from sqlalchemy import ForeignKey
from database import Base

NOTIFICATION_TYPES = (
    "review_requested",
    "review_submitted",
    "draft_saved",
    "cycle_completed",
    "reminder",
)

class ReviewNotification(Base):
    __tablename__ = "review_notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    notification_type = Column(String(30), nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "notification_type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "related_id": self.related_id,
            "is_read": bool(self.is_read),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
