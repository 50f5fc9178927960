from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from database import get_db
from models import User
from services.notification_service import notification_service
from utils.permissions import get_current_user, require_permission

router = APIRouter()


@router.get("")
def list_notifications(
    is_read: Optional[bool] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notifications = notification_service.list_for_user(db, current_user, is_read, limit, offset)
    return {
        "success": True,
        "data": [n.to_dict() for n in notifications],
        "message": f"Found {len(notifications)} notifications"
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def send_notification(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("send_notifications"))
):
    notification = notification_service.send_notification(db, payload)
    return {"success": True, "data": notification.to_dict(), "message": "Notification sent"}


@router.patch("/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = notification_service.mark_read(db, current_user, notification_id)
    return {"success": True, "data": notification.to_dict(), "message": "Notification marked as read"}
