from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from database import get_db
from models import User
from services import auth_service
from utils.permissions import require_permission

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_users"))
):
    user = auth_service.create_user(db, payload)
    return {"success": True, "data": user.to_dict(), "message": "User created"}


@router.get("")
def list_users(
    role: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_users"))
):
    users = auth_service.list_users(db, role, status_filter, search)
    return {
        "success": True,
        "data": [user.to_dict() for user in users],
        "message": f"Found {len(users)} users"
    }


@router.get("/{user_id}")
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_users"))
):
    user = auth_service.get_user(db, user_id)
    return {"success": True, "data": user.to_dict(), "message": "User retrieved"}


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_users"))
):
    user = auth_service.update_user(db, user_id, payload, current_user)
    return {"success": True, "data": user.to_dict(), "message": "User updated"}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_users"))
):
    deleted = auth_service.delete_user(db, user_id, current_user)
    return {"success": True, "data": deleted, "message": "User deleted"}
