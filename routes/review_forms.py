from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from database import get_db
from models import User
from services import review_form_service
from utils.permissions import get_current_user, require_permission

router = APIRouter()


@router.get("")
def list_forms(
    cycle_id: Optional[int] = Query(None),
    employee_id: Optional[str] = Query(None),
    reviewer_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Admin and HR see every form; everyone else sees forms they write or receive"""
    forms = review_form_service.list_forms(db, current_user, cycle_id, employee_id, reviewer_id, status_filter)
    return {"success": True, "data": forms, "message": f"Found {len(forms)} review forms"}


@router.get("/stats")
def review_stats(
    cycle_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {
        "success": True,
        "data": review_form_service.review_stats(db, current_user, cycle_id),
        "message": "Review statistics retrieved"
    }


@router.get("/{form_id}")
def get_form(
    form_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {
        "success": True,
        "data": review_form_service.get_form(db, current_user, form_id),
        "message": "Review form retrieved"
    }


@router.put("/{form_id}")
def update_form(
    form_id: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    form = review_form_service.update_form(db, current_user, form_id, payload)
    message = {
        "submitted": "Review submitted",
        "approved": "Review approved",
    }.get(form["status"], "Review form saved")
    return {"success": True, "data": form, "message": message}


@router.delete("/{form_id}")
def delete_form(
    form_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("delete_forms"))
):
    deleted = review_form_service.delete_form(db, form_id)
    return {"success": True, "data": deleted, "message": "Review form deleted"}


@router.get("/{form_id}/comments")
def list_comments(
    form_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("comment_on_forms"))
):
    comments = review_form_service.list_comments(db, form_id)
    return {"success": True, "data": comments, "message": f"Found {len(comments)} comments"}


@router.post("/{form_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    form_id: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("comment_on_forms"))
):
    comment = review_form_service.add_comment(db, current_user, form_id, payload)
    return {"success": True, "data": comment, "message": "Comment added"}
