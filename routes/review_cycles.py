"""
Review cycle routes, including bulk reviewer assignment for a cycle.
"""

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from database import get_db
from models import User
from services import assignment_service, review_cycle_service
from utils.permissions import require_permission

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_cycle(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_cycles"))
):
    cycle = review_cycle_service.create_cycle(db, payload, current_user)
    return {"success": True, "data": cycle.to_dict(), "message": "Review cycle created"}


@router.get("")
def list_cycles(
    status_filter: Optional[str] = Query(None, alias="status"),
    cycle_type: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_cycles"))
):
    cycles = review_cycle_service.list_cycles(db, status_filter, cycle_type)
    return {
        "success": True,
        "data": [cycle.to_dict() for cycle in cycles],
        "message": f"Found {len(cycles)} review cycles"
    }


@router.get("/{cycle_id}")
def get_cycle(
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_cycles"))
):
    return {
        "success": True,
        "data": review_cycle_service.get_cycle_detail(db, cycle_id),
        "message": "Review cycle retrieved"
    }


@router.get("/{cycle_id}/export")
def export_cycle(
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("export_reviews"))
):
    """Completed reviews for the cycle grouped by employee, with rating statistics"""
    return {
        "success": True,
        "data": review_cycle_service.export_cycle(db, cycle_id),
        "message": "Review cycle export generated"
    }


@router.put("/{cycle_id}")
def update_cycle(
    cycle_id: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_cycles"))
):
    cycle = review_cycle_service.update_cycle(db, cycle_id, payload)
    return {"success": True, "data": cycle.to_dict(), "message": "Review cycle updated"}


@router.post("/{cycle_id}/lock")
def lock_cycle(
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_cycles"))
):
    cycle = review_cycle_service.lock_cycle(db, cycle_id)
    return {"success": True, "data": cycle.to_dict(), "message": "Review cycle locked"}


@router.post("/{cycle_id}/reopen")
def reopen_cycle(
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_cycles"))
):
    cycle = review_cycle_service.reopen_cycle(db, cycle_id)
    return {"success": True, "data": cycle.to_dict(), "message": "Review cycle reopened"}


@router.delete("/{cycle_id}")
def delete_cycle(
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_cycles"))
):
    deleted = review_cycle_service.delete_cycle(db, cycle_id)
    return {"success": True, "data": deleted, "message": "Review cycle deleted"}


# ============================================================================
# ASSIGNMENTS
# ============================================================================

@router.post("/{cycle_id}/assignments", status_code=status.HTTP_201_CREATED)
def create_assignments(
    cycle_id: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_assignments"))
):
    """Bulk-create assignments; each one gets a review form and a reviewer notification"""
    result = assignment_service.create_assignments(db, cycle_id, payload.get("assignments"), current_user)
    return {
        "success": True,
        "data": {"assignments": result["assignments"], "forms_created": result["forms_created"]},
        "message": result["message"]
    }


@router.get("/{cycle_id}/assignments")
def list_assignments(
    cycle_id: int,
    employee_id: Optional[str] = Query(None),
    reviewer_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_assignments"))
):
    assignments = assignment_service.list_assignments(db, cycle_id, employee_id, reviewer_id, status_filter)
    return {
        "success": True,
        "data": assignments,
        "message": f"Found {len(assignments)} assignments"
    }
