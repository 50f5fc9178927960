from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from database import get_db
from models import User
from services import appraisal_service
from utils.permissions import require_permission

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_appraisal(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_appraisals"))
):
    appraisal = appraisal_service.create_appraisal(db, payload, current_user)
    return {"success": True, "data": appraisal, "message": "Appraisal created"}


@router.get("")
def list_appraisals(
    employee_id: Optional[str] = Query(None),
    cycle_id: Optional[int] = Query(None),
    review_year: Optional[int] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_appraisals"))
):
    appraisals = appraisal_service.list_appraisals(db, employee_id, cycle_id, review_year, limit, offset)
    return {"success": True, "data": appraisals, "message": f"Found {len(appraisals)} appraisals"}


@router.get("/{appraisal_id}")
def get_appraisal(
    appraisal_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_appraisals"))
):
    return {
        "success": True,
        "data": appraisal_service.get_appraisal(db, appraisal_id),
        "message": "Appraisal retrieved"
    }


@router.put("/{appraisal_id}")
def update_appraisal(
    appraisal_id: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_appraisals"))
):
    appraisal = appraisal_service.update_appraisal(db, appraisal_id, payload, current_user)
    return {"success": True, "data": appraisal, "message": "Appraisal updated"}


@router.delete("/{appraisal_id}")
def delete_appraisal(
    appraisal_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_appraisals"))
):
    deleted = appraisal_service.delete_appraisal(db, appraisal_id)
    return {"success": True, "data": deleted, "message": "Appraisal deleted"}
