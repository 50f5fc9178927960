from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from services import assignment_service
from utils.permissions import require_permission

router = APIRouter()


@router.delete("/{assignment_id}")
def delete_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_assignments"))
):
    """Removes the assignment together with its review form"""
    deleted = assignment_service.delete_assignment(db, assignment_id)
    return {"success": True, "data": deleted, "message": "Assignment deleted"}
