"""
Onboarding routes: public intake plus the HR review workflow.
"""

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
import logging

from database import get_db
from models import User
from services import onboarding_service
from utils.permissions import require_permission

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_onboarding(payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """Intake form for prospective employees; no account needed"""
    submission = onboarding_service.submit_onboarding(db, payload)
    return {
        "success": True,
        "data": submission.to_dict(),
        "message": "Onboarding submission received"
    }


@router.get("")
def list_onboarding(
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_onboarding"))
):
    submissions = onboarding_service.list_submissions(db, status_filter, search, limit, offset)
    return {
        "success": True,
        "data": [onboarding_service.serialize_submission(db, s) for s in submissions],
        "message": f"Found {len(submissions)} submissions"
    }


@router.get("/{submission_id}")
def get_onboarding(
    submission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("view_onboarding"))
):
    submission = onboarding_service.get_submission(db, submission_id)
    return {
        "success": True,
        "data": onboarding_service.serialize_submission(db, submission),
        "message": "Submission retrieved"
    }


@router.put("/{submission_id}")
def update_onboarding(
    submission_id: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("edit_onboarding"))
):
    submission = onboarding_service.update_submission(db, submission_id, payload)
    return {
        "success": True,
        "data": onboarding_service.serialize_submission(db, submission),
        "message": "Submission updated"
    }


@router.patch("/{submission_id}/status")
def transition_onboarding_status(
    submission_id: int,
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("review_onboarding"))
):
    """
    Move a submission through pending / in_review / approved / rejected.

    Approval creates the applicant's account; the temporary password is
    returned here once and never stored in plain text.
    """
    settings = request.app.state.settings
    outcome = onboarding_service.transition_status(
        db,
        submission_id,
        payload,
        temp_password_length=settings.TEMP_PASSWORD_LENGTH
    )

    data = onboarding_service.serialize_submission(db, outcome.submission)
    data["user_created"] = outcome.user_created
    data["temporary_password"] = outcome.temporary_password
    data["user"] = outcome.provisioned_user.summary() if outcome.provisioned_user else None

    message = f"Submission status updated to {outcome.submission.status}"
    if outcome.user_created:
        message += "; user account created"

    return {"success": True, "data": data, "message": message}


@router.delete("/{submission_id}")
def delete_onboarding(
    submission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("delete_onboarding"))
):
    deleted = onboarding_service.delete_submission(db, submission_id)
    return {"success": True, "data": deleted, "message": "Submission deleted"}
