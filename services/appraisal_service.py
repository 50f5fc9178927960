import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import atomic
from models import Appraisal, ReviewCycle, User
from utils.errors import ConflictError, NotFoundError
from utils.validation import unwrap, validate_appraisal_create, validate_appraisal_update

logger = logging.getLogger(__name__)


def compute_hike_percentage(past_ctc: int, current_ctc: int) -> float:
    """(current - past) / past * 100, rounded to 2 places; 0 when there is no past CTC."""
    if not past_ctc:
        return 0.0
    return round((current_ctc - past_ctc) / past_ctc * 100, 2)


def _get_appraisal(db: Session, appraisal_id: int) -> Appraisal:
    appraisal = db.query(Appraisal).filter(Appraisal.id == appraisal_id).first()
    if not appraisal:
        raise NotFoundError("Appraisal not found")
    return appraisal


def _require_cycle(db: Session, cycle_id: int):
    if not db.query(ReviewCycle.id).filter(ReviewCycle.id == cycle_id).first():
        raise NotFoundError("Review cycle not found", code="CYCLE_NOT_FOUND")


def _duplicate_conflict(employee_id: str, cycle_id: int) -> ConflictError:
    return ConflictError(
        "Appraisal already exists for this employee and cycle",
        code="DUPLICATE_APPRAISAL",
        employee_id=employee_id,
        cycle_id=cycle_id
    )


def _pair_taken(db: Session, employee_id: str, cycle_id: int, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Appraisal.id).filter(
        Appraisal.employee_id == employee_id,
        Appraisal.cycle_id == cycle_id
    )
    if exclude_id is not None:
        query = query.filter(Appraisal.id != exclude_id)
    return query.first() is not None


def _with_people(db: Session, appraisal: Appraisal) -> Dict[str, Any]:
    people = {
        u.id: u for u in db.query(User).filter(User.id.in_({appraisal.employee_id, appraisal.updated_by})).all()
    }
    cycle = db.query(ReviewCycle).filter(ReviewCycle.id == appraisal.cycle_id).first()
    employee = people.get(appraisal.employee_id)
    updater = people.get(appraisal.updated_by)
    return {
        **appraisal.to_dict(),
        "employee": employee.summary() if employee else None,
        "updated_by_user": updater.summary() if updater else None,
        "cycle_name": cycle.name if cycle else None,
    }


def create_appraisal(db: Session, payload: Dict[str, Any], actor: User) -> Dict[str, Any]:
    data = unwrap(validate_appraisal_create(payload))

    if not db.query(User.id).filter(User.id == data["employee_id"]).first():
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")
    _require_cycle(db, data["cycle_id"])

    if _pair_taken(db, data["employee_id"], data["cycle_id"]):
        raise _duplicate_conflict(data["employee_id"], data["cycle_id"])

    if data["hike_percentage"] is None:
        data["hike_percentage"] = compute_hike_percentage(data["past_ctc"], data["current_ctc"])

    appraisal = Appraisal(updated_by=actor.id, **data)
    try:
        with atomic(db):
            db.add(appraisal)
    except IntegrityError:
        raise _duplicate_conflict(data["employee_id"], data["cycle_id"])

    db.refresh(appraisal)
    logger.info(f"💰 Appraisal {appraisal.id} created for {appraisal.employee_id} in cycle {appraisal.cycle_id}")
    return _with_people(db, appraisal)


def update_appraisal(db: Session, appraisal_id: int, payload: Dict[str, Any], actor: User) -> Dict[str, Any]:
    """
    Partial update.

    An explicit hike_percentage always wins. Otherwise the hike is recomputed
    only when a CTC field changes, and left as it was when neither does.
    """
    appraisal = _get_appraisal(db, appraisal_id)
    changes = unwrap(validate_appraisal_update(payload))

    if "cycle_id" in changes and changes["cycle_id"] != appraisal.cycle_id:
        _require_cycle(db, changes["cycle_id"])
        if _pair_taken(db, appraisal.employee_id, changes["cycle_id"], exclude_id=appraisal.id):
            raise _duplicate_conflict(appraisal.employee_id, changes["cycle_id"])

    if "hike_percentage" not in changes and ("past_ctc" in changes or "current_ctc" in changes):
        changes["hike_percentage"] = compute_hike_percentage(
            changes.get("past_ctc", appraisal.past_ctc),
            changes.get("current_ctc", appraisal.current_ctc)
        )

    try:
        with atomic(db):
            for field, value in changes.items():
                setattr(appraisal, field, value)
            appraisal.updated_by = actor.id
    except IntegrityError:
        raise _duplicate_conflict(appraisal.employee_id, changes.get("cycle_id"))

    db.refresh(appraisal)
    logger.info(f"💰 Appraisal {appraisal_id} updated by {actor.id}")
    return _with_people(db, appraisal)


def get_appraisal(db: Session, appraisal_id: int) -> Dict[str, Any]:
    return _with_people(db, _get_appraisal(db, appraisal_id))


def list_appraisals(
    db: Session,
    employee_id: Optional[str] = None,
    cycle_id: Optional[int] = None,
    review_year: Optional[int] = None,
    limit: int = 20,
    offset: int = 0
) -> List[Dict[str, Any]]:
    query = db.query(Appraisal)
    if employee_id:
        query = query.filter(Appraisal.employee_id == employee_id)
    if cycle_id is not None:
        query = query.filter(Appraisal.cycle_id == cycle_id)
    if review_year is not None:
        query = query.filter(Appraisal.review_year == review_year)

    appraisals = query.order_by(Appraisal.created_at.desc(), Appraisal.id.desc()).offset(offset).limit(limit).all()
    return [appraisal.to_dict() for appraisal in appraisals]


def delete_appraisal(db: Session, appraisal_id: int) -> Dict[str, Any]:
    appraisal = _get_appraisal(db, appraisal_id)
    snapshot = appraisal.to_dict()
    with atomic(db):
        db.delete(appraisal)
    logger.info(f"🗑️ Appraisal {appraisal_id} deleted")
    return snapshot
