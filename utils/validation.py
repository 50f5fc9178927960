"""
Request models and per-entity validators.

Every request body is declared as a pydantic model. The ``validate_*``
functions run ``Model.model_validate`` over the decoded JSON body and return a
tagged result: ``Ok(value)`` with the normalised fields, or
``Err(code, message, details)``. Services call ``unwrap`` so that an ``Err``
surfaces as a 400 with a stable ``code``.

Bodies accept both snake_case and camelCase keys.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Annotated, Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictFloat,
    StrictStr,
    StringConstraints,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from models.notification import NOTIFICATION_TYPES
from models.onboarding import ONBOARDING_STATUSES
from models.review import CYCLE_STATUSES, CYCLE_TYPES, FORM_STATUSES, REVIEWER_TYPES
from models.user import USER_ROLES, USER_STATUSES
from utils.errors import ValidationError


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Err:
    code: str
    message: str
    details: Any = None


Result = Union[Ok, Err]


def unwrap(result: Result) -> Any:
    if isinstance(result, Err):
        raise ValidationError(result.message, code=result.code, details=result.details)
    return result.value


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMPLOYMENT_TYPES = ("full-time", "part-time", "contract", "intern")
REVIEW_YEAR_MIN = 2000
REVIEW_YEAR_MAX = 2100
MIN_PASSWORD_LENGTH = 8

Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]
NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Number = Union[StrictInt, StrictFloat]

# field -> (code, message)
FieldCodes = Dict[str, Tuple[str, str]]


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_missing(error: Dict[str, Any]) -> bool:
    return error["type"] in ("missing", "string_too_short") or _blank(error.get("input"))


def _field_of(error: Dict[str, Any]) -> Optional[str]:
    return _snake(str(error["loc"][0])) if error["loc"] else None


def _to_err(exc: PydanticValidationError, invalid: FieldCodes, missing: Optional[FieldCodes] = None) -> Err:
    """Map the first pydantic error to a stable code."""
    error = exc.errors()[0]
    # Validators raise PydanticCustomError with the code as the error type
    if error["type"].isupper():
        return Err(error["type"], error["msg"], error.get("ctx"))

    field = _field_of(error)
    if missing and field in missing and _is_missing(error):
        return Err(*missing[field])
    if field in invalid:
        return Err(*invalid[field])
    label = f"{field}: {error['msg']}" if field else error["msg"]
    return Err("VALIDATION_ERROR", label, {"field": field})


def _one_of(value: str, choices: Iterable[str], code: str, label: str) -> str:
    if value not in choices:
        raise PydanticCustomError(code, f"{label} must be one of: {', '.join(choices)}")
    return value


def _reject_keys(data: Any, names: Iterable[str], code: str, message: str) -> None:
    if not isinstance(data, dict):
        return
    present = [name for name in names if name in data or to_camel(name) in data]
    if present:
        raise PydanticCustomError(code, message, {"fields": present})


def _check_email(value: str) -> str:
    if not EMAIL_RE.match(value):
        raise PydanticCustomError("INVALID_EMAIL_FORMAT", "A valid email is required")
    return value.lower()


def parse_date(value: Any) -> Optional[date]:
    """Accepts ``YYYY-MM-DD`` or a full ISO timestamp; returns None when unparseable."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _date_field(value: Any) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError("invalid date")
    return parsed


def validate_date_range(start: date, end: date) -> Result:
    if start >= end:
        return Err("INVALID_DATE_RANGE", "Start date must be before end date")
    return Ok((start, end))


def _check_date_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end:
        result = validate_date_range(start, end)
        if isinstance(result, Err):
            raise PydanticCustomError(result.code, result.message)


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _validate(model, payload: Any, invalid: FieldCodes, missing: Optional[FieldCodes] = None, context=None):
    if not isinstance(payload, dict):
        return Err("INVALID_BODY", "Request body must be a JSON object")
    try:
        return Ok(model.model_validate(payload, context=context))
    except PydanticValidationError as exc:
        return _to_err(exc, invalid, missing)


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------

ONBOARDING_PROTECTED = ("id", "status", "reviewed_by", "reviewed_at", "submitted_at")
ONBOARDING_REQUIRED = ("full_name", "personal_email")


class OnboardingFields(RequestModel):
    model_config = ConfigDict(extra="allow")

    personal_phone: Optional[Trimmed] = None
    job_title: Optional[Trimmed] = None
    department: Optional[Trimmed] = None
    employment_type: Optional[Trimmed] = None
    date_of_joining: Optional[Trimmed] = None
    form_data: Optional[Dict[str, Any]] = None

    @field_validator("personal_email", check_fields=False)
    @classmethod
    def _email(cls, value):
        return _check_email(value) if value is not None else value

    @field_validator("employment_type")
    @classmethod
    def _employment_type(cls, value):
        if not value:
            return None
        return _one_of(value, EMPLOYMENT_TYPES, "INVALID_EMPLOYMENT_TYPE", "employment_type")

    def columns(self, exclude_unset: bool = False) -> Dict[str, Any]:
        """Declared column values only; extras go to ``form_data``."""
        declared = set(type(self).model_fields) - {"form_data"}
        return self.model_dump(include=declared, exclude_unset=exclude_unset)

    def collected_form_data(self) -> Dict[str, Any]:
        """Declared ``form_data`` merged with every unrecognised key."""
        form_data = dict(self.form_data or {})
        for key, value in (self.model_extra or {}).items():
            if key in ONBOARDING_PROTECTED or _snake(key) in ONBOARDING_PROTECTED:
                continue
            # Blank optional answers are stored as null
            form_data[key] = None if value == "" else value
        return form_data


class OnboardingCreateRequest(OnboardingFields):
    full_name: NonBlank
    personal_email: NonBlank


class OnboardingUpdateRequest(OnboardingFields):
    full_name: NonBlank = None
    personal_email: NonBlank = None

    @model_validator(mode="before")
    @classmethod
    def _no_review_fields(cls, data):
        _reject_keys(
            data,
            ONBOARDING_PROTECTED,
            "PROTECTED_FIELDS",
            "Status and review fields can only change through the status endpoint",
        )
        return data


ONBOARDING_CODES: FieldCodes = {
    "personal_email": ("INVALID_EMAIL_FORMAT", "Invalid email format for personal_email"),
    "form_data": ("INVALID_FORM_DATA", "form_data must be an object"),
    **{
        name: ("INVALID_FIELD", f"{name} must be a string")
        for name in ("full_name", "personal_phone", "job_title", "department", "employment_type", "date_of_joining")
    },
}


def _missing_onboarding_fields(exc: PydanticValidationError) -> List[str]:
    missing = []
    for error in exc.errors():
        field = _field_of(error)
        if field in ONBOARDING_REQUIRED and _is_missing(error) and field not in missing:
            missing.append(field)
    return missing


def _onboarding_result(model, payload: Any) -> Result:
    if not isinstance(payload, dict):
        return Err("INVALID_BODY", "Request body must be a JSON object")
    try:
        return Ok(model.model_validate(payload))
    except PydanticValidationError as exc:
        missing = _missing_onboarding_fields(exc)
        if missing:
            return Err(
                "MISSING_REQUIRED_FIELDS",
                f"Missing required fields: {', '.join(missing)}",
                details={"missing_fields": missing},
            )
        return _to_err(exc, ONBOARDING_CODES)


def validate_onboarding_submission(payload: Dict[str, Any]) -> Result:
    result = _onboarding_result(OnboardingCreateRequest, payload)
    if isinstance(result, Err):
        return result

    request = result.value
    columns = request.columns()
    columns["form_data"] = request.collected_form_data()
    return Ok(columns)


def validate_onboarding_update(payload: Dict[str, Any]) -> Result:
    result = _onboarding_result(OnboardingUpdateRequest, payload)
    if isinstance(result, Err):
        return result

    request = result.value
    columns = request.columns(exclude_unset=True)
    form_data = request.collected_form_data()
    if form_data:
        columns["form_data"] = form_data
    return Ok(columns)


class StatusChangeRequest(RequestModel):
    status: NonBlank
    reviewer_id: Optional[Trimmed] = None
    comment: Optional[Trimmed] = None

    @field_validator("status")
    @classmethod
    def _status(cls, value):
        return _one_of(value, ONBOARDING_STATUSES, "INVALID_STATUS", "Invalid status. Status")

    @field_validator("reviewer_id", "comment")
    @classmethod
    def _blank_is_none(cls, value):
        return value or None


def validate_status_transition_request(payload: Dict[str, Any]) -> Result:
    result = _validate(
        StatusChangeRequest,
        payload,
        invalid={
            "status": ("INVALID_STATUS", f"Invalid status. Must be one of: {', '.join(ONBOARDING_STATUSES)}"),
            "reviewer_id": ("INVALID_REVIEWER_ID", "reviewer_id must be a string"),
            "comment": ("INVALID_COMMENT", "comment must be a string"),
        },
        missing={"status": ("MISSING_STATUS", "Status is required")},
    )
    return Ok(result.value.model_dump()) if isinstance(result, Ok) else result


# ---------------------------------------------------------------------------
# Review cycles
# ---------------------------------------------------------------------------

class CycleCreateRequest(RequestModel):
    name: NonBlank
    cycle_type: NonBlank
    start_date: date
    end_date: date
    status: str = "draft"

    @model_validator(mode="before")
    @classmethod
    def _no_creator(cls, data):
        _reject_keys(data, ("created_by",), "CREATOR_ID_NOT_ALLOWED", "Creator ID cannot be provided in request body")
        return data

    @field_validator("cycle_type")
    @classmethod
    def _cycle_type(cls, value):
        if value not in CYCLE_TYPES:
            raise PydanticCustomError("INVALID_CYCLE_TYPE", "Cycle type must be '6-month' or '1-year'")
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value):
        return "draft" if _blank(value) else value

    @field_validator("status")
    @classmethod
    def _status(cls, value):
        return _one_of(value, CYCLE_STATUSES, "INVALID_STATUS", "Status")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _dates(cls, value):
        return _date_field(value)

    @model_validator(mode="after")
    def _range(self):
        _check_date_range(self.start_date, self.end_date)
        return self


class CycleUpdateRequest(RequestModel):
    """Partial update; the date range is checked against the merged dates."""

    name: NonBlank = None
    cycle_type: str = None
    status: str = None
    start_date: date = None
    end_date: date = None

    @model_validator(mode="before")
    @classmethod
    def _no_creator(cls, data):
        _reject_keys(data, ("created_by",), "CREATOR_ID_NOT_ALLOWED", "Creator ID cannot be provided in request body")
        return data

    @field_validator("cycle_type")
    @classmethod
    def _cycle_type(cls, value):
        if value not in CYCLE_TYPES:
            raise PydanticCustomError("INVALID_CYCLE_TYPE", "Invalid cycle type. Must be \"6-month\" or \"1-year\"")
        return value

    @field_validator("status")
    @classmethod
    def _status(cls, value):
        return _one_of(value, CYCLE_STATUSES, "INVALID_STATUS", "Invalid status. Status")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _dates(cls, value):
        return _date_field(value)

    @model_validator(mode="after")
    def _merged_range(self, info: ValidationInfo):
        current = info.context or {}
        _check_date_range(
            self.start_date or current.get("start_date"),
            self.end_date or current.get("end_date"),
        )
        return self


CYCLE_CODES: FieldCodes = {
    "name": ("MISSING_NAME", "Name is required"),
    "cycle_type": ("INVALID_CYCLE_TYPE", "Cycle type must be '6-month' or '1-year'"),
    "status": ("INVALID_STATUS", f"Status must be one of: {', '.join(CYCLE_STATUSES)}"),
    "start_date": ("INVALID_START_DATE", "Invalid start date format"),
    "end_date": ("INVALID_END_DATE", "Invalid end date format"),
}


def validate_cycle_create(payload: Dict[str, Any]) -> Result:
    result = _validate(
        CycleCreateRequest,
        payload,
        invalid=CYCLE_CODES,
        missing={
            "name": ("MISSING_NAME", "Name is required"),
            "cycle_type": ("MISSING_CYCLE_TYPE", "Cycle type is required"),
            "start_date": ("MISSING_START_DATE", "Start date is required"),
            "end_date": ("MISSING_END_DATE", "End date is required"),
        },
    )
    return Ok(result.value.model_dump()) if isinstance(result, Ok) else result


def validate_cycle_update(payload: Dict[str, Any], current_start: date, current_end: date) -> Result:
    result = _validate(
        CycleUpdateRequest,
        payload,
        invalid=CYCLE_CODES,
        context={"start_date": current_start, "end_date": current_end},
    )
    return Ok(result.value.model_dump(exclude_unset=True)) if isinstance(result, Ok) else result


# ---------------------------------------------------------------------------
# Reviewer assignments
# ---------------------------------------------------------------------------

class AssignmentEntry(RequestModel):
    employee_id: NonBlank
    reviewer_id: NonBlank
    reviewer_type: str

    @field_validator("reviewer_type")
    @classmethod
    def _reviewer_type(cls, value):
        return _one_of(value, REVIEWER_TYPES, "INVALID_REVIEWER_TYPE", "reviewer_type")


ASSIGNMENT_PROBLEMS = {
    "employee_id": "employee_id is required and must be a string",
    "reviewer_id": "reviewer_id is required and must be a string",
    "reviewer_type": f"reviewer_type must be one of: {', '.join(REVIEWER_TYPES)}",
}


def validate_assignment_entries(entries: Any) -> Result:
    """Checks every entry and reports all problems at once."""
    if not isinstance(entries, list) or not entries:
        return Err("INVALID_ASSIGNMENTS", "Assignments array is required and must not be empty")

    errors: List[str] = []
    normalised = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            errors.append(f"Assignment {index}: must be an object")
            continue
        try:
            normalised.append(AssignmentEntry.model_validate(entry).model_dump())
        except PydanticValidationError as exc:
            fields = []
            for error in exc.errors():
                field = _field_of(error)
                if field not in fields:
                    fields.append(field)
            errors.extend(
                f"Assignment {index}: {ASSIGNMENT_PROBLEMS.get(field, 'invalid entry')}" for field in fields
            )

    if errors:
        return Err("VALIDATION_ERROR", "Validation failed", details=errors)
    return Ok(normalised)


# ---------------------------------------------------------------------------
# Review forms and comments
# ---------------------------------------------------------------------------

FORM_TEXT_FIELDS = ("goals_achievement", "strengths", "improvements", "additional_comments")


class FormUpdateRequest(RequestModel):
    status: str = None
    overall_rating: Optional[StrictInt] = Field(None, ge=1, le=5)
    goals_achievement: Optional[str] = None
    strengths: Optional[str] = None
    improvements: Optional[str] = None
    additional_comments: Optional[str] = None
    kpi_scores: Optional[Union[List[Any], Dict[str, Any], str]] = None

    @field_validator("status")
    @classmethod
    def _status(cls, value):
        return _one_of(value, FORM_STATUSES, "INVALID_STATUS", "Status")


def validate_form_update(payload: Dict[str, Any]) -> Result:
    result = _validate(
        FormUpdateRequest,
        payload,
        invalid={
            "status": ("INVALID_STATUS", f"Status must be one of: {', '.join(FORM_STATUSES)}"),
            "overall_rating": ("INVALID_RATING", "Overall rating must be an integer between 1 and 5"),
            "kpi_scores": ("INVALID_KPI_SCORES", "kpi_scores must be a list of {name, score} objects"),
            **{name: ("INVALID_FIELD", f"{name} must be a string") for name in FORM_TEXT_FIELDS},
        },
    )
    return Ok(result.value.model_dump(exclude_unset=True)) if isinstance(result, Ok) else result


class CommentCreateRequest(RequestModel):
    comment: NonBlank


def validate_comment_create(payload: Dict[str, Any]) -> Result:
    code = ("COMMENT_REQUIRED", "Comment is required and cannot be empty")
    result = _validate(CommentCreateRequest, payload, invalid={"comment": code}, missing={"comment": code})
    return Ok(result.value.comment) if isinstance(result, Ok) else result


# ---------------------------------------------------------------------------
# Appraisals
# ---------------------------------------------------------------------------

def _check_review_year(value):
    if value is not None and not REVIEW_YEAR_MIN <= value <= REVIEW_YEAR_MAX:
        raise PydanticCustomError(
            "INVALID_REVIEW_YEAR",
            f"review_year must be a 4-digit year between {REVIEW_YEAR_MIN} and {REVIEW_YEAR_MAX}",
        )
    return value


def _check_hike(value):
    if value is not None and value < -100:
        raise PydanticCustomError(
            "INVALID_HIKE_PERCENTAGE",
            "hike_percentage must be a number greater than or equal to -100",
        )
    return value


class AppraisalFields(RequestModel):
    @field_validator("review_year", check_fields=False)
    @classmethod
    def _review_year(cls, value):
        return _check_review_year(value)

    @field_validator("hike_percentage", check_fields=False)
    @classmethod
    def _hike(cls, value):
        return _check_hike(value)

    @field_validator("notes", check_fields=False)
    @classmethod
    def _notes(cls, value):
        return value or None


class AppraisalCreateRequest(AppraisalFields):
    employee_id: NonBlank
    cycle_id: StrictInt
    review_year: StrictInt
    past_ctc: StrictInt = Field(..., ge=0)
    current_ctc: StrictInt = Field(..., gt=0)
    hike_percentage: Optional[Number] = None
    notes: Optional[Trimmed] = None

    @model_validator(mode="before")
    @classmethod
    def _no_updated_by(cls, data):
        _reject_keys(data, ("updated_by",), "UPDATED_BY_NOT_ALLOWED", "updated_by cannot be provided in request body")
        return data


class AppraisalUpdateRequest(AppraisalFields):
    cycle_id: StrictInt = None
    review_year: StrictInt = None
    past_ctc: StrictInt = Field(None, ge=0)
    current_ctc: StrictInt = Field(None, gt=0)
    hike_percentage: Optional[Number] = None
    notes: Optional[Trimmed] = None

    @model_validator(mode="before")
    @classmethod
    def _fixed_fields(cls, data):
        _reject_keys(data, ("employee_id",), "EMPLOYEE_ID_IMMUTABLE", "Employee ID cannot be changed")
        _reject_keys(data, ("updated_by",), "UPDATED_BY_NOT_ALLOWED", "updated_by cannot be provided in request body")
        return data


APPRAISAL_CODES: FieldCodes = {
    "employee_id": ("MISSING_EMPLOYEE_ID", "employee_id is required and must be a string"),
    "cycle_id": ("INVALID_CYCLE_ID", "cycle_id must be a number"),
    "review_year": (
        "INVALID_REVIEW_YEAR",
        f"review_year must be a 4-digit year between {REVIEW_YEAR_MIN} and {REVIEW_YEAR_MAX}",
    ),
    "past_ctc": ("INVALID_PAST_CTC", "past_ctc must be a non-negative integer"),
    "current_ctc": ("INVALID_CURRENT_CTC", "current_ctc must be a positive integer"),
    "hike_percentage": (
        "INVALID_HIKE_PERCENTAGE",
        "hike_percentage must be a number greater than or equal to -100",
    ),
    "notes": ("INVALID_NOTES", "notes must be a string"),
}


def validate_appraisal_create(payload: Dict[str, Any]) -> Result:
    result = _validate(
        AppraisalCreateRequest,
        payload,
        invalid={**APPRAISAL_CODES, "cycle_id": ("MISSING_CYCLE_ID", "cycle_id is required and must be a number")},
        missing={
            "employee_id": ("MISSING_EMPLOYEE_ID", "employee_id is required and must be a string"),
            "cycle_id": ("MISSING_CYCLE_ID", "cycle_id is required and must be a number"),
            "review_year": ("MISSING_REVIEW_YEAR", "review_year is required"),
        },
    )
    return Ok(result.value.model_dump()) if isinstance(result, Ok) else result


def validate_appraisal_update(payload: Dict[str, Any]) -> Result:
    result = _validate(AppraisalUpdateRequest, payload, invalid=APPRAISAL_CODES)
    if isinstance(result, Err):
        return result

    changes = result.value.model_dump(exclude_unset=True)
    if "hike_percentage" in changes and changes["hike_percentage"] is None:
        del changes["hike_percentage"]
    return Ok(changes)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationCreateRequest(RequestModel):
    user_id: NonBlank
    notification_type: NonBlank
    title: NonBlank
    message: NonBlank
    related_id: Optional[StrictInt] = None

    @field_validator("notification_type")
    @classmethod
    def _notification_type(cls, value):
        return _one_of(value, NOTIFICATION_TYPES, "INVALID_NOTIFICATION_TYPE", "Invalid notification_type. Type")


def validate_notification_create(payload: Dict[str, Any]) -> Result:
    result = _validate(
        NotificationCreateRequest,
        payload,
        invalid={
            "user_id": ("INVALID_USER_ID", "Valid user_id is required"),
            "notification_type": (
                "INVALID_NOTIFICATION_TYPE",
                f"Invalid notification_type. Must be one of: {', '.join(NOTIFICATION_TYPES)}",
            ),
            "title": ("INVALID_TITLE", "Title is required and cannot be empty"),
            "message": ("INVALID_MESSAGE", "Message is required and cannot be empty"),
            "related_id": ("INVALID_RELATED_ID", "related_id must be an integer"),
        },
        missing={"notification_type": ("MISSING_NOTIFICATION_TYPE", "notification_type is required")},
    )
    return Ok(result.value.model_dump()) if isinstance(result, Ok) else result


# ---------------------------------------------------------------------------
# Users and credentials
# ---------------------------------------------------------------------------

Password = Annotated[StrictStr, StringConstraints(min_length=MIN_PASSWORD_LENGTH)]

USER_CODES: FieldCodes = {
    "name": ("MISSING_NAME", "Name is required"),
    "email": ("INVALID_EMAIL_FORMAT", "A valid email is required"),
    "password": ("INVALID_PASSWORD", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"),
    "new_password": ("INVALID_PASSWORD", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"),
    "role": ("INVALID_ROLE", f"Role must be one of: {', '.join(USER_ROLES)}"),
    "status": ("INVALID_STATUS", f"Status must be one of: {', '.join(USER_STATUSES)}"),
}


class UserFields(RequestModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def _email(cls, value):
        return _check_email(value)

    @field_validator("role", check_fields=False)
    @classmethod
    def _role(cls, value):
        return _one_of(value, USER_ROLES, "INVALID_ROLE", "Role")

    @field_validator("status", check_fields=False)
    @classmethod
    def _status(cls, value):
        return _one_of(value, USER_STATUSES, "INVALID_STATUS", "Status")


class UserCreateRequest(UserFields):
    name: NonBlank
    email: NonBlank
    password: Password
    role: Trimmed = "employee"
    status: Trimmed = "active"

    @field_validator("role", "status", mode="before")
    @classmethod
    def _blank_is_default(cls, value, info: ValidationInfo):
        if _blank(value):
            return cls.model_fields[info.field_name].default
        return value


class UserUpdateRequest(UserFields):
    name: NonBlank = None
    email: NonBlank = None
    password: Password = None
    role: Trimmed = None
    status: Trimmed = None


def validate_user_create(payload: Dict[str, Any]) -> Result:
    result = _validate(UserCreateRequest, payload, invalid=USER_CODES)
    return Ok(result.value.model_dump()) if isinstance(result, Ok) else result


def validate_user_update(payload: Dict[str, Any]) -> Result:
    result = _validate(UserUpdateRequest, payload, invalid={**USER_CODES, "name": ("INVALID_NAME", "Name cannot be empty")})
    if isinstance(result, Err):
        return result

    changes = result.value.model_dump(exclude_unset=True)
    if not changes:
        return Err("NO_FIELDS_PROVIDED", "At least one field to update is required")
    return Ok(changes)


class LoginRequest(RequestModel):
    email: NonBlank
    password: StrictStr = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return value.lower()


def validate_login(payload: Dict[str, Any]) -> Result:
    code = ("MISSING_CREDENTIALS", "Email and password are required")
    result = _validate(LoginRequest, payload, invalid={"email": code, "password": code})
    return Ok(result.value.model_dump()) if isinstance(result, Ok) else result


class ForgotPasswordRequest(UserFields):
    email: NonBlank


def validate_forgot_password(payload: Dict[str, Any]) -> Result:
    result = _validate(ForgotPasswordRequest, payload, invalid=USER_CODES)
    return Ok(result.value.email) if isinstance(result, Ok) else result


class ResetPasswordRequest(UserFields):
    email: NonBlank
    otp: NonBlank
    new_password: Password

    @field_validator("otp", mode="before")
    @classmethod
    def _otp_as_text(cls, value):
        # Clients send the six digits as a number or a string
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


def validate_reset_password(payload: Dict[str, Any]) -> Result:
    result = _validate(
        ResetPasswordRequest,
        payload,
        invalid={**USER_CODES, "otp": ("MISSING_OTP", "OTP is required")},
    )
    return Ok(result.value.model_dump()) if isinstance(result, Ok) else result
