# ats_intake/schemas/submission.py

import json
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

# Incoming payloads use the browser form's camelCase keys (firstName,
# fieldOfStudy, linkedIn). Unknown keys are ignored. Every field is optional
# at this layer so that a missing value is reported by the rule engine as
# "required" rather than as a parse failure.
_SUBMISSION_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


class FieldError(BaseModel):
    """A single field-addressable validation problem."""
    field: str
    message: str


class EducationEntry(BaseModel):
    institution: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    current: Optional[bool] = None
    description: Optional[str] = None

    model_config = _SUBMISSION_CONFIG


class ExperienceEntry(BaseModel):
    company: Optional[str] = None
    position: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    current: Optional[bool] = None

    model_config = _SUBMISSION_CONFIG


class CandidateSubmission(BaseModel):
    """One create-candidate payload, before validation and persistence."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    linked_in: Optional[str] = None
    portfolio: Optional[str] = None
    educations: List[EducationEntry] = Field(default_factory=list)
    experiences: List[ExperienceEntry] = Field(default_factory=list)

    model_config = _SUBMISSION_CONFIG


def _format_loc(loc: Tuple[Any, ...]) -> str:
    """('educations', 0, 'startDate') -> 'educations[0].startDate'"""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or "candidateData"


def _drop_value(data: Any, loc: Tuple[Any, ...]) -> None:
    """Removes the value at ``loc`` so the rest of the payload can still be read."""
    if not loc:
        return
    target = data
    for part in loc[:-1]:
        try:
            target = target[part]
        except (KeyError, IndexError, TypeError):
            return
    last = loc[-1]
    if isinstance(target, dict):
        target.pop(last, None)
    elif isinstance(target, list) and isinstance(last, int) and last < len(target):
        # Keep the slot so later entries keep their indices.
        target[last] = {}


def parse_submission(raw: Optional[str]) -> Tuple[Optional[CandidateSubmission], List[FieldError]]:
    """
    Deserializes the JSON-encoded candidateData form field.

    Never raises. Returns (submission, type_errors). A value of the wrong type
    (``"firstName": 123``) is reported in ``type_errors`` and left out of the
    submission, so the remaining fields can still be validated. The submission
    is None only when the payload is not a JSON object at all. An absent
    payload is treated as an empty object, so every required field gets
    reported downstream.
    """
    try:
        data = json.loads(raw) if raw and raw.strip() else {}
    except (TypeError, ValueError):
        return None, [FieldError(field="candidateData", message="Invalid candidate data format")]

    if not isinstance(data, dict):
        return None, [FieldError(field="candidateData", message="Candidate data must be a JSON object")]

    try:
        return CandidateSubmission.model_validate(data), []
    except ValidationError as e:
        details = e.errors()

    type_errors = [
        FieldError(field=_format_loc(err["loc"]), message=err["msg"])
        for err in details
    ]
    for err in details:
        _drop_value(data, err["loc"])
    try:
        return CandidateSubmission.model_validate(data), type_errors
    except ValidationError:
        # Locations that could not be dropped (e.g. snake_case keys); report as is.
        return None, type_errors
