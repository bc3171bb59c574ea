# ats_intake/validation/rules.py

"""
Record-level validation for a candidate submission.

``validate_submission`` evaluates every rule and returns all violations in a
stable order: personal fields, then educations, then experiences, then files.
At most one error is reported per field; the first failing check wins.
"""

from typing import Callable, Dict, List, Optional, Protocol, Sequence

from ats_intake.core.config import settings
from ats_intake.schemas.submission import (
    CandidateSubmission, EducationEntry, ExperienceEntry, FieldError
)
from ats_intake.validation.validators import (
    ADDRESS_MAX_LENGTH,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    is_allowed_file_type,
    is_valid_email,
    is_valid_name,
    is_valid_phone,
    is_valid_url,
    parse_date,
)


class UploadedFileInfo(Protocol):
    original_name: str
    mime_type: str
    size: int


class _ErrorList:
    """
    Collects rule violations in check order. A field whose value failed type
    checks while parsing reports that error in place of its own checks.
    """

    def __init__(self, type_errors: Sequence[FieldError] = ()):
        self.items: List[FieldError] = []
        self._type_errors: Dict[str, FieldError] = {}
        for error in type_errors:
            self._type_errors.setdefault(error.field, error)

    def add(self, field: str, message: str) -> None:
        self.items.append(FieldError(field=field, message=message))

    def has_type_error(self, field: str) -> bool:
        """Reports the parse-time error for ``field``, if any. True means skip its checks."""
        error = self._type_errors.pop(field, None)
        if error is None:
            return False
        self.items.append(error)
        return True

    def flush_type_errors(self) -> None:
        """Reports parse-time errors on fields no rule looks at."""
        self.items.extend(self._type_errors.values())
        self._type_errors.clear()


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _check_required(
    errors: _ErrorList,
    field: str,
    value: Optional[str],
    label: str,
    predicate: Optional[Callable[[str], bool]] = None,
    invalid_message: str = "",
) -> None:
    if errors.has_type_error(field):
        return
    if _is_blank(value):
        errors.add(field, f"{label} is required")
    elif predicate is not None and not predicate(value):
        errors.add(field, invalid_message)


def _check_name(errors: _ErrorList, field: str, value: Optional[str], label: str) -> None:
    if errors.has_type_error(field):
        return
    if _is_blank(value):
        errors.add(field, f"{label} is required")
    elif not NAME_MIN_LENGTH <= len(value.strip()) <= NAME_MAX_LENGTH:
        errors.add(field, f"{label} must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters")
    elif not is_valid_name(value):
        errors.add(field, f"{label} contains invalid characters")


def _check_optional_url(errors: _ErrorList, field: str, value: Optional[str], message: str) -> None:
    # An empty string counts as "not provided", same as a missing key.
    if errors.has_type_error(field) or _is_blank(value):
        return
    if not is_valid_url(value):
        errors.add(field, message)


def _check_dates(errors: _ErrorList, prefix: str, start_date: Optional[str],
                 end_date: Optional[str], current: Optional[bool]) -> None:
    start = None
    if not errors.has_type_error(f"{prefix}.startDate"):
        if _is_blank(start_date):
            errors.add(f"{prefix}.startDate", "Start date is required")
        else:
            start = parse_date(start_date)
            if start is None:
                errors.add(f"{prefix}.startDate", "Invalid start date format")

    if errors.has_type_error(f"{prefix}.current"):
        errors.has_type_error(f"{prefix}.endDate")
        return
    if current is None:
        errors.add(f"{prefix}.current", "Current field must be boolean")
        errors.has_type_error(f"{prefix}.endDate")
        return
    if current:
        # Ongoing: the end date is ignored and persisted as null, but a
        # wrongly typed one is still reported.
        errors.has_type_error(f"{prefix}.endDate")
        return

    if errors.has_type_error(f"{prefix}.endDate"):
        return
    if _is_blank(end_date):
        errors.add(f"{prefix}.endDate", "End date is required unless current")
        return
    end = parse_date(end_date)
    if end is None:
        errors.add(f"{prefix}.endDate", "Invalid end date format")
    elif start is not None and end <= start:
        errors.add(f"{prefix}.endDate", "End date must be after start date")


def _validate_education(errors: _ErrorList, index: int, entry: EducationEntry) -> None:
    prefix = f"educations[{index}]"
    if errors.has_type_error(prefix):
        return
    _check_required(errors, f"{prefix}.institution", entry.institution, "Institution name")
    _check_required(errors, f"{prefix}.degree", entry.degree, "Degree")
    _check_required(errors, f"{prefix}.fieldOfStudy", entry.field_of_study, "Field of study")
    _check_dates(errors, prefix, entry.start_date, entry.end_date, entry.current)
    errors.has_type_error(f"{prefix}.description")


def _validate_experience(errors: _ErrorList, index: int, entry: ExperienceEntry) -> None:
    prefix = f"experiences[{index}]"
    if errors.has_type_error(prefix):
        return
    _check_required(errors, f"{prefix}.company", entry.company, "Company name")
    _check_required(errors, f"{prefix}.position", entry.position, "Position")
    errors.has_type_error(f"{prefix}.description")
    _check_dates(errors, prefix, entry.start_date, entry.end_date, entry.current)


def validate_files(files: Sequence[UploadedFileInfo]) -> List[FieldError]:
    errors: List[FieldError] = []
    max_mb = settings.MAX_FILE_SIZE // (1024 * 1024)

    if len(files) > settings.MAX_FILES:
        errors.append(FieldError(
            field="documents",
            message=f"Too many files. Maximum is {settings.MAX_FILES} files."
        ))

    for index, file in enumerate(files):
        field = f"documents[{index}]"
        if not is_allowed_file_type(file.original_name, file.mime_type):
            errors.append(FieldError(
                field=field,
                message=f"Invalid file type for '{file.original_name}'. Only PDF, DOC and DOCX files are allowed."
            ))
        if file.size > settings.MAX_FILE_SIZE:
            errors.append(FieldError(
                field=field,
                message=f"File '{file.original_name}' is too large. Maximum size is {max_mb}MB."
            ))
    return errors


def validate_submission(
    submission: CandidateSubmission,
    files: Sequence[UploadedFileInfo] = (),
    type_errors: Sequence[FieldError] = (),
) -> List[FieldError]:
    """
    Returns every validation error for the submission; an empty list means valid.

    ``type_errors`` are the wrong-type errors from ``parse_submission``. Each
    one is reported at its field's position instead of that field's checks.
    """
    errors = _ErrorList(type_errors)

    _check_name(errors, "firstName", submission.first_name, "First name")
    _check_name(errors, "lastName", submission.last_name, "Last name")
    _check_required(errors, "email", submission.email, "Email",
                    is_valid_email, "Please provide a valid email address")
    _check_required(errors, "phone", submission.phone, "Phone number",
                    is_valid_phone, "Please provide a valid phone number")

    address = submission.address
    if not errors.has_type_error("address") and not _is_blank(address) and len(address.strip()) > ADDRESS_MAX_LENGTH:
        errors.add("address", f"Address must not exceed {ADDRESS_MAX_LENGTH} characters")

    _check_optional_url(errors, "linkedIn", submission.linked_in, "Please provide a valid LinkedIn URL")
    _check_optional_url(errors, "portfolio", submission.portfolio, "Please provide a valid portfolio URL")

    if not errors.has_type_error("educations"):
        for index, education in enumerate(submission.educations):
            _validate_education(errors, index, education)
    if not errors.has_type_error("experiences"):
        for index, experience in enumerate(submission.experiences):
            _validate_experience(errors, index, experience)
    errors.flush_type_errors()

    errors.items.extend(validate_files(files))
    return errors.items
