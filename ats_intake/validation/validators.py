# ats_intake/validation/validators.py

"""
Field-level predicates for candidate submissions.

Every function here is pure and never raises: malformed input (including
``None`` or a non-string) simply fails the check.
"""

import os
import re
from datetime import date, datetime
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyUrl, TypeAdapter, ValidationError

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
ADDRESS_MAX_LENGTH = 200

PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15

ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx"}
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

_NAME_PUNCTUATION = {" ", "-", "'"}

# Optional leading +, then digit groups separated by a single space, hyphen,
# dot, or parenthesised area code.
_PHONE_RE = re.compile(r"^\+?(?:\(\d{1,4}\)|\d)(?:[\s.\-]?(?:\(\d{1,4}\)|\d))*$")

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_name(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    name = value.strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        return False
    # str.isalpha() covers accented letters (é, ñ, ü, ...)
    return all(ch.isalpha() or ch in _NAME_PUNCTUATION for ch in name)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def is_valid_email(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        validate_email(normalize_email(value), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_phone(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    phone = value.strip()
    if not _PHONE_RE.match(phone):
        return False
    digits = sum(ch.isdigit() for ch in phone)
    return PHONE_MIN_DIGITS <= digits <= PHONE_MAX_DIGITS


def is_valid_url(value: Any) -> bool:
    """Absolute URL with both a scheme and a host."""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        url = _url_adapter.validate_python(value.strip())
    except ValidationError:
        return False
    return bool(url.scheme and url.host)


def parse_date(value: Any) -> Optional[date]:
    """Parses an ISO-8601 date or datetime string. Returns None if malformed."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        # fromisoformat only accepts a trailing "Z" from Python 3.11 on
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def is_valid_date(value: Any) -> bool:
    return parse_date(value) is not None


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension, including the dot."""
    return os.path.splitext(filename or "")[1].lower()


def is_allowed_file_type(filename: str, content_type: Optional[str]) -> bool:
    """Both the extension and the declared MIME type must be allowed."""
    return (
        get_file_extension(filename) in ALLOWED_EXTENSIONS
        and (content_type or "").lower() in ALLOWED_MIME_TYPES
    )
