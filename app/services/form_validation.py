"""Field validation and sanitization for the contest form.

Fields are checked in a fixed order (name, company, email, phone) and the
first failure is reported, so clients always see one actionable message.
Accepted values are trimmed; name, company and phone are HTML-escaped before
they are stored.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any, Mapping

from email_validator import EmailNotValidError, validate_email

from app.core.config import AppSettings, settings
from app.core.errors import ValidationAppError
from app.schemas.submission import SubmissionForm

logger = logging.getLogger(__name__)

MAX_EMAIL_LENGTH = 254

NAME_PATTERN = re.compile(r"^[a-zA-Z\s\-'.]+$")
COMPANY_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-'.&,]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-()+.]+$")
EMAIL_FORBIDDEN_PATTERN = re.compile(r"[<>\r\n]")

NAME_ERROR = "Please enter a valid name (letters, spaces, hyphens, apostrophes only)"
COMPANY_ERROR = "Please enter a valid company name"
EMAIL_ERROR = "Please enter a valid email address"
PHONE_ERROR = "Please enter a valid phone number"


def _field(payload: Mapping[str, Any], name: str) -> str:
    """Return a payload field as a string; missing or non-string values are empty."""
    value = payload.get(name)
    return value if isinstance(value, str) else ""


def _matches(value: str, pattern: re.Pattern[str], max_length: int) -> bool:
    return bool(value) and len(value) <= max_length and bool(pattern.match(value.strip()))


def is_valid_name(name: str, max_length: int = 50) -> bool:
    return _matches(name, NAME_PATTERN, max_length)


def is_valid_company(company: str, max_length: int = 100) -> bool:
    return _matches(company, COMPANY_PATTERN, max_length)


def is_valid_phone(phone: str, max_length: int = 20) -> bool:
    return _matches(phone, PHONE_PATTERN, max_length)


def is_valid_email(email: str) -> bool:
    """Check email syntax (no DNS lookups), length and forbidden characters.

    Args:
        email: Raw email value; surrounding whitespace is ignored.

    Returns:
        True if the trimmed email is acceptable.
    """
    email = email.strip()
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    if EMAIL_FORBIDDEN_PATTERN.search(email):
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def sanitize_text(value: str) -> str:
    """Trim and escape markup-significant characters (quotes included)."""
    return html.escape(value.strip(), quote=True)


def _reject(field: str, message: str, value: str, max_length: int | None = None) -> ValidationAppError:
    logger.info(
        "form_validation.rejected",
        extra={"field": field, "length": len(value), "max_length": max_length},
    )
    return ValidationAppError(
        code=f"invalid_{field}",
        message=message,
        details={"field": field, "actual_length": len(value)},
    )


def validate_submission(
    payload: Mapping[str, Any],
    app_settings: AppSettings | None = None,
) -> SubmissionForm:
    """Validate a decoded request body and return the sanitized form.

    Args:
        payload: Decoded JSON object from the request body.
        app_settings: Length limits; defaults to the global settings.

    Returns:
        SubmissionForm with trimmed/escaped values.

    Raises:
        ValidationAppError: For the first invalid field.
    """
    cfg = app_settings or settings.app

    name = _field(payload, "name")
    company = _field(payload, "company")
    email = _field(payload, "email")
    phone = _field(payload, "phone")

    if not is_valid_name(name, cfg.max_name_length):
        raise _reject("name", NAME_ERROR, name, cfg.max_name_length)
    if not is_valid_company(company, cfg.max_company_length):
        raise _reject("company", COMPANY_ERROR, company, cfg.max_company_length)
    if not is_valid_email(email):
        raise _reject("email", EMAIL_ERROR, email, MAX_EMAIL_LENGTH)
    if not is_valid_phone(phone, cfg.max_phone_length):
        raise _reject("phone", PHONE_ERROR, phone, cfg.max_phone_length)

    return SubmissionForm(
        name=sanitize_text(name),
        company=sanitize_text(company),
        email=email.strip(),
        phone=sanitize_text(phone),
    )
