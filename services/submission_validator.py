"""Validate visitor payloads against a campaign's dynamic form schema.

The validator never rewrites the payload: whatever passes is stored exactly as
it was submitted. Type checks only decide acceptance.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urlparse

from models.campaign import Campaign
from schemas.api.campaign import FormFieldDescriptor
from services.campaign_errors import (
    CampaignFormDisabledError,
    CampaignNotPublishedError,
    FieldErrors,
    SubmissionValidationError,
)
from services.campaign_service import is_publicly_visible
from services.form_schema import canonical_type, load_form_fields

REQUIRED_MESSAGE = "This field is required."

_SCALAR_TYPES = (str, int, float, bool)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_CHARS_RE = re.compile(r"^[0-9+\-().\s]+$")
_PHONE_MIN_DIGITS = 7
_PHONE_MAX_DIGITS = 15


def ensure_campaign_accepts_submissions(campaign: Campaign, *, now: Optional[datetime] = None) -> None:
    """Reject campaigns that are hidden from visitors or have their form switched off."""
    if not is_publicly_visible(campaign, now=now):
        raise CampaignNotPublishedError()
    if not campaign.enable_form:
        raise CampaignFormDisabledError()


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, _SCALAR_TYPES)


def _storage_problem(value: Any) -> Optional[str]:
    """JSONB refuses NaN/Infinity and NUL characters even though JSON parsing accepts them."""
    if isinstance(value, float) and not math.isfinite(value):
        return "Numbers must be finite."
    if isinstance(value, str) and "\x00" in value:
        return "Text must not contain NUL characters."
    return None


def check_payload_shape(payload: Any) -> Dict[str, Any]:
    """Require a flat object: scalar values, or flat lists of scalars for multi-choice inputs."""
    if not isinstance(payload, Mapping):
        raise SubmissionValidationError(
            "formData must be an object of field values",
            errors={"formData": ["Expected an object of field values."]},
        )

    errors: FieldErrors = {}
    for key, value in payload.items():
        if not isinstance(key, str):
            errors.setdefault("formData", []).append("Field names must be strings.")
            continue
        if "\x00" in key:
            errors.setdefault("formData", []).append("Field names must not contain NUL characters.")
            continue
        if isinstance(value, Mapping):
            errors[key] = ["Nested objects are not allowed."]
            continue
        if isinstance(value, (list, tuple)):
            if not all(item is not None and isinstance(item, _SCALAR_TYPES) for item in value):
                errors[key] = ["Nested values are not allowed."]
                continue
            items = list(value)
        elif not _is_scalar(value):
            errors[key] = ["Unsupported value type."]
            continue
        else:
            items = [value]
        problem = next((msg for msg in map(_storage_problem, items) if msg), None)
        if problem:
            errors[key] = [problem]
    if errors:
        raise SubmissionValidationError("formData has an unsupported shape", errors=errors)
    return dict(payload)


def _is_blank(value: Any, field_type: str) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    if field_type == "checkbox" and value is False:
        return True
    return False


def _check_email(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not _EMAIL_RE.match(value.strip()):
        return "Enter a valid email address."
    return None


def _check_phone(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return "Enter a valid phone number."
    text = str(value).strip()
    digits = sum(ch.isdigit() for ch in text)
    if not _PHONE_CHARS_RE.match(text) or not _PHONE_MIN_DIGITS <= digits <= _PHONE_MAX_DIGITS:
        return "Enter a valid phone number."
    return None


def _check_number(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "Enter a valid number."
    if isinstance(value, (int, float)):
        return None if math.isfinite(value) else "Enter a valid number."
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return "Enter a valid number."
        return None if math.isfinite(parsed) else "Enter a valid number."
    return "Enter a valid number."


def _check_date(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return "Enter a valid date."
    text = value.strip()
    try:
        date.fromisoformat(text)
        return None
    except ValueError:
        pass
    try:
        datetime.fromisoformat(text.replace("Z", "+00:00"))
        return None
    except ValueError:
        return "Enter a valid date."


def _check_url(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return "Enter a valid URL."
    parsed = urlparse(value.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return "Enter a valid URL."
    return None


def _check_choice(value: Any, options: Sequence[str]) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        return "Select a single option."
    if options and str(value) not in options:
        return "Select one of the available options."
    return None


def _check_checkbox(value: Any, options: Sequence[str]) -> Optional[str]:
    if isinstance(value, bool):
        return None
    values = list(value) if isinstance(value, (list, tuple)) else [value]
    if options and any(str(item) not in options for item in values):
        return "Select only the available options."
    return None


def _check_field_value(field: FormFieldDescriptor, value: Any) -> Optional[str]:
    field_type = canonical_type(field.type)
    options = field.options or []
    if field_type == "checkbox":
        return _check_checkbox(value, options)
    if isinstance(value, (list, tuple)):
        return "Expected a single value."
    if field_type == "email":
        return _check_email(value)
    if field_type == "phone":
        return _check_phone(value)
    if field_type == "number":
        return _check_number(value)
    if field_type == "date":
        return _check_date(value)
    if field_type == "url":
        return _check_url(value)
    if field_type in {"select", "radio"}:
        return _check_choice(value, options)
    return None


def validate_submission_payload(fields: Sequence[FormFieldDescriptor], payload: Any) -> Dict[str, Any]:
    """Check ``payload`` against ``fields``; raise with a field-keyed error map on failure."""
    accepted = check_payload_shape(payload)

    errors: Dict[str, List[str]] = {}
    for field in fields:
        field_type = canonical_type(field.type)
        value = accepted.get(field.name)
        if _is_blank(value, field_type):
            if field.required:
                errors[field.name] = [REQUIRED_MESSAGE]
            continue
        problem = _check_field_value(field, value)
        if problem:
            errors[field.name] = [problem]

    if errors:
        raise SubmissionValidationError("Please correct the highlighted fields", errors=errors)
    return accepted


def validate_submission(campaign: Campaign, payload: Any, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Run the campaign state checks followed by the payload checks."""
    ensure_campaign_accepts_submissions(campaign, now=now)
    return validate_submission_payload(load_form_fields(campaign.form_fields), payload)


__all__ = [
    "REQUIRED_MESSAGE",
    "check_payload_shape",
    "ensure_campaign_accepts_submissions",
    "validate_submission",
    "validate_submission_payload",
]
