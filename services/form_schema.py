"""Helpers for the admin-authored form schema stored on each campaign."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

from pydantic import ValidationError

from core.logging import get_logger
from schemas.api.campaign import FormFieldDescriptor
from services.campaign_errors import CampaignValidationError

logger = get_logger(__name__)

TYPE_ALIASES = {"tel": "phone"}
KNOWN_FIELD_TYPES = frozenset(
    ["text", "email", "phone", "textarea", "select", "checkbox", "radio", "date", "number", "url"]
)


def canonical_type(field_type: str) -> str:
    """Map aliases onto the type the validator understands; unknown types act as text."""
    normalized = TYPE_ALIASES.get(field_type, field_type)
    return normalized if normalized in KNOWN_FIELD_TYPES else "text"


def ensure_unique_names(fields: Sequence[FormFieldDescriptor]) -> None:
    seen = set()
    duplicates: List[str] = []
    for field in fields:
        if field.name in seen and field.name not in duplicates:
            duplicates.append(field.name)
        seen.add(field.name)
    if duplicates:
        raise CampaignValidationError(
            "Form field names must be unique",
            errors={"formFields": [f"Duplicate field name: {name}" for name in duplicates]},
        )


def dump_form_fields(fields: Iterable[FormFieldDescriptor]) -> List[Dict[str, Any]]:
    return [field.model_dump(exclude_none=True) for field in fields]


def load_form_fields(raw: Any) -> List[FormFieldDescriptor]:
    """Parse the stored JSON list, skipping entries that no longer validate."""
    if not isinstance(raw, list):
        return []
    fields: List[FormFieldDescriptor] = []
    for index, entry in enumerate(raw):
        try:
            fields.append(FormFieldDescriptor.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Skipping malformed form field #%d: %s", index, exc.errors())
    return fields


__all__ = [
    "KNOWN_FIELD_TYPES",
    "TYPE_ALIASES",
    "canonical_type",
    "dump_form_fields",
    "ensure_unique_names",
    "load_form_fields",
]
