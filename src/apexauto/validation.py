"""Local form validation.

Runs before any create/update reaches the remote store.  Messages match
the ones shown next to admin form fields.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from apexauto._constants import REQUIRED_FIELDS_MESSAGE
from apexauto.exceptions import ApexValidationError
from apexauto.ingestion.normalize import safe_float


@dataclass(frozen=True)
class ValidationRule:
    """Constraints for a single form field (all optional)."""

    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | re.Pattern[str] | None = None
    minimum: float | None = None
    maximum: float | None = None
    custom: Callable[[str], str | None] | None = None


def validate_field(value: Any, rule: ValidationRule) -> str | None:
    """Return the first error message for *value*, or ``None`` when valid."""
    text = "" if value is None else str(value)

    if rule.required and not text.strip():
        return "This field is required"
    if not text:
        return None

    if rule.min_length is not None and len(text) < rule.min_length:
        return f"Minimum {rule.min_length} characters required"
    if rule.max_length is not None and len(text) > rule.max_length:
        return f"Maximum {rule.max_length} characters allowed"
    if rule.pattern is not None and re.search(rule.pattern, text) is None:
        return "Invalid format"

    if rule.minimum is not None or rule.maximum is not None:
        number = safe_float(text)
        if number is None:
            return "Invalid number"
        if rule.minimum is not None and number < rule.minimum:
            return f"Minimum value is {rule.minimum:g}"
        if rule.maximum is not None and number > rule.maximum:
            return f"Maximum value is {rule.maximum:g}"

    if rule.custom is not None:
        return rule.custom(text)
    return None


def validate_fields(values: Mapping[str, Any], rules: Mapping[str, ValidationRule]) -> dict[str, str]:
    """Validate every ruled field; returns ``{field: message}`` for failures."""
    errors: dict[str, str] = {}
    for name, rule in rules.items():
        message = validate_field(values.get(name), rule)
        if message is not None:
            errors[name] = message
    return errors


def require_valid(
    values: Mapping[str, Any],
    rules: Mapping[str, ValidationRule],
    *,
    message: str = REQUIRED_FIELDS_MESSAGE,
) -> None:
    errors = validate_fields(values, rules)
    if errors:
        raise ApexValidationError(message, errors=errors)


def errors_from_pydantic(exc: ValidationError) -> dict[str, str]:
    """Flatten a pydantic error into ``{field: message}`` (first error per field)."""
    errors: dict[str, str] = {}
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "__root__"
        errors.setdefault(location, str(item.get("msg", "Invalid value")))
    return errors


VEHICLE_RULES: dict[str, ValidationRule] = {
    "make": ValidationRule(required=True),
    "model": ValidationRule(required=True),
    "year": ValidationRule(required=True, minimum=1886, maximum=2100),
    "price": ValidationRule(required=True, minimum=0),
    "mileage": ValidationRule(required=True, minimum=0),
    "status": ValidationRule(required=True),
}

SECTION_RULES: dict[str, ValidationRule] = {
    "title": ValidationRule(required=True, max_length=120),
    "type": ValidationRule(required=True),
}
