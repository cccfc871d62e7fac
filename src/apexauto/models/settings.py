"""Business settings model.

Settings are persisted as one ``business_settings`` row per top-level key
(``{"key": "businessName", "value": "..."}``) and overlaid on the
defaults below when loaded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

_logger = logging.getLogger(__name__)


class NotificationPreferences(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    new_bookings: bool = True
    payments: bool = True
    service_reminders: bool = True
    inventory: bool = True
    customer_messages: bool = True


class BusinessSettings(BaseModel):
    """Site-wide business settings edited from the admin console."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    business_name: str = "Apex Auto Sales & Repair"
    phone: str = "(416) 916-6475"
    address: str = "179 Weston Rd, Toronto, ON M6N 3A5, Canada"
    currency: Literal["CAD", "USD", "EUR"] = "CAD"
    distance_unit: Literal["km", "miles"] = "km"
    primary_color: str = "#D7FF00"
    secondary_color: str = "#C8FF1A"
    background_color: str = "#0B0B0C"
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    two_factor_auth: bool = False
    auto_backup: bool = True

    def to_blob(self) -> dict[str, Any]:
        """Dump to the stored camelCase key/value shape."""
        return self.model_dump(mode="json", by_alias=True)


DEFAULT_SETTINGS = BusinessSettings()

_KNOWN_KEYS: frozenset[str] = frozenset(DEFAULT_SETTINGS.to_blob())


def settings_from_rows(rows: Iterable[Mapping[str, Any]]) -> BusinessSettings:
    """Overlay stored ``key``/``value`` rows on the defaults.

    Unknown keys are ignored; a malformed value for a known key falls back
    to that key's default rather than invalidating the whole object.
    """
    blob = DEFAULT_SETTINGS.to_blob()
    for row in rows:
        key = row.get("key")
        if not isinstance(key, str) or key not in _KNOWN_KEYS:
            continue
        candidate = dict(blob)
        candidate[key] = row.get("value")
        try:
            BusinessSettings.model_validate(candidate)
        except ValidationError:
            _logger.warning("Ignoring malformed setting %r", key)
            continue
        blob = candidate
    return BusinessSettings.model_validate(blob)


def settings_to_rows(changes: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Build upsert rows for the given camelCase setting changes."""
    return [{"key": key, "value": value} for key, value in changes.items() if key in _KNOWN_KEYS]
