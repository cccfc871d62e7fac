"""Data models for apexauto rows and form input."""

from apexauto.models._base import ApexBaseModel
from apexauto.models.criteria import FilterCriteria, MileageBracket, PriceBracket, StatusFilter
from apexauto.models.section import (
    ContentSection,
    SectionContent,
    SectionType,
    content_model_for,
    merge_content,
)
from apexauto.models.settings import (
    DEFAULT_SETTINGS,
    BusinessSettings,
    NotificationPreferences,
    settings_from_rows,
    settings_to_rows,
)
from apexauto.models.vehicle import Vehicle, VehicleDraft, VehicleSpecs, VehicleStatus

__all__ = [
    "ApexBaseModel",
    "BusinessSettings",
    "ContentSection",
    "DEFAULT_SETTINGS",
    "FilterCriteria",
    "MileageBracket",
    "NotificationPreferences",
    "PriceBracket",
    "SectionContent",
    "SectionType",
    "StatusFilter",
    "Vehicle",
    "VehicleDraft",
    "VehicleSpecs",
    "VehicleStatus",
    "content_model_for",
    "merge_content",
    "settings_from_rows",
    "settings_to_rows",
]
