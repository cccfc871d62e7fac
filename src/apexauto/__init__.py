"""apexauto - Async inventory and site-content library for the Apex Auto dealership."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("apexauto")
except PackageNotFoundError:
    __version__ = "0+local"
from apexauto.client import ApexClient
from apexauto.config import ApexConfig
from apexauto.content.service import ContentService
from apexauto.exceptions import (
    ApexConfigError,
    ApexError,
    ApexRealtimeError,
    ApexRecordNotFoundError,
    ApexStorageError,
    ApexStoreError,
    ApexTransportError,
    ApexValidationError,
    ApexWriteTimeoutError,
)
from apexauto.inventory.filtering import filter_vehicles
from apexauto.inventory.service import InventoryService
from apexauto.inventory.tagging import derive_tags
from apexauto.models import (
    BusinessSettings,
    ContentSection,
    FilterCriteria,
    MileageBracket,
    PriceBracket,
    SectionType,
    StatusFilter,
    Vehicle,
    VehicleDraft,
    VehicleStatus,
)
from apexauto.notifications import Notification, NotificationCenter, NotificationLevel
from apexauto.settings_service import SettingsService
from apexauto.state import DebouncedEditor, EditorPhase, LiveCollection, RemoteDecision
from apexauto.store import EntityKind, InMemoryRemoteStore, RemoteStore, RestRemoteStore

__all__ = [
    "__version__",
    "ApexClient",
    "ApexConfig",
    "ApexConfigError",
    "ApexError",
    "ApexRealtimeError",
    "ApexRecordNotFoundError",
    "ApexStorageError",
    "ApexStoreError",
    "ApexTransportError",
    "ApexValidationError",
    "ApexWriteTimeoutError",
    "BusinessSettings",
    "ContentSection",
    "ContentService",
    "DebouncedEditor",
    "EditorPhase",
    "EntityKind",
    "FilterCriteria",
    "InMemoryRemoteStore",
    "InventoryService",
    "LiveCollection",
    "MileageBracket",
    "Notification",
    "NotificationCenter",
    "NotificationLevel",
    "PriceBracket",
    "RemoteDecision",
    "RemoteStore",
    "RestRemoteStore",
    "SectionType",
    "SettingsService",
    "StatusFilter",
    "Vehicle",
    "VehicleDraft",
    "VehicleStatus",
    "derive_tags",
    "filter_vehicles",
]
