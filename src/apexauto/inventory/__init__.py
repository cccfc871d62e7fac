"""Vehicle inventory: filtering, auto-tagging and the inventory service."""

from apexauto.inventory.filtering import filter_vehicles, matches_criteria
from apexauto.inventory.samples import SAMPLE_VEHICLES
from apexauto.inventory.service import InventoryService
from apexauto.inventory.tagging import AUTO_TAGS, combine_tags, derive_tags, tags_diverge

__all__ = [
    "AUTO_TAGS",
    "InventoryService",
    "SAMPLE_VEHICLES",
    "combine_tags",
    "derive_tags",
    "filter_vehicles",
    "matches_criteria",
    "tags_diverge",
]
