"""Inventory service: vehicle listing, search and admin CRUD."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from apexauto._constants import REQUIRED_FIELDS_MESSAGE
from apexauto.config import ApexConfig
from apexauto.exceptions import ApexRecordNotFoundError, ApexStoreError, ApexValidationError
from apexauto.inventory.filtering import filter_vehicles
from apexauto.inventory.samples import SAMPLE_VEHICLES
from apexauto.inventory.tagging import AUTO_TAGS, combine_tags, derive_tags, derive_vehicle_tags, tags_diverge
from apexauto.models.criteria import FilterCriteria
from apexauto.models.vehicle import Vehicle, VehicleDraft
from apexauto.notifications import NotificationCenter
from apexauto.state.collection import LiveCollection
from apexauto.state.editor import DebouncedEditor
from apexauto.store.base import EntityKind, RemoteStore
from apexauto.validation import VEHICLE_RULES, errors_from_pydantic, require_valid

_logger = logging.getLogger(__name__)

_READ_ONLY_FIELDS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})


def _vehicle_key(vehicle: Vehicle) -> str:
    return vehicle.id


def _sample_vehicles() -> tuple[Vehicle, ...]:
    return SAMPLE_VEHICLES


def coerce_draft(draft: VehicleDraft | Mapping[str, Any]) -> VehicleDraft:
    """Validate form input into a :class:`VehicleDraft`.

    Raises
    ------
    ApexValidationError
        With per-field messages when a required field is missing or invalid.
    """
    if isinstance(draft, VehicleDraft):
        return draft
    require_valid(draft, VEHICLE_RULES)
    try:
        return VehicleDraft.model_validate(dict(draft))
    except ValidationError as exc:
        raise ApexValidationError(REQUIRED_FIELDS_MESSAGE, errors=errors_from_pydantic(exc)) from exc


class InventoryService:
    """Vehicle inventory backed by the ``vehicles`` table.

    Reads are served from a :class:`LiveCollection` snapshot ordered newest
    first; the sample inventory stands in when the table cannot be read or
    is empty (unless disabled in the config).
    """

    def __init__(
        self,
        store: RemoteStore,
        *,
        config: ApexConfig | None = None,
        notifications: NotificationCenter | None = None,
    ) -> None:
        self._store = store
        self._config = config or ApexConfig()
        self._notifications = notifications or NotificationCenter()
        use_samples = self._config.fallback_to_samples
        self._collection: LiveCollection[Vehicle] = LiveCollection(
            store,
            EntityKind.VEHICLES,
            parse=Vehicle.model_validate,
            key=_vehicle_key,
            to_record=Vehicle.to_record,
            order_by="created_at",
            descending=True,
            fallback=_sample_vehicles if use_samples else None,
            fallback_when_empty=use_samples,
            notifications=self._notifications,
            label="vehicles",
        )
        self._editors: list[DebouncedEditor] = []

    @property
    def collection(self) -> LiveCollection[Vehicle]:
        return self._collection

    @property
    def vehicles(self) -> tuple[Vehicle, ...]:
        """Current snapshot (no I/O)."""
        return self._collection.snapshot

    def start(self) -> None:
        self._collection.start()

    async def aclose(self) -> None:
        for editor in self._editors:
            await editor.aclose()
        self._editors.clear()
        await self._collection.aclose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_vehicles(self) -> tuple[Vehicle, ...]:
        """Refetch and return all vehicles, newest first."""
        return await self._collection.refresh()

    def search(self, criteria: FilterCriteria | None = None, **facets: Any) -> list[Vehicle]:
        """Filter the current snapshot.

        Either pass a :class:`FilterCriteria` or its fields as keyword
        arguments (``search="bmw", status="sold"``).
        """
        if criteria is None:
            criteria = FilterCriteria.model_validate(facets)
        return filter_vehicles(self._collection.snapshot, criteria)

    def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        return self._collection.get(str(vehicle_id))

    def makes(self) -> list[str]:
        """Distinct makes in the snapshot, sorted, for the make filter."""
        return sorted({vehicle.make for vehicle in self._collection.snapshot if vehicle.make})

    def vehicles_needing_retag(self) -> list[Vehicle]:
        return [vehicle for vehicle in self._collection.snapshot if tags_diverge(vehicle)]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_vehicle(
        self,
        draft: VehicleDraft | Mapping[str, Any],
        *,
        auto_tag: bool | None = None,
    ) -> Vehicle:
        """Validate and create a vehicle.

        With auto-tagging on, derived tags come first followed by the
        draft's manual tags (duplicates dropped).
        """
        try:
            validated = coerce_draft(draft)
        except ApexValidationError as exc:
            self._notifications.error(str(exc))
            raise

        use_auto_tags = self._config.auto_tagging if auto_tag is None else auto_tag
        tags = validated.tags
        if use_auto_tags:
            derived = derive_tags(validated.make, validated.year, validated.price, validated.mileage)
            tags = combine_tags(derived, validated.tags)

        try:
            row = await self._store.create(EntityKind.VEHICLES, validated.to_row(tags=tags))
        except ApexStoreError:
            self._notifications.error("Failed to save vehicle. Please try again.")
            raise
        vehicle = Vehicle.model_validate(row)
        _logger.info("Added vehicle %s (%s)", vehicle.id, vehicle.title)
        self._notifications.success("Vehicle added successfully")
        return vehicle

    async def update_vehicle(
        self,
        vehicle_id: str,
        changes: VehicleDraft | Mapping[str, Any],
    ) -> Vehicle:
        """Persist *changes*; a :class:`VehicleDraft` replaces every form field.

        Tags are stored as given, never re-derived.
        """
        if isinstance(changes, VehicleDraft):
            fields = changes.to_row()
        else:
            fields = {key: value for key, value in changes.items() if key not in _READ_ONLY_FIELDS}
            rules = {name: rule for name, rule in VEHICLE_RULES.items() if name in fields}
            try:
                require_valid(fields, rules)
            except ApexValidationError as exc:
                self._notifications.error(str(exc))
                raise
        if not fields:
            existing = self.get_vehicle(vehicle_id)
            if existing is None:
                raise ApexRecordNotFoundError(f"No vehicle with id {vehicle_id}", kind=EntityKind.VEHICLES.value)
            return existing

        try:
            row = await self._store.update(EntityKind.VEHICLES, str(vehicle_id), fields)
        except ApexStoreError:
            self._notifications.error("Failed to save vehicle. Please try again.")
            raise
        self._notifications.success("Vehicle updated successfully")
        return Vehicle.model_validate(row)

    async def delete_vehicle(self, vehicle_id: str) -> None:
        try:
            await self._store.delete(EntityKind.VEHICLES, str(vehicle_id))
        except ApexStoreError as exc:
            self._notifications.error(f"Failed to delete vehicle: {exc}")
            raise
        self._notifications.success("Vehicle deleted successfully")

    async def retag(self, vehicle_id: str) -> Vehicle:
        """Re-derive the auto tags of one vehicle, keeping its manual tags.

        This is the only path that recomputes tags after creation.
        """
        vehicle = self.get_vehicle(vehicle_id)
        if vehicle is None:
            await self._collection.refresh()
            vehicle = self.get_vehicle(vehicle_id)
        if vehicle is None:
            raise ApexRecordNotFoundError(f"No vehicle with id {vehicle_id}", kind=EntityKind.VEHICLES.value)

        manual = [tag for tag in vehicle.tags if tag not in AUTO_TAGS]
        tags = combine_tags(derive_vehicle_tags(vehicle), manual)
        if tags == vehicle.tags:
            return vehicle
        row = await self._store.update(EntityKind.VEHICLES, vehicle.id, {"tags": tags})
        return Vehicle.model_validate(row)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def editor(self, vehicle_id: str | None = None) -> DebouncedEditor:
        """Create a debounced editor attached to the live vehicle list.

        When *vehicle_id* is given the vehicle is selected immediately.
        """
        editor = DebouncedEditor(
            self._write_fields,
            notifications=self._notifications,
            delay=self._config.debounce_delay,
            write_timeout=self._config.write_timeout,
            label="vehicle",
        )
        self._collection.attach(editor)
        self._editors.append(editor)
        if vehicle_id is not None:
            vehicle = self.get_vehicle(vehicle_id)
            if vehicle is None:
                raise ApexRecordNotFoundError(f"No vehicle with id {vehicle_id}", kind=EntityKind.VEHICLES.value)
            editor.select(vehicle.to_record())
        return editor

    async def _write_fields(self, key: str, fields: dict[str, Any]) -> dict[str, Any]:
        require_valid(fields, {name: rule for name, rule in VEHICLE_RULES.items() if name in fields})
        row = await self._store.update(EntityKind.VEHICLES, key, fields)
        return Vehicle.model_validate(row).to_record()
