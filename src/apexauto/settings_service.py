"""Business settings service.

Settings live in ``business_settings`` as one ``key``/``value`` row per
top-level setting and are overlaid on :data:`DEFAULT_SETTINGS` when read.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from apexauto.config import ApexConfig
from apexauto.exceptions import ApexStoreError, ApexValidationError
from apexauto.models.settings import DEFAULT_SETTINGS, BusinessSettings, settings_from_rows, settings_to_rows
from apexauto.notifications import NotificationCenter
from apexauto.state.collection import LiveCollection
from apexauto.state.editor import DebouncedEditor
from apexauto.store.base import EntityKind, RemoteStore
from apexauto.validation import errors_from_pydantic

_logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"


def _setting_row(row: Mapping[str, Any]) -> dict[str, Any]:
    return dict(row)


def _stored_key(name: str) -> str:
    return to_camel(name) if "_" in name else name


def _setting_key(row: dict[str, Any]) -> str:
    return str(row.get("key", ""))


class SettingsService:
    """Load, update and live-edit the business settings."""

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
        self._settings: BusinessSettings = DEFAULT_SETTINGS
        self._rows: LiveCollection[dict[str, Any]] = LiveCollection(
            store,
            EntityKind.BUSINESS_SETTINGS,
            parse=_setting_row,
            key=_setting_key,
            to_record=dict,
            notifications=self._notifications,
            label="settings",
        )
        self._rows.on_refresh(self._rows_refreshed)
        self._editors: list[DebouncedEditor] = []

    @property
    def settings(self) -> BusinessSettings:
        """Last loaded settings (defaults before the first load)."""
        return self._settings

    def start(self) -> None:
        self._rows.start()

    async def aclose(self) -> None:
        for editor in self._editors:
            await editor.aclose()
        self._editors.clear()
        await self._rows.aclose()

    async def load(self) -> BusinessSettings:
        """Fetch the stored settings; unreadable storage yields the defaults."""
        await self._rows.refresh()
        return self._settings

    def _rows_refreshed(self, rows: tuple[dict[str, Any], ...]) -> None:
        self._settings = settings_from_rows(rows)
        blob = self._settings.to_blob()
        for editor in self._editors:
            if editor.key == SETTINGS_KEY:
                editor.apply_remote(blob)

    async def update(self, changes: Mapping[str, Any], *, notify: bool = True) -> BusinessSettings:
        """Validate *changes* against the current settings and upsert them.

        Keys may be given in stored camelCase (``businessName``) or as
        attribute names (``business_name``).  Unknown keys are ignored.
        """
        camel_changes = {_stored_key(key): value for key, value in changes.items()}
        candidate = {**self._settings.to_blob(), **camel_changes}
        try:
            updated = BusinessSettings.model_validate(candidate)
        except ValidationError as exc:
            error = ApexValidationError("Invalid settings", errors=errors_from_pydantic(exc))
            if notify:
                self._notifications.error(str(error))
            raise error from exc

        stored = updated.to_blob()
        rows = settings_to_rows({key: stored[key] for key in camel_changes if key in stored})
        if not rows:
            return self._settings
        try:
            await self._store.upsert(EntityKind.BUSINESS_SETTINGS, rows, on_conflict="key")
        except ApexStoreError as exc:
            _logger.warning("Error updating settings: %s", exc)
            if notify:
                self._notifications.error(f"Failed to save settings: {exc}")
            raise
        self._settings = updated
        if notify:
            self._notifications.success("Settings saved successfully!")
        return updated

    def editor(self) -> DebouncedEditor:
        """Debounced editor over the camelCase settings blob.

        Each write upserts only the keys that changed.
        """
        editor = DebouncedEditor(
            self._write_blob,
            notifications=self._notifications,
            delay=self._config.debounce_delay,
            write_timeout=self._config.write_timeout,
            label="settings",
        )
        self._editors.append(editor)
        editor.select(self._settings.to_blob(), key=SETTINGS_KEY)
        return editor

    async def _write_blob(self, key: str, fields: dict[str, Any]) -> dict[str, Any]:
        updated = await self.update(fields, notify=False)
        return updated.to_blob()
