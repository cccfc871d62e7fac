from __future__ import annotations

import pytest

from apexauto.config import ApexConfig
from apexauto.exceptions import ApexValidationError
from apexauto.models.settings import DEFAULT_SETTINGS
from apexauto.notifications import NotificationCenter, NotificationLevel
from apexauto.settings_service import SETTINGS_KEY, SettingsService
from apexauto.state.events import EditorPhase
from apexauto.store.base import EntityKind
from apexauto.store.memory import InMemoryRemoteStore

KIND = EntityKind.BUSINESS_SETTINGS


def _service(store: InMemoryRemoteStore) -> tuple[SettingsService, NotificationCenter]:
    notifications = NotificationCenter()
    return SettingsService(store, config=ApexConfig(debounce_delay=0.02), notifications=notifications), notifications


def _values(store: InMemoryRemoteStore) -> dict[str, object]:
    return {row["key"]: row["value"] for row in store.rows(KIND)}


def test_defaults_before_load() -> None:
    service, _ = _service(InMemoryRemoteStore())

    settings = service.settings

    assert settings.business_name == "Apex Auto Sales & Repair"
    assert settings.phone == "(416) 916-6475"
    assert settings.currency == "CAD"
    assert settings.distance_unit == "km"
    assert settings.primary_color == "#D7FF00"
    assert settings.notifications.new_bookings
    assert not settings.two_factor_auth
    assert settings.auto_backup


@pytest.mark.asyncio
async def test_load_overlays_rows_and_skips_malformed_values() -> None:
    store = InMemoryRemoteStore(
        {
            KIND: [
                {"key": "businessName", "value": "Apex Auto North"},
                {"key": "distanceUnit", "value": "furlongs"},
                {"key": "notifications", "value": {"payments": False}},
            ]
        }
    )
    service, _ = _service(store)

    settings = await service.load()

    assert settings.business_name == "Apex Auto North"
    assert settings.distance_unit == "km"
    assert not settings.notifications.payments
    assert settings.notifications.new_bookings


@pytest.mark.asyncio
async def test_load_failure_keeps_defaults() -> None:
    store = InMemoryRemoteStore()
    store.fail_reads = True
    service, notifications = _service(store)

    assert await service.load() == DEFAULT_SETTINGS
    assert len(notifications.of_level(NotificationLevel.ERROR)) == 1


@pytest.mark.asyncio
async def test_update_upserts_only_changed_keys() -> None:
    store = InMemoryRemoteStore({KIND: [{"key": "phone", "value": "(416) 000-0000"}]})
    service, notifications = _service(store)
    await service.load()

    settings = await service.update({"phone": "(647) 555-0100", "two_factor_auth": True})

    assert settings.phone == "(647) 555-0100"
    assert settings.two_factor_auth
    assert _values(store) == {"phone": "(647) 555-0100", "twoFactorAuth": True}
    assert len(store.rows(KIND)) == 2
    assert notifications.history[-1].message == "Settings saved successfully!"


@pytest.mark.asyncio
async def test_update_rejects_invalid_values() -> None:
    store = InMemoryRemoteStore()
    service, notifications = _service(store)

    with pytest.raises(ApexValidationError):
        await service.update({"currency": "GBP"})

    assert store.writes == []
    assert service.settings == DEFAULT_SETTINGS
    assert notifications.history[-1].level is NotificationLevel.ERROR


@pytest.mark.asyncio
async def test_settings_editor_writes_changed_keys() -> None:
    store = InMemoryRemoteStore()
    service, notifications = _service(store)
    service.start()
    await service.load()
    editor = service.editor()

    assert editor.key == SETTINGS_KEY
    editor.set_field("businessName", "Apex")
    editor.set_field("businessName", "Apex Auto")
    await editor.wait_idle()
    await service.load()

    assert _values(store) == {"businessName": "Apex Auto"}
    assert service.settings.business_name == "Apex Auto"
    assert editor.phase is EditorPhase.CLEAN
    assert notifications.of_level(NotificationLevel.SUCCESS) == []
    await service.aclose()
