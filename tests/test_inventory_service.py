from __future__ import annotations

import pytest

from apexauto.config import ApexConfig
from apexauto.exceptions import ApexRecordNotFoundError, ApexStoreError, ApexValidationError
from apexauto.inventory.samples import SAMPLE_VEHICLES
from apexauto.inventory.service import InventoryService
from apexauto.models.criteria import FilterCriteria
from apexauto.notifications import NotificationCenter, NotificationLevel
from apexauto.state.events import EditorPhase
from apexauto.store.base import EntityKind
from apexauto.store.memory import InMemoryRemoteStore

KIND = EntityKind.VEHICLES
FERRARI_FORM = {
    "make": "Ferrari",
    "model": "F8 Tributo",
    "year": "2023",
    "price": "325000",
    "mileage": "1200",
    "status": "available",
    "tags": ["FEATURED", "NEW"],
}
STOCK = [
    {"id": "v1", "make": "BMW", "model": "M3", "year": 2023, "price": 85000, "mileage": 15000,
     "status": "available", "tags": ["FEATURED"], "created_at": "2024-03-01T00:00:00+00:00"},
    {"id": "v2", "make": "Audi", "model": "A4", "year": 2020, "price": 30000, "mileage": 60000,
     "status": "sold", "tags": [], "created_at": "2024-01-01T00:00:00+00:00"},
]


def _service(
    store: InMemoryRemoteStore,
    **config: object,
) -> tuple[InventoryService, NotificationCenter]:
    notifications = NotificationCenter()
    service = InventoryService(store, config=ApexConfig(debounce_delay=0.02, **config), notifications=notifications)
    return service, notifications


@pytest.mark.asyncio
async def test_unreadable_table_serves_samples() -> None:
    store = InMemoryRemoteStore()
    store.fail_reads = True
    service, notifications = _service(store)

    vehicles = await service.list_vehicles()

    assert vehicles == SAMPLE_VEHICLES
    assert service.collection.using_fallback
    assert len(notifications.of_level(NotificationLevel.ERROR)) == 1


@pytest.mark.asyncio
async def test_empty_table_serves_samples() -> None:
    service, notifications = _service(InMemoryRemoteStore())

    vehicles = await service.list_vehicles()

    assert [vehicle.id for vehicle in vehicles] == ["1", "2", "3", "4", "5", "6"]
    assert notifications.history == []


@pytest.mark.asyncio
async def test_sample_fallback_can_be_disabled() -> None:
    service, _ = _service(InMemoryRemoteStore(), fallback_to_samples=False)

    assert await service.list_vehicles() == ()


@pytest.mark.asyncio
async def test_list_vehicles_is_newest_first_and_searchable() -> None:
    service, _ = _service(InMemoryRemoteStore({KIND: STOCK}))

    vehicles = await service.list_vehicles()

    assert [vehicle.id for vehicle in vehicles] == ["v1", "v2"]
    assert [v.id for v in service.search(status="sold")] == ["v2"]
    assert [v.id for v in service.search(FilterCriteria(search="featured"))] == ["v1"]
    assert service.makes() == ["Audi", "BMW"]


@pytest.mark.asyncio
async def test_add_vehicle_places_derived_tags_before_manual_tags() -> None:
    store = InMemoryRemoteStore()
    service, notifications = _service(store)

    vehicle = await service.add_vehicle(FERRARI_FORM)

    assert vehicle.tags == ["LUXURY", "EXOTIC", "NEW", "LOW MILEAGE", "SUPERCAR", "FEATURED"]
    assert vehicle.price == 325000
    assert store.writes[0].operation == "create"
    assert store.writes[0].fields["tags"] == vehicle.tags
    assert [n.message for n in notifications.history] == ["Vehicle added successfully"]


@pytest.mark.asyncio
async def test_add_vehicle_without_auto_tags_keeps_manual_tags() -> None:
    service, _ = _service(InMemoryRemoteStore())

    vehicle = await service.add_vehicle(FERRARI_FORM, auto_tag=False)

    assert vehicle.tags == ["FEATURED", "NEW"]


@pytest.mark.asyncio
async def test_add_vehicle_rejects_incomplete_form_without_writing() -> None:
    store = InMemoryRemoteStore()
    service, notifications = _service(store)

    with pytest.raises(ApexValidationError) as excinfo:
        await service.add_vehicle({**FERRARI_FORM, "model": "", "price": "-1"})

    assert excinfo.value.errors == {"model": "This field is required", "price": "Minimum value is 0"}
    assert store.writes == []
    assert [n.message for n in notifications.of_level(NotificationLevel.ERROR)] == [
        "Please fill in all required fields"
    ]


@pytest.mark.asyncio
async def test_add_vehicle_store_failure_is_reported() -> None:
    store = InMemoryRemoteStore()
    store.fail_next_write()
    service, notifications = _service(store)

    with pytest.raises(ApexStoreError):
        await service.add_vehicle(FERRARI_FORM)

    assert [n.message for n in notifications.history] == ["Failed to save vehicle. Please try again."]


@pytest.mark.asyncio
async def test_update_vehicle_never_rederives_tags() -> None:
    store = InMemoryRemoteStore({KIND: STOCK})
    service, notifications = _service(store)

    vehicle = await service.update_vehicle("v2", {"id": "ignored", "year": 2024, "price": 250000})

    assert vehicle.year == 2024
    assert vehicle.tags == []
    assert store.writes[0].fields == {"year": 2024, "price": 250000}
    assert notifications.history[-1].message == "Vehicle updated successfully"


@pytest.mark.asyncio
async def test_update_vehicle_validates_given_fields() -> None:
    store = InMemoryRemoteStore({KIND: STOCK})
    service, _ = _service(store)

    with pytest.raises(ApexValidationError):
        await service.update_vehicle("v1", {"mileage": "-10"})

    assert store.writes == []


@pytest.mark.asyncio
async def test_delete_vehicle() -> None:
    store = InMemoryRemoteStore({KIND: STOCK})
    service, notifications = _service(store)

    await service.delete_vehicle("v2")

    assert store.get(KIND, "v2") is None
    assert notifications.history[-1].message == "Vehicle deleted successfully"


@pytest.mark.asyncio
async def test_retag_keeps_manual_tags() -> None:
    store = InMemoryRemoteStore({KIND: STOCK})
    service, _ = _service(store)
    await service.list_vehicles()

    assert [v.id for v in service.vehicles_needing_retag()] == ["v1", "v2"]
    vehicle = await service.retag("v1")

    assert vehicle.tags == ["NEW", "PREMIUM", "FEATURED"]
    assert store.writes[-1].fields == {"tags": ["NEW", "PREMIUM", "FEATURED"]}


@pytest.mark.asyncio
async def test_retag_unknown_vehicle() -> None:
    service, _ = _service(InMemoryRemoteStore({KIND: STOCK}))

    with pytest.raises(ApexRecordNotFoundError):
        await service.retag("missing")


@pytest.mark.asyncio
async def test_editor_saves_and_follows_external_changes() -> None:
    store = InMemoryRemoteStore({KIND: STOCK})
    service, _ = _service(store)
    service.start()
    await service.list_vehicles()
    editor = service.editor("v1")

    editor.set_field("price", 90000)
    await editor.wait_idle()
    await service.collection.wait_idle()

    assert store.get(KIND, "v1")["price"] == 90000  # type: ignore[index]
    assert editor.phase is EditorPhase.CLEAN

    store.push_external_update(KIND, "v1", {"mileage": 16000})
    await service.collection.wait_idle()

    assert editor.buffer is not None and editor.buffer["mileage"] == 16000
    assert editor.buffer["price"] == 90000
    await service.aclose()
    assert editor.closed


@pytest.mark.asyncio
async def test_editor_for_unknown_vehicle() -> None:
    service, _ = _service(InMemoryRemoteStore({KIND: STOCK}))
    await service.list_vehicles()

    with pytest.raises(ApexRecordNotFoundError):
        service.editor("missing")


@pytest.mark.asyncio
async def test_editor_keeps_blank_required_field_local() -> None:
    store = InMemoryRemoteStore({KIND: STOCK})
    service, notifications = _service(store)
    await service.list_vehicles()
    editor = service.editor("v1")

    editor.set_field("make", "")
    await editor.wait_idle()

    assert [call for call in store.writes if call.operation == "update"] == []
    assert store.get(KIND, "v1")["make"] == "BMW"  # type: ignore[index]
    assert editor.phase is EditorPhase.WRITE_FAILED
    assert isinstance(editor.last_error, ApexValidationError)
    assert editor.last_error.errors == {"make": "This field is required"}
    assert editor.buffer is not None and editor.buffer["make"] == ""
    assert len(notifications.of_level(NotificationLevel.ERROR)) == 1

    editor.set_field("make", "BMW ")
    await editor.wait_idle()
    assert [call.fields for call in store.writes if call.operation == "update"] == [{"make": "BMW "}]
    assert editor.phase is EditorPhase.CLEAN
    await service.aclose()
