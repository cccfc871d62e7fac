from __future__ import annotations

import pytest

from apexauto.client import ApexClient
from apexauto.config import ApexConfig
from apexauto.exceptions import ApexConfigError, ApexError
from apexauto.store.base import EntityKind
from apexauto.store.memory import InMemoryRemoteStore


@pytest.mark.asyncio
async def test_client_runs_services_on_injected_store() -> None:
    store = InMemoryRemoteStore(
        {EntityKind.VEHICLES: [{"id": "v1", "make": "BMW", "model": "M3", "year": 2022, "status": "sold"}]}
    )

    async with ApexClient(ApexConfig(), store=store) as client:
        vehicles = await client.inventory.list_vehicles()
        sections = await client.content.list_sections()
        settings = await client.settings.load()

        assert [vehicle.id for vehicle in vehicles] == ["v1"]
        assert sections == ()
        assert settings.currency == "CAD"
        assert client.store is store
        assert client.storage is None
        assert not client.realtime_running

    with pytest.raises(ApexError):
        _ = client.inventory


@pytest.mark.asyncio
async def test_client_requires_credentials_without_injected_store() -> None:
    with pytest.raises(ApexConfigError):
        async with ApexClient(ApexConfig(url="https://xyz.supabase.co")):
            pass


@pytest.mark.asyncio
async def test_services_share_the_notification_center() -> None:
    store = InMemoryRemoteStore()
    store.fail_reads = True

    async with ApexClient(ApexConfig(), store=store) as client:
        await client.inventory.list_vehicles()
        await client.content.list_sections()

        messages = [n.message for n in client.notifications.history]

    assert len(messages) == 2
    assert messages[0].startswith("Failed to load vehicles")
    assert messages[1].startswith("Failed to load content sections")
