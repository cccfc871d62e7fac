from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from apexauto.config import ApexConfig
from apexauto.exceptions import ApexRecordNotFoundError, ApexStoreError, ApexTransportError
from apexauto.store.base import ChangeNotification, ChangeSource, ChangeType, EntityKind
from apexauto.store.rest import RestRemoteStore

CONFIG = ApexConfig(url="https://xyz.supabase.co", api_key="anon")


class ScriptedTransport:
    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        data: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        self.calls.append(
            {"method": method, "endpoint": endpoint, "params": params, "json": json_body, "headers": dict(headers or {})}
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _store(*responses: Any) -> tuple[RestRemoteStore, ScriptedTransport, list[ChangeNotification]]:
    transport = ScriptedTransport(*responses)
    store = RestRemoteStore(CONFIG, transport)
    seen: list[ChangeNotification] = []
    for kind in EntityKind:
        store.subscribe_to_changes(kind, seen.append)
    return store, transport, seen


@pytest.mark.asyncio
async def test_fetch_all_orders_and_selects_everything() -> None:
    store, transport, seen = _store([{"id": "1"}, "junk"])

    rows = await store.fetch_all(EntityKind.VEHICLES, order_by="created_at", descending=True)

    assert rows == [{"id": "1"}]
    call = transport.calls[0]
    assert call["method"] == "GET"
    assert call["endpoint"] == "/rest/v1/vehicles"
    assert call["params"] == {"select": "*", "order": "created_at.desc"}
    assert call["headers"] == {"accept-profile": "public"}
    assert seen == []


@pytest.mark.asyncio
async def test_create_returns_representation_and_notifies() -> None:
    store, transport, seen = _store([{"id": 7, "make": "BMW"}])

    row = await store.create(EntityKind.VEHICLES, {"make": "BMW"})

    assert row == {"id": 7, "make": "BMW"}
    assert transport.calls[0]["json"] == [{"make": "BMW"}]
    assert transport.calls[0]["headers"]["prefer"] == "return=representation"
    assert [(n.change_type, n.record_id, n.source) for n in seen] == [
        (ChangeType.INSERT, "7", ChangeSource.LOCAL)
    ]


@pytest.mark.asyncio
async def test_create_without_returned_row_fails() -> None:
    store, _, seen = _store([])

    with pytest.raises(ApexStoreError):
        await store.create(EntityKind.VEHICLES, {"make": "BMW"})

    assert seen == []


@pytest.mark.asyncio
async def test_update_filters_by_id() -> None:
    store, transport, seen = _store([{"id": "3", "title": "Hero"}])

    await store.update(EntityKind.CONTENT_SECTIONS, "3", {"title": "Hero"})

    call = transport.calls[0]
    assert call["method"] == "PATCH"
    assert call["params"] == {"id": "eq.3"}
    assert call["headers"]["content-profile"] == "public"
    assert seen[0].change_type is ChangeType.UPDATE


@pytest.mark.asyncio
async def test_update_of_missing_row_raises_not_found() -> None:
    store, _, _ = _store([])

    with pytest.raises(ApexRecordNotFoundError):
        await store.update(EntityKind.CONTENT_SECTIONS, "404", {"title": "x"})


@pytest.mark.asyncio
async def test_transport_errors_map_to_store_errors() -> None:
    store, _, _ = _store(
        ApexTransportError("HTTP 404", status_code=404, endpoint="/rest/v1/vehicles"),
        ApexTransportError("HTTP 500", status_code=500, endpoint="/rest/v1/vehicles"),
    )

    with pytest.raises(ApexRecordNotFoundError):
        await store.delete(EntityKind.VEHICLES, "1")
    with pytest.raises(ApexStoreError) as excinfo:
        await store.fetch_all(EntityKind.VEHICLES)

    assert excinfo.value.code == "500"


@pytest.mark.asyncio
async def test_upsert_merges_duplicates() -> None:
    store, transport, seen = _store([{"key": "phone", "value": "555"}])

    rows = await store.upsert(EntityKind.BUSINESS_SETTINGS, [{"key": "phone", "value": "555"}], on_conflict="key")

    assert rows == [{"key": "phone", "value": "555"}]
    call = transport.calls[0]
    assert call["params"] == {"on_conflict": "key"}
    assert call["headers"]["prefer"] == "resolution=merge-duplicates,return=representation"
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_empty_upsert_is_a_no_op() -> None:
    store, transport, seen = _store()

    assert await store.upsert(EntityKind.BUSINESS_SETTINGS, []) == []
    assert transport.calls == []
    assert seen == []
