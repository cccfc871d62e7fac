"""PostgREST-backed remote store."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from apexauto._transport import Transport
from apexauto.config import ApexConfig
from apexauto.exceptions import ApexRecordNotFoundError, ApexStoreError, ApexTransportError
from apexauto.store.base import (
    ChangeCallback,
    ChangeNotification,
    ChangeSource,
    ChangeType,
    EntityKind,
    SubscriberRegistry,
    Unsubscribe,
)

_logger = logging.getLogger(__name__)

_RETURN_REPRESENTATION = {"prefer": "return=representation"}


def _store_error(exc: ApexTransportError, kind: EntityKind, action: str) -> ApexStoreError:
    code = str(exc.status_code) if exc.status_code is not None else ""
    if exc.status_code == 404:
        return ApexRecordNotFoundError(f"Failed to {action} {kind}: {exc}", code=code, endpoint=exc.endpoint, kind=kind)
    return ApexStoreError(f"Failed to {action} {kind}: {exc}", code=code, endpoint=exc.endpoint, kind=kind)


def _rows(payload: Any) -> list[dict[str, Any]]:
    if payload is None:
        return []
    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    raise ApexStoreError(f"Unexpected response shape: {type(payload).__name__}")


class RestRemoteStore:
    """Row CRUD over ``/rest/v1/<table>``.

    Every successful write also notifies local subscribers immediately;
    the realtime listener (when running) delivers the same change again,
    which downstream editors recognise as an echo of their own write.
    """

    def __init__(self, config: ApexConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport
        self._subscribers = SubscriberRegistry()

    @property
    def subscribers(self) -> SubscriberRegistry:
        return self._subscribers

    def _endpoint(self, kind: EntityKind) -> str:
        return f"/rest/v1/{kind.value}"

    def _schema_headers(self, *, write: bool) -> dict[str, str]:
        header = "content-profile" if write else "accept-profile"
        return {header: self._config.schema}

    async def fetch_all(
        self,
        kind: EntityKind,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        params = {"select": "*"}
        if order_by is not None:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        try:
            payload = await self._transport.request(
                "GET",
                self._endpoint(kind),
                params=params,
                headers=self._schema_headers(write=False),
            )
        except ApexTransportError as exc:
            raise _store_error(exc, kind, "fetch") from exc
        return _rows(payload)

    async def create(self, kind: EntityKind, fields: Mapping[str, Any]) -> dict[str, Any]:
        try:
            payload = await self._transport.request(
                "POST",
                self._endpoint(kind),
                json_body=[dict(fields)],
                headers={**_RETURN_REPRESENTATION, **self._schema_headers(write=True)},
            )
        except ApexTransportError as exc:
            raise _store_error(exc, kind, "create") from exc
        rows = _rows(payload)
        if not rows:
            raise ApexStoreError(f"No data returned after insert into {kind}", kind=kind)
        row = rows[0]
        self._notify(kind, ChangeType.INSERT, row.get("id"))
        return row

    async def update(self, kind: EntityKind, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        try:
            payload = await self._transport.request(
                "PATCH",
                self._endpoint(kind),
                params={"id": f"eq.{record_id}"},
                json_body=dict(fields),
                headers={**_RETURN_REPRESENTATION, **self._schema_headers(write=True)},
            )
        except ApexTransportError as exc:
            raise _store_error(exc, kind, "update") from exc
        rows = _rows(payload)
        if not rows:
            raise ApexRecordNotFoundError(f"No {kind} row with id {record_id}", kind=kind)
        self._notify(kind, ChangeType.UPDATE, record_id)
        return rows[0]

    async def delete(self, kind: EntityKind, record_id: str) -> None:
        try:
            await self._transport.request(
                "DELETE",
                self._endpoint(kind),
                params={"id": f"eq.{record_id}"},
                headers=self._schema_headers(write=True),
            )
        except ApexTransportError as exc:
            raise _store_error(exc, kind, "delete") from exc
        self._notify(kind, ChangeType.DELETE, record_id)

    async def upsert(
        self,
        kind: EntityKind,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str = "id",
    ) -> list[dict[str, Any]]:
        if not rows:
            return []
        try:
            payload = await self._transport.request(
                "POST",
                self._endpoint(kind),
                params={"on_conflict": on_conflict},
                json_body=[dict(row) for row in rows],
                headers={
                    "prefer": "resolution=merge-duplicates,return=representation",
                    **self._schema_headers(write=True),
                },
            )
        except ApexTransportError as exc:
            raise _store_error(exc, kind, "upsert") from exc
        self._notify(kind, ChangeType.UNKNOWN, None)
        return _rows(payload)

    def subscribe_to_changes(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe:
        return self._subscribers.subscribe(kind, callback)

    def _notify(self, kind: EntityKind, change_type: ChangeType, record_id: Any) -> None:
        self._subscribers.notify(
            ChangeNotification(
                kind=kind,
                change_type=change_type,
                record_id=str(record_id) if record_id is not None else None,
                source=ChangeSource.LOCAL,
            )
        )
