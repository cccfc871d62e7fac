"""In-memory remote store.

Implements the :class:`~apexauto.store.base.RemoteStore` contract without
a backend, for offline development and tests.  Failures and slow writes
can be injected to exercise the editors' recovery paths.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from apexauto.exceptions import ApexRecordNotFoundError, ApexStoreError
from apexauto.store.base import (
    ChangeCallback,
    ChangeNotification,
    ChangeSource,
    ChangeType,
    EntityKind,
    SubscriberRegistry,
    Unsubscribe,
    sort_rows,
)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True, slots=True)
class WriteCall:
    """A write observed by the store (kept for assertions)."""

    kind: EntityKind
    operation: str
    record_id: str | None
    fields: dict[str, Any]


class InMemoryRemoteStore:
    """Dict-backed store with the same semantics as the REST store."""

    def __init__(
        self,
        rows: Mapping[EntityKind, Sequence[Mapping[str, Any]]] | None = None,
        *,
        write_delay: float = 0.0,
    ) -> None:
        self._tables: dict[EntityKind, dict[str, dict[str, Any]]] = {kind: {} for kind in EntityKind}
        self._ids = itertools.count(1)
        self._subscribers = SubscriberRegistry()
        self._pending_failures: list[Exception] = []
        self.fail_reads = False
        self.write_delay = write_delay
        self.writes: list[WriteCall] = []
        for kind, kind_rows in (rows or {}).items():
            for row in kind_rows:
                self.seed(kind, row)

    # ------------------------------------------------------------------
    # Test hooks
    # ------------------------------------------------------------------

    def seed(self, kind: EntityKind, row: Mapping[str, Any]) -> dict[str, Any]:
        """Insert *row* directly, without notifying subscribers."""
        stored = copy.deepcopy(dict(row))
        stored.setdefault("id", str(next(self._ids)))
        stored["id"] = str(stored["id"])
        self._tables[kind][stored["id"]] = stored
        return copy.deepcopy(stored)

    def fail_next_write(self, exc: Exception | None = None) -> None:
        self._pending_failures.append(exc or ApexStoreError("Injected write failure"))

    def rows(self, kind: EntityKind) -> list[dict[str, Any]]:
        return [copy.deepcopy(row) for row in self._tables[kind].values()]

    def get(self, kind: EntityKind, record_id: str) -> dict[str, Any] | None:
        row = self._tables[kind].get(record_id)
        return copy.deepcopy(row) if row is not None else None

    def push_external_update(self, kind: EntityKind, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Simulate another session changing a row, delivered via realtime."""
        row = self._require(kind, record_id)
        row.update(copy.deepcopy(dict(fields)))
        row["updated_at"] = _timestamp()
        self._subscribers.notify(
            ChangeNotification(
                kind=kind,
                change_type=ChangeType.UPDATE,
                record_id=record_id,
                source=ChangeSource.REALTIME,
            )
        )
        return copy.deepcopy(row)

    def push_external_delete(self, kind: EntityKind, record_id: str) -> None:
        self._require(kind, record_id)
        del self._tables[kind][record_id]
        self._subscribers.notify(
            ChangeNotification(
                kind=kind,
                change_type=ChangeType.DELETE,
                record_id=record_id,
                source=ChangeSource.REALTIME,
            )
        )

    # ------------------------------------------------------------------
    # RemoteStore
    # ------------------------------------------------------------------

    async def fetch_all(
        self,
        kind: EntityKind,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise ApexStoreError(f"Injected read failure for {kind}", kind=kind.value)
        return sort_rows(self.rows(kind), order_by, descending)

    async def create(self, kind: EntityKind, fields: Mapping[str, Any]) -> dict[str, Any]:
        await self._before_write(kind, "create", None, fields)
        now = _timestamp()
        row = copy.deepcopy(dict(fields))
        row["id"] = str(row.get("id") or next(self._ids))
        row.setdefault("created_at", now)
        row["updated_at"] = now
        self._tables[kind][row["id"]] = row
        self._notify(kind, ChangeType.INSERT, row["id"])
        return copy.deepcopy(row)

    async def update(self, kind: EntityKind, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        await self._before_write(kind, "update", record_id, fields)
        row = self._require(kind, record_id)
        row.update(copy.deepcopy(dict(fields)))
        row["id"] = record_id
        row["updated_at"] = _timestamp()
        self._notify(kind, ChangeType.UPDATE, record_id)
        return copy.deepcopy(row)

    async def delete(self, kind: EntityKind, record_id: str) -> None:
        await self._before_write(kind, "delete", record_id, {})
        self._require(kind, record_id)
        del self._tables[kind][record_id]
        self._notify(kind, ChangeType.DELETE, record_id)

    async def upsert(
        self,
        kind: EntityKind,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str = "id",
    ) -> list[dict[str, Any]]:
        await self._before_write(kind, "upsert", None, {"rows": [dict(r) for r in rows]})
        table = self._tables[kind]
        now = _timestamp()
        result: list[dict[str, Any]] = []
        for incoming in rows:
            match_value = incoming.get(on_conflict)
            existing = next(
                (row for row in table.values() if match_value is not None and row.get(on_conflict) == match_value),
                None,
            )
            if existing is None:
                existing = copy.deepcopy(dict(incoming))
                existing["id"] = str(existing.get("id") or next(self._ids))
                existing["created_at"] = now
                table[existing["id"]] = existing
            else:
                existing.update(copy.deepcopy(dict(incoming)))
            existing["updated_at"] = now
            result.append(copy.deepcopy(existing))
        self._notify(kind, ChangeType.UNKNOWN, None)
        return result

    def subscribe_to_changes(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe:
        return self._subscribers.subscribe(kind, callback)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _before_write(
        self,
        kind: EntityKind,
        operation: str,
        record_id: str | None,
        fields: Mapping[str, Any],
    ) -> None:
        self.writes.append(WriteCall(kind, operation, record_id, copy.deepcopy(dict(fields))))
        if self.write_delay > 0:
            await asyncio.sleep(self.write_delay)
        else:
            await asyncio.sleep(0)
        if self._pending_failures:
            raise self._pending_failures.pop(0)

    def _require(self, kind: EntityKind, record_id: str) -> dict[str, Any]:
        row = self._tables[kind].get(record_id)
        if row is None:
            raise ApexRecordNotFoundError(f"No {kind} row with id {record_id}", kind=kind.value)
        return row

    def _notify(self, kind: EntityKind, change_type: ChangeType, record_id: str | None) -> None:
        self._subscribers.notify(
            ChangeNotification(kind=kind, change_type=change_type, record_id=record_id, source=ChangeSource.LOCAL)
        )
