"""Remote store contract shared by every backend implementation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

_logger = logging.getLogger(__name__)


class EntityKind(StrEnum):
    """Tables the application reads and writes."""

    VEHICLES = "vehicles"
    CONTENT_SECTIONS = "content_sections"
    BUSINESS_SETTINGS = "business_settings"


class ChangeType(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    UNKNOWN = "unknown"


class ChangeSource(StrEnum):
    LOCAL = "local"
    REALTIME = "realtime"


class ChangeNotification(BaseModel):
    """Something changed in *kind*; subscribers are expected to refetch."""

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    change_type: ChangeType = ChangeType.UNKNOWN
    record_id: str | None = None
    source: ChangeSource = ChangeSource.LOCAL
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


ChangeCallback = Callable[[ChangeNotification], None]
Unsubscribe = Callable[[], None]


class RemoteStore(Protocol):
    """Structural interface for row storage.

    Having a protocol here makes it easy to pass the in-memory store in
    tests while keeping the production implementation concrete.
    """

    async def fetch_all(
        self,
        kind: EntityKind,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]: ...

    async def create(self, kind: EntityKind, fields: Mapping[str, Any]) -> dict[str, Any]: ...

    async def update(self, kind: EntityKind, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any]: ...

    async def delete(self, kind: EntityKind, record_id: str) -> None: ...

    async def upsert(
        self,
        kind: EntityKind,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str = "id",
    ) -> list[dict[str, Any]]: ...

    def subscribe_to_changes(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe: ...


class SubscriberRegistry:
    """Per-kind change callbacks.

    A failing callback is logged and skipped so one broken subscriber
    cannot starve the others.
    """

    def __init__(self) -> None:
        self._callbacks: dict[EntityKind, list[ChangeCallback]] = {}

    def subscribe(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe:
        self._callbacks.setdefault(kind, []).append(callback)

        def _unsubscribe() -> None:
            callbacks = self._callbacks.get(kind, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def kinds(self) -> set[EntityKind]:
        return {kind for kind, callbacks in self._callbacks.items() if callbacks}

    def notify(self, notification: ChangeNotification) -> None:
        for callback in list(self._callbacks.get(notification.kind, [])):
            try:
                callback(notification)
            except Exception:
                _logger.debug("Change subscriber for %s failed", notification.kind, exc_info=True)


def sort_rows(rows: list[dict[str, Any]], order_by: str | None, descending: bool) -> list[dict[str, Any]]:
    """Stable sort by *order_by*; rows missing the column sort last."""
    if order_by is None:
        return rows
    present = [row for row in rows if row.get(order_by) is not None]
    missing = [row for row in rows if row.get(order_by) is None]
    present.sort(key=lambda row: row[order_by], reverse=descending)
    return present + missing
