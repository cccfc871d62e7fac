"""Live, immutable snapshot of every record of one entity kind."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from apexauto.exceptions import ApexError
from apexauto.notifications import NotificationCenter
from apexauto.state.editor import DebouncedEditor
from apexauto.store.base import ChangeNotification, EntityKind, RemoteStore, Unsubscribe

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveCollection(Generic[T]):
    """Remote rows of *kind* parsed into models, refreshed on change.

    Readers use :attr:`snapshot`, an immutable tuple replaced wholesale on
    each refresh, so no locking is needed on the read side.  Change
    notifications schedule one coalesced refetch; after each successful
    refetch attached editors are reconciled with the new rows.

    Parameters
    ----------
    store : RemoteStore
        Row source.
    kind : EntityKind
        Table to mirror.
    parse : Callable
        Row dict to model; rows that fail validation are skipped.
    key : Callable
        Model to record key.
    to_record : Callable
        Model to the plain dict shape held by editors.
    order_by, descending
        Remote ordering.
    fallback : Callable or None
        Dataset used when nothing could be loaded.
    fallback_when_empty : bool
        Also use *fallback* when the table is empty.
    """

    def __init__(
        self,
        store: RemoteStore,
        kind: EntityKind,
        *,
        parse: Callable[[Mapping[str, Any]], T],
        key: Callable[[T], str],
        to_record: Callable[[T], dict[str, Any]],
        order_by: str | None = None,
        descending: bool = False,
        fallback: Callable[[], Sequence[T]] | None = None,
        fallback_when_empty: bool = False,
        notifications: NotificationCenter | None = None,
        label: str | None = None,
    ) -> None:
        self._store = store
        self._kind = kind
        self._parse = parse
        self._key = key
        self._to_record = to_record
        self._order_by = order_by
        self._descending = descending
        self._fallback = fallback
        self._fallback_when_empty = fallback_when_empty
        self._notifications = notifications or NotificationCenter()
        self._label = label or kind.value.replace("_", " ")

        self._snapshot: tuple[T, ...] = ()
        self._loaded = False
        self._using_fallback = False
        self._editors: list[DebouncedEditor] = []
        self._unsubscribe: Unsubscribe | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        self._refresh_requested = False
        self._refresh_listeners: list[Callable[[tuple[T, ...]], None]] = []

    @property
    def kind(self) -> EntityKind:
        return self._kind

    @property
    def snapshot(self) -> tuple[T, ...]:
        return self._snapshot

    @property
    def loaded(self) -> bool:
        """Whether at least one refresh reached the remote store."""
        return self._loaded

    @property
    def using_fallback(self) -> bool:
        return self._using_fallback

    def get(self, key: str) -> T | None:
        for item in self._snapshot:
            if self._key(item) == key:
                return item
        return None

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to store change notifications."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe_to_changes(self._kind, self._on_change)

    async def aclose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task = self._refresh_task
        self._refresh_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._editors.clear()

    def attach(self, editor: DebouncedEditor) -> Callable[[], None]:
        """Reconcile *editor* after every refresh; returns a detach function."""
        self._editors.append(editor)

        def _detach() -> None:
            if editor in self._editors:
                self._editors.remove(editor)

        return _detach

    def _on_change(self, notification: ChangeNotification) -> None:
        _logger.debug(
            "%s changed (%s from %s); scheduling refresh",
            notification.kind,
            notification.change_type,
            notification.source,
        )
        self._refresh_requested = True
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(
                self._refresh_pending(), name=f"apexauto-refresh-{self._kind.value}"
            )

    async def _refresh_pending(self) -> None:
        # Notifications arriving mid-fetch trigger exactly one more pass.
        while self._refresh_requested:
            self._refresh_requested = False
            try:
                await self.refresh()
            except Exception:
                _logger.warning("Background refresh of %s failed", self._kind, exc_info=True)

    async def wait_idle(self) -> None:
        """Wait for a scheduled refresh to finish."""
        task = self._refresh_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def refresh(self) -> tuple[T, ...]:
        """Refetch all rows.

        On a read failure the previous snapshot is kept (or the fallback
        dataset is used when nothing was loaded yet) and an error
        notification is published.
        """
        try:
            rows = await self._store.fetch_all(
                self._kind,
                order_by=self._order_by,
                descending=self._descending,
            )
        except ApexError as exc:
            _logger.warning("Loading %s failed: %s", self._kind, exc)
            self._notifications.error(f"Failed to load {self._label}: {exc}")
            if not self._loaded and self._fallback is not None:
                self._snapshot = tuple(self._fallback())
                self._using_fallback = True
            return self._snapshot

        items = self._parse_rows(rows)
        self._loaded = True
        if not items and self._fallback_when_empty and self._fallback is not None:
            _logger.info("No %s stored; serving fallback dataset", self._kind)
            self._snapshot = tuple(self._fallback())
            self._using_fallback = True
        else:
            self._snapshot = tuple(items)
            self._using_fallback = False
        self._reconcile_editors(items)
        self._notify_refreshed(tuple(items))
        return self._snapshot

    def on_refresh(self, callback: Callable[[tuple[T, ...]], None]) -> Callable[[], None]:
        """Call *callback* with the fetched items after every successful refresh."""
        self._refresh_listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._refresh_listeners:
                self._refresh_listeners.remove(callback)

        return _unsubscribe

    def _notify_refreshed(self, items: tuple[T, ...]) -> None:
        for callback in list(self._refresh_listeners):
            try:
                callback(items)
            except Exception:
                _logger.debug("Refresh listener for %s failed", self._kind, exc_info=True)

    def _parse_rows(self, rows: Sequence[Mapping[str, Any]]) -> list[T]:
        items: list[T] = []
        for row in rows:
            try:
                items.append(self._parse(row))
            except ValidationError as exc:
                _logger.warning("Skipping malformed %s row id=%s: %s", self._kind, row.get("id"), exc)
        return items

    def _reconcile_editors(self, items: Sequence[T]) -> None:
        by_key = {self._key(item): item for item in items}
        for editor in list(self._editors):
            key = editor.key
            if key is None:
                continue
            item = by_key.get(key)
            if item is None:
                editor.remote_deleted(key)
            else:
                editor.apply_remote(self._to_record(item))
