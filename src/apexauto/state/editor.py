"""Debounced editor: a local edit buffer reconciled with the remote store.

An editor owns a deep copy of one selected record.  Mutations are applied
to that copy synchronously and persisted after a quiet period; every
mutation restarts the timer so a burst of keystrokes becomes one write.

Phases::

    UNSELECTED --select--> CLEAN --edit--> DIRTY_PENDING --timer--> WRITING
                             ^                   ^                     |
                             +------ success ----|---------------------+
                                                 +-- edit -- WRITE_FAILED <-- failure

Remote refreshes are routed through :func:`~apexauto.state.policy.decide_remote_update`
so the editor's own write echoing back is never mistaken for an external
change, and unsaved edits are never overwritten.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from apexauto._constants import SERVER_MANAGED_KEYS
from apexauto.exceptions import ApexError, ApexWriteTimeoutError
from apexauto.models.section import merge_content
from apexauto.notifications import NotificationCenter
from apexauto.state.events import EditorPhase, RemoteConflict, RemoteDecision
from apexauto.state.policy import changed_fields, decide_remote_update, same_value

_logger = logging.getLogger(__name__)

RecordWriter = Callable[[str, dict[str, Any]], Awaitable[Mapping[str, Any] | None]]
"""``writer(key, changed_fields)`` persists a partial update and returns the stored row."""

EditorListener = Callable[[EditorPhase, dict[str, Any] | None], None]


class DebouncedEditor:
    """Edit buffer for one record at a time.

    Parameters
    ----------
    writer : RecordWriter
        Persists the changed top-level fields of the selected record.
    notifications : NotificationCenter or None
        Receives one ERROR per failed write and one WARNING per detected
        conflict.
    delay : float
        Debounce quiet period in seconds.
    write_timeout : float
        Upper bound in seconds for a single write.
    key_field : str
        Record field holding the key when :meth:`select` is not given one.
    ignored_keys : Iterable[str]
        Bookkeeping fields excluded from every comparison.
    label : str
        Human readable record name used in notification messages.
    """

    def __init__(
        self,
        writer: RecordWriter,
        *,
        notifications: NotificationCenter | None = None,
        delay: float = 1.0,
        write_timeout: float = 10.0,
        key_field: str = "id",
        ignored_keys: Iterable[str] = SERVER_MANAGED_KEYS,
        label: str = "record",
    ) -> None:
        self._writer = writer
        self._notifications = notifications or NotificationCenter()
        self._delay = delay
        self._write_timeout = write_timeout
        self._key_field = key_field
        self._ignored_keys = frozenset(ignored_keys)
        self._label = label

        self._phase = EditorPhase.UNSELECTED
        self._key: str | None = None
        self._buffer: dict[str, Any] | None = None
        self._last_known: dict[str, Any] | None = None
        self._last_written: dict[str, Any] | None = None
        self._deferred_remote: dict[str, Any] | None = None
        self._conflict: RemoteConflict | None = None
        self._last_error: Exception | None = None

        # Bumped on every local mutation; a write only resyncs the buffer
        # when no mutation happened while it was in flight.
        self._edit_seq = 0
        # Bumped on select/deselect; results of writes issued for an
        # earlier selection are dropped.
        self._generation = 0

        self._lock = asyncio.Lock()
        self._timer: asyncio.Task[None] | None = None
        self._writes: set[asyncio.Task[None]] = set()
        self._listeners: list[EditorListener] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def phase(self) -> EditorPhase:
        return self._phase

    @property
    def key(self) -> str | None:
        return self._key

    @property
    def buffer(self) -> dict[str, Any] | None:
        """Deep copy of the local buffer (``None`` when unselected)."""
        return copy.deepcopy(self._buffer)

    @property
    def last_known(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._last_known)

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def conflict(self) -> RemoteConflict | None:
        return self._conflict

    @property
    def is_dirty(self) -> bool:
        if self._buffer is None:
            return False
        return bool(changed_fields(self._buffer, self._last_known, self._ignored_keys))

    @property
    def closed(self) -> bool:
        return self._closed

    def on_change(self, callback: EditorListener) -> Callable[[], None]:
        """Register *callback* for ``(phase, buffer_copy)`` after each transition."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, record: Mapping[str, Any], *, key: str | None = None) -> None:
        """Start editing a deep copy of *record*.

        Any pending write for the previous selection is cancelled.
        """
        self._require_open()
        resolved = key if key is not None else record.get(self._key_field)
        if resolved is None or str(resolved) == "":
            raise ValueError(f"Cannot select a {self._label} without a {self._key_field!r}")

        self._cancel_timer()
        self._generation += 1
        self._key = str(resolved)
        self._buffer = copy.deepcopy(dict(record))
        self._last_known = copy.deepcopy(dict(record))
        self._last_written = None
        self._deferred_remote = None
        self._conflict = None
        self._last_error = None
        self._set_phase(EditorPhase.CLEAN)

    def deselect(self) -> None:
        """Drop the buffer; a pending (not yet fired) write is cancelled."""
        self._cancel_timer()
        self._generation += 1
        self._key = None
        self._buffer = None
        self._last_known = None
        self._last_written = None
        self._deferred_remote = None
        self._conflict = None
        self._last_error = None
        self._set_phase(EditorPhase.UNSELECTED)

    # ------------------------------------------------------------------
    # Local mutations
    # ------------------------------------------------------------------

    def update(self, changes: Mapping[str, Any]) -> None:
        """Apply *changes* to the buffer and (re)start the debounce timer."""
        buffer = self._require_buffer()
        for name, value in changes.items():
            buffer[name] = copy.deepcopy(value)
        self._after_edit()

    def set_field(self, name: str, value: Any) -> None:
        self.update({name: value})

    def update_content(self, changes: Mapping[str, Any], *, field: str = "content") -> None:
        """Shallow-merge *changes* into the buffer's nested *field* mapping."""
        buffer = self._require_buffer()
        current = buffer.get(field)
        base = current if isinstance(current, Mapping) else {}
        buffer[field] = merge_content(base, copy.deepcopy(dict(changes)))
        self._after_edit()

    def _after_edit(self) -> None:
        self._edit_seq += 1
        if not self.is_dirty and not self._lock.locked():
            # Edited back to the remote value: nothing to persist.
            self._cancel_timer()
            self._last_error = None
            self._set_phase(EditorPhase.CLEAN)
            return
        self._schedule()
        self._set_phase(EditorPhase.DIRTY_PENDING)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Write now instead of waiting for the timer (no-op when clean)."""
        self._require_open()
        self._cancel_timer()
        await self._write()

    async def retry(self) -> None:
        """Re-issue the write after a failure."""
        await self.flush()

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no write is in flight."""
        while True:
            pending = [task for task in (self._timer, *self._writes) if task is not None and not task.done()]
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            elif self._lock.locked():
                # A flush() is writing outside the tracked tasks.
                async with self._lock:
                    pass
            else:
                return

    def _schedule(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.create_task(self._debounce(), name=f"apexauto-debounce-{self._label}")

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done():
            timer.cancel()

    async def _debounce(self) -> None:
        await asyncio.sleep(self._delay)
        # Detach before writing so deselect cannot cancel a write in flight.
        self._timer = None
        task = asyncio.create_task(self._write(), name=f"apexauto-write-{self._label}")
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _write(self) -> None:
        async with self._lock:
            if self._buffer is None or self._key is None:
                return
            changes = changed_fields(self._buffer, self._last_known, self._ignored_keys)
            if not changes:
                if self._timer is None and self._phase is not EditorPhase.CLEAN:
                    self._last_error = None
                    self._set_phase(EditorPhase.CLEAN)
                return

            key = self._key
            generation = self._generation
            issued_seq = self._edit_seq
            snapshot = copy.deepcopy(self._buffer)
            previous_written = self._last_written
            # Recognise the echo of this write even if it arrives before the reply.
            self._last_written = snapshot
            self._set_phase(EditorPhase.WRITING)
            _logger.debug("Writing %s %s fields=%s", self._label, key, sorted(changes))

            try:
                result = await asyncio.wait_for(
                    self._writer(key, copy.deepcopy(changes)),
                    timeout=self._write_timeout,
                )
            except TimeoutError as exc:
                error = ApexWriteTimeoutError(
                    f"Saving {self._label} {key} timed out after {self._write_timeout:g}s",
                    kind=self._label,
                )
                error.__cause__ = exc
                self._write_failed(error, key, previous_written, generation, issued_seq)
                return
            except Exception as exc:
                self._write_failed(exc, key, previous_written, generation, issued_seq)
                return

            if generation != self._generation:
                _logger.debug("Dropping write result for deselected %s %s", self._label, key)
                return

            stored = copy.deepcopy(dict(result)) if result else snapshot
            self._last_known = stored
            self._last_written = copy.deepcopy(stored)
            self._deferred_remote = None
            self._conflict = None
            self._last_error = None

            if self._edit_seq == issued_seq:
                self._buffer = copy.deepcopy(stored)
                self._set_phase(EditorPhase.CLEAN)
            elif not self.is_dirty:
                self._cancel_timer()
                self._set_phase(EditorPhase.CLEAN)
            else:
                # Edited during the write; a converged remote may have cancelled the timer.
                if self._timer is None:
                    self._schedule()
                self._set_phase(EditorPhase.DIRTY_PENDING)

    def _write_failed(
        self,
        exc: Exception,
        key: str,
        previous_written: dict[str, Any] | None,
        generation: int,
        issued_seq: int,
    ) -> None:
        _logger.warning("Saving %s %s failed: %s", self._label, key, exc)
        message = str(exc) if isinstance(exc, ApexError) else f"{type(exc).__name__}: {exc}"
        self._notifications.error(f"Failed to save {self._label}: {message}")
        if generation != self._generation:
            return
        self._last_written = previous_written
        self._last_error = exc
        if self._edit_seq == issued_seq:
            self._set_phase(EditorPhase.WRITE_FAILED)
        else:
            self._set_phase(EditorPhase.DIRTY_PENDING)

    # ------------------------------------------------------------------
    # Remote changes
    # ------------------------------------------------------------------

    def apply_remote(self, record: Mapping[str, Any]) -> RemoteDecision | None:
        """Reconcile a refreshed remote value for the selected record.

        Returns the decision taken, or ``None`` when nothing is selected or
        *record* belongs to another key.
        """
        if self._closed or self._buffer is None:
            return None
        record_key = record.get(self._key_field)
        if record_key is not None and str(record_key) != self._key:
            return None

        incoming = copy.deepcopy(dict(record))
        decision = decide_remote_update(
            self._phase,
            incoming,
            self._last_known,
            self._buffer,
            self._last_written,
            self._ignored_keys,
        )

        if decision is RemoteDecision.IGNORE_ECHO:
            return decision

        if decision is RemoteDecision.REPLACE:
            self._last_known = incoming
            self._buffer = copy.deepcopy(incoming)
            self._last_written = None
            self._set_phase(EditorPhase.CLEAN)
            return decision

        if decision is RemoteDecision.CONVERGED:
            self._cancel_timer()
            self._last_known = incoming
            self._deferred_remote = None
            self._conflict = None
            self._last_error = None
            if not self._lock.locked():
                self._set_phase(EditorPhase.CLEAN)
            return decision

        self._defer_conflict(incoming)
        return decision

    def _defer_conflict(self, incoming: dict[str, Any]) -> None:
        assert self._buffer is not None  # noqa: S101
        if self._deferred_remote is not None and same_value(incoming, self._deferred_remote, self._ignored_keys):
            return
        remote_changed = changed_fields(incoming, self._last_known, self._ignored_keys)
        local_changed = changed_fields(self._buffer, self._last_known, self._ignored_keys)
        fields = tuple(
            sorted(
                name
                for name in remote_changed
                if name in local_changed and self._buffer.get(name) != incoming.get(name)
            )
        )
        self._deferred_remote = incoming
        self._conflict = RemoteConflict(
            key=self._key or "",
            remote=copy.deepcopy(incoming),
            local=copy.deepcopy(self._buffer),
            conflicting_fields=fields,
        )
        _logger.info("Remote change to %s %s deferred; conflicting fields=%s", self._label, self._key, fields)
        detail = f" ({', '.join(fields)})" if fields else ""
        self._notifications.warning(
            f"This {self._label} was changed in another session{detail}; saving will keep your edits"
        )
        self._emit()

    def remote_deleted(self, key: str) -> None:
        """The record under edit was deleted remotely."""
        if self._key is None or str(key) != self._key:
            return
        had_changes = self._phase.has_local_changes
        self.deselect()
        if had_changes:
            self._notifications.warning(f"This {self._label} was deleted; unsaved changes were discarded")

    def discard_local(self) -> None:
        """Abandon local edits and adopt the remote value (deferred one first)."""
        if self._buffer is None:
            return
        remote = self._deferred_remote if self._deferred_remote is not None else self._last_known
        self._cancel_timer()
        self._last_known = copy.deepcopy(remote)
        self._buffer = copy.deepcopy(remote)
        self._last_written = None
        self._deferred_remote = None
        self._conflict = None
        self._last_error = None
        self._set_phase(EditorPhase.CLEAN)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Cancel the pending timer and wait for an in-flight write.

        The editor cannot be used afterwards.
        """
        if self._closed:
            return
        self._cancel_timer()
        if self._writes:
            await asyncio.gather(*self._writes, return_exceptions=True)
        self.deselect()
        self._closed = True
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if self._closed:
            raise ApexError(f"The {self._label} editor is closed")

    def _require_buffer(self) -> dict[str, Any]:
        self._require_open()
        if self._buffer is None:
            raise ApexError(f"No {self._label} selected")
        return self._buffer

    def _set_phase(self, phase: EditorPhase) -> None:
        self._phase = phase
        self._emit()

    def _emit(self) -> None:
        snapshot = copy.deepcopy(self._buffer)
        for callback in list(self._listeners):
            try:
                callback(self._phase, snapshot)
            except Exception:
                _logger.debug("Editor listener failed", exc_info=True)
