"""Realtime change listener (Phoenix channel over websockets).

The backend pushes ``postgres_changes`` messages for the subscribed
tables.  Each message is reduced to a :class:`ChangeNotification`; the
payload itself is not trusted as the new row value, subscribers refetch.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from collections.abc import Callable, Iterable
from typing import Any

import aiohttp

from apexauto._redact import redact_headers, redact_text
from apexauto.config import ApexConfig
from apexauto.exceptions import ApexRealtimeError
from apexauto.store.base import ChangeNotification, ChangeSource, ChangeType, EntityKind

_logger = logging.getLogger(__name__)

_PROTOCOL_VERSION = "1.0.0"
_RECONNECT_DELAY_S = 5.0

_CHANGE_TYPES: dict[str, ChangeType] = {
    "INSERT": ChangeType.INSERT,
    "UPDATE": ChangeType.UPDATE,
    "DELETE": ChangeType.DELETE,
}


def channel_topic(schema: str) -> str:
    return f"realtime:{schema}"


def build_join_message(schema: str, kinds: Iterable[EntityKind], ref: str) -> dict[str, Any]:
    """Build the ``phx_join`` frame subscribing to every change of *kinds*."""
    return {
        "topic": channel_topic(schema),
        "event": "phx_join",
        "payload": {
            "config": {
                "postgres_changes": [
                    {"event": "*", "schema": schema, "table": kind.value} for kind in kinds
                ],
            },
        },
        "ref": ref,
    }


def build_heartbeat_message(ref: str) -> dict[str, Any]:
    return {"topic": "phoenix", "event": "heartbeat", "payload": {}, "ref": ref}


def _record_id(data: dict[str, Any]) -> str | None:
    for key in ("record", "old_record"):
        record = data.get(key)
        if isinstance(record, dict) and record.get("id") is not None:
            return str(record["id"])
    return None


def parse_realtime_message(message: dict[str, Any], schema: str) -> ChangeNotification | None:
    """Reduce a server frame to a change notification.

    Returns ``None`` for replies, heartbeats, presence traffic, other
    schemas and tables this library does not track.  Both the nested
    ``postgres_changes`` frame and the legacy flat ``INSERT``/``UPDATE``/
    ``DELETE`` frames are understood.
    """
    event = message.get("event")
    payload = message.get("payload")
    if not isinstance(payload, dict):
        return None

    if event == "postgres_changes":
        data = payload.get("data")
    elif event in _CHANGE_TYPES:
        data = payload
    else:
        return None
    if not isinstance(data, dict):
        return None

    if data.get("schema", schema) != schema:
        return None
    try:
        kind = EntityKind(data.get("table"))
    except ValueError:
        return None

    change_type = _CHANGE_TYPES.get(str(data.get("type") or data.get("eventType") or event).upper(), ChangeType.UNKNOWN)
    return ChangeNotification(
        kind=kind,
        change_type=change_type,
        record_id=_record_id(data),
        source=ChangeSource.REALTIME,
    )


class RealtimeListener:
    """Background websocket task feeding change notifications to a callback.

    Failures are logged and the connection is re-established after a short
    delay; they are never raised to the caller.
    """

    def __init__(
        self,
        config: ApexConfig,
        http_session: aiohttp.ClientSession,
        on_change: Callable[[ChangeNotification], None],
        *,
        kinds: Iterable[EntityKind] = tuple(EntityKind),
        reconnect_delay: float = _RECONNECT_DELAY_S,
    ) -> None:
        self._config = config
        self._http = http_session
        self._on_change = on_change
        self._kinds = tuple(kinds)
        self._reconnect_delay = reconnect_delay
        self._refs = itertools.count(1)
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="apexauto-realtime")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            try:
                await self._listen_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.debug("Realtime connection failed", exc_info=True)
            await asyncio.sleep(self._reconnect_delay)

    async def _listen_once(self) -> None:
        url = self._config.realtime_url
        params = {"apikey": self._config.api_key, "vsn": _PROTOCOL_VERSION}
        _logger.debug(
            "Realtime connecting url=%s params=%s tables=%s",
            url,
            redact_headers(params),
            [k.value for k in self._kinds],
        )
        async with self._http.ws_connect(url, params=params, heartbeat=None) as ws:
            join_ref = str(next(self._refs))
            await ws.send_json(build_join_message(self._config.schema, self._kinds, join_ref))
            heartbeat = asyncio.create_task(self._heartbeat(ws))
            try:
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self._handle_text(msg.data, join_ref)
                    elif msg.type in (aiohttp.WSMsgType.ERROR, aiohttp.WSMsgType.CLOSED):
                        break
            finally:
                heartbeat.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await heartbeat
        _logger.debug("Realtime connection closed")

    async def _heartbeat(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while True:
            await asyncio.sleep(self._config.realtime_heartbeat)
            await ws.send_json(build_heartbeat_message(str(next(self._refs))))

    def _handle_text(self, text: str, join_ref: str) -> None:
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            _logger.debug("Realtime frame is not JSON: %s", redact_text(text, self._config.api_key))
            return
        if not isinstance(message, dict):
            return

        if message.get("event") == "phx_reply" and message.get("ref") == join_ref:
            status = (message.get("payload") or {}).get("status")
            if status != "ok":
                raise ApexRealtimeError(f"Channel join rejected: {message.get('payload')}")
            _logger.debug("Realtime channel joined topic=%s", message.get("topic"))
            return

        notification = parse_realtime_message(message, self._config.schema)
        if notification is None:
            return
        _logger.debug(
            "Realtime change kind=%s type=%s id=%s",
            notification.kind,
            notification.change_type,
            notification.record_id,
        )
        try:
            self._on_change(notification)
        except Exception:
            _logger.debug("Realtime change callback failed", exc_info=True)
