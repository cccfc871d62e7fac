from __future__ import annotations

import json

import pytest

from apexauto._realtime import (
    RealtimeListener,
    build_heartbeat_message,
    build_join_message,
    parse_realtime_message,
)
from apexauto.config import ApexConfig
from apexauto.exceptions import ApexRealtimeError
from apexauto.store.base import ChangeNotification, ChangeSource, ChangeType, EntityKind


def test_join_message_subscribes_each_table() -> None:
    message = build_join_message("public", [EntityKind.VEHICLES, EntityKind.CONTENT_SECTIONS], "1")

    assert message["topic"] == "realtime:public"
    assert message["event"] == "phx_join"
    assert message["ref"] == "1"
    assert message["payload"]["config"]["postgres_changes"] == [
        {"event": "*", "schema": "public", "table": "vehicles"},
        {"event": "*", "schema": "public", "table": "content_sections"},
    ]


def test_heartbeat_message() -> None:
    assert build_heartbeat_message("9") == {"topic": "phoenix", "event": "heartbeat", "payload": {}, "ref": "9"}


def test_postgres_changes_frame_is_parsed() -> None:
    message = {
        "topic": "realtime:public",
        "event": "postgres_changes",
        "payload": {
            "data": {
                "schema": "public",
                "table": "vehicles",
                "type": "UPDATE",
                "record": {"id": 42, "price": 90000},
                "old_record": {"id": 42},
            },
            "ids": [1],
        },
    }

    notification = parse_realtime_message(message, "public")

    assert notification is not None
    assert notification.kind is EntityKind.VEHICLES
    assert notification.change_type is ChangeType.UPDATE
    assert notification.record_id == "42"
    assert notification.source is ChangeSource.REALTIME


def test_legacy_delete_frame_uses_old_record() -> None:
    message = {
        "event": "DELETE",
        "payload": {"schema": "public", "table": "content_sections", "old_record": {"id": "s1"}},
    }

    notification = parse_realtime_message(message, "public")

    assert notification is not None
    assert notification.change_type is ChangeType.DELETE
    assert notification.record_id == "s1"


@pytest.mark.parametrize(
    "message",
    [
        {"event": "phx_reply", "payload": {"status": "ok"}},
        {"event": "presence_state", "payload": {}},
        {"event": "postgres_changes", "payload": {"data": {"schema": "audit", "table": "vehicles"}}},
        {"event": "postgres_changes", "payload": {"data": {"schema": "public", "table": "customers"}}},
        {"event": "postgres_changes", "payload": "not a dict"},
    ],
)
def test_irrelevant_frames_are_ignored(message: dict[str, object]) -> None:
    assert parse_realtime_message(message, "public") is None


def _listener(received: list[ChangeNotification]) -> RealtimeListener:
    config = ApexConfig(url="https://xyz.supabase.co", api_key="anon")
    return RealtimeListener(config, None, received.append)  # type: ignore[arg-type]


def test_listener_forwards_changes() -> None:
    received: list[ChangeNotification] = []
    listener = _listener(received)
    frame = {
        "event": "postgres_changes",
        "payload": {"data": {"schema": "public", "table": "business_settings", "type": "INSERT", "record": {}}},
    }

    listener._handle_text(json.dumps(frame), "1")
    listener._handle_text("not json", "1")

    assert [(n.kind, n.change_type, n.record_id) for n in received] == [
        (EntityKind.BUSINESS_SETTINGS, ChangeType.INSERT, None)
    ]


def test_rejected_join_raises() -> None:
    listener = _listener([])
    reply = {"event": "phx_reply", "ref": "1", "payload": {"status": "error", "response": {"reason": "denied"}}}

    listener._handle_text(json.dumps({**reply, "ref": "2"}), "1")
    with pytest.raises(ApexRealtimeError):
        listener._handle_text(json.dumps(reply), "1")


def test_listener_is_idle_until_started() -> None:
    assert not _listener([]).is_running
