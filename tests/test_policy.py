from __future__ import annotations

import pytest

from apexauto.state.events import EditorPhase, RemoteDecision
from apexauto.state.policy import changed_fields, comparable, decide_remote_update

BASE = {"id": "1", "title": "Hero", "visible": True, "updated_at": "2024-01-01T00:00:00+00:00"}


def test_comparable_drops_server_managed_keys() -> None:
    assert comparable(BASE) == {"id": "1", "title": "Hero", "visible": True}
    assert comparable(None) == {}


def test_changed_fields_compares_nested_values_deeply() -> None:
    buffer = {**BASE, "content": {"heading": "New"}, "updated_at": "later"}
    baseline = {**BASE, "content": {"heading": "Old"}}

    assert changed_fields(buffer, baseline) == {"content": {"heading": "New"}}
    assert changed_fields(baseline, baseline) == {}


def test_own_write_echo_is_ignored() -> None:
    written = {**BASE, "title": "Mine"}
    echo = {**written, "updated_at": "2024-02-02T00:00:00+00:00"}

    decision = decide_remote_update(EditorPhase.WRITING, echo, BASE, written, written)

    assert decision is RemoteDecision.IGNORE_ECHO


def test_unchanged_remote_is_ignored_even_when_dirty() -> None:
    buffer = {**BASE, "title": "Typing"}

    assert decide_remote_update(EditorPhase.DIRTY_PENDING, dict(BASE), BASE, buffer, None) is RemoteDecision.IGNORE_ECHO


@pytest.mark.parametrize("phase", [EditorPhase.CLEAN, EditorPhase.UNSELECTED])
def test_clean_editor_adopts_remote(phase: EditorPhase) -> None:
    incoming = {**BASE, "title": "Theirs"}

    assert decide_remote_update(phase, incoming, BASE, BASE, None) is RemoteDecision.REPLACE


@pytest.mark.parametrize("phase", [EditorPhase.DIRTY_PENDING, EditorPhase.WRITING, EditorPhase.WRITE_FAILED])
def test_local_edits_are_never_clobbered(phase: EditorPhase) -> None:
    buffer = {**BASE, "title": "Mine"}
    incoming = {**BASE, "title": "Theirs"}

    assert decide_remote_update(phase, incoming, BASE, buffer, None) is RemoteDecision.DEFER_CONFLICT


def test_remote_matching_buffer_converges() -> None:
    buffer = {**BASE, "title": "Same"}
    incoming = {**BASE, "title": "Same", "updated_at": "later"}

    decision = decide_remote_update(EditorPhase.WRITE_FAILED, incoming, BASE, buffer, None)

    assert decision is RemoteDecision.CONVERGED
