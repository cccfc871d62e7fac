"""Deterministic remote-merge policy.

This module intentionally contains *no* I/O. Editors feed it the values
they track and act on the returned decision.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from apexauto._constants import SERVER_MANAGED_KEYS
from apexauto.state.events import EditorPhase, RemoteDecision


def comparable(
    record: Mapping[str, Any] | None,
    ignored_keys: Iterable[str] = SERVER_MANAGED_KEYS,
) -> dict[str, Any]:
    """Drop bookkeeping keys so two values can be compared by content."""
    if record is None:
        return {}
    ignored = frozenset(ignored_keys)
    return {key: value for key, value in record.items() if key not in ignored}


def same_value(
    left: Mapping[str, Any] | None,
    right: Mapping[str, Any] | None,
    ignored_keys: Iterable[str] = SERVER_MANAGED_KEYS,
) -> bool:
    if left is None or right is None:
        return False
    return comparable(left, ignored_keys) == comparable(right, ignored_keys)


def changed_fields(
    buffer: Mapping[str, Any],
    baseline: Mapping[str, Any] | None,
    ignored_keys: Iterable[str] = SERVER_MANAGED_KEYS,
) -> dict[str, Any]:
    """Top-level fields of *buffer* that differ (deeply) from *baseline*."""
    base = comparable(baseline, ignored_keys)
    return {
        key: value
        for key, value in comparable(buffer, ignored_keys).items()
        if key not in base or base[key] != value
    }


def decide_remote_update(
    phase: EditorPhase,
    incoming: Mapping[str, Any],
    last_known: Mapping[str, Any] | None,
    buffer: Mapping[str, Any] | None,
    last_written: Mapping[str, Any] | None,
    ignored_keys: Iterable[str] = SERVER_MANAGED_KEYS,
) -> RemoteDecision:
    """Decide what an editor does with a refreshed remote value.

    Policy:
    - Equal to what we last wrote or last saw: it is our own echo, ignore.
    - No unsaved local edits: adopt the remote value.
    - Equal to the local buffer: both sides converged.
    - Otherwise local edits are pending and diverge: defer, never clobber.
    """
    ignored = frozenset(ignored_keys)
    if same_value(incoming, last_written, ignored) or same_value(incoming, last_known, ignored):
        return RemoteDecision.IGNORE_ECHO
    if not phase.has_local_changes:
        return RemoteDecision.REPLACE
    if same_value(incoming, buffer, ignored):
        return RemoteDecision.CONVERGED
    return RemoteDecision.DEFER_CONFLICT
