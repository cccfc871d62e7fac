"""Local edit buffers and their reconciliation with the remote store."""

from apexauto.state.collection import LiveCollection
from apexauto.state.editor import DebouncedEditor, EditorListener, RecordWriter
from apexauto.state.events import EditorPhase, RemoteConflict, RemoteDecision
from apexauto.state.policy import changed_fields, comparable, decide_remote_update

__all__ = [
    "DebouncedEditor",
    "EditorListener",
    "EditorPhase",
    "LiveCollection",
    "RecordWriter",
    "RemoteConflict",
    "RemoteDecision",
    "changed_fields",
    "comparable",
    "decide_remote_update",
]
