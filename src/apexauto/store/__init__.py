"""Remote store contract and implementations."""

from apexauto.store.base import (
    ChangeCallback,
    ChangeNotification,
    ChangeSource,
    ChangeType,
    EntityKind,
    RemoteStore,
    SubscriberRegistry,
    Unsubscribe,
)
from apexauto.store.memory import InMemoryRemoteStore, WriteCall
from apexauto.store.rest import RestRemoteStore

__all__ = [
    "ChangeCallback",
    "ChangeNotification",
    "ChangeSource",
    "ChangeType",
    "EntityKind",
    "InMemoryRemoteStore",
    "RemoteStore",
    "RestRemoteStore",
    "SubscriberRegistry",
    "Unsubscribe",
    "WriteCall",
]
