"""Domain interfaces for dependency injection."""

from stateflow.domain.interfaces.actor_resolver import (
    ActorResolver,
    CallableActorResolver,
    StaticActorResolver,
)
from stateflow.domain.interfaces.entity_store import EntityStore, EntityStoreError
from stateflow.domain.interfaces.history_store import (
    HistoryQuery,
    HistoryStore,
    HistoryStoreError,
    HistoryStoreUnavailableError,
)
from stateflow.domain.interfaces.notification_sink import NotificationSink

__all__ = [
    "ActorResolver",
    "CallableActorResolver",
    "StaticActorResolver",
    "EntityStore",
    "EntityStoreError",
    "HistoryQuery",
    "HistoryStore",
    "HistoryStoreError",
    "HistoryStoreUnavailableError",
    "NotificationSink",
]
