"""Entity and history store implementations."""

from stateflow.infrastructure.state_store.memory_store import (
    InMemoryEntityStore,
    InMemoryHistoryStore,
)
from stateflow.infrastructure.state_store.redis_store import RedisHistoryStore

__all__ = ["InMemoryEntityStore", "InMemoryHistoryStore", "RedisHistoryStore"]
