"""In-memory entity and history store implementations.

These stores need no external services. They are the defaults of the
StateFlow facade and the collaborators used throughout the test suite.

Example:
    ```python
    from stateflow.infrastructure.state_store.memory_store import (
        InMemoryEntityStore,
        InMemoryHistoryStore,
    )

    entity_store = InMemoryEntityStore()
    history_store = InMemoryHistoryStore(max_records=500)
    ```
"""

import threading
from collections.abc import Iterable, MutableMapping
from typing import Any

from stateflow.domain.interfaces.entity_store import EntityStore, EntityStoreError
from stateflow.domain.interfaces.history_store import (
    HistoryQuery,
    HistoryStore,
    HistoryStoreError,
    HistoryStoreUnavailableError,
)
from stateflow.domain.models.history_record import HistoryRecord


class InMemoryEntityStore(EntityStore):
    """Entity store keeping a snapshot of every persisted entity.

    Thread Safety:
        - ``persist`` takes a lock before writing the snapshot table
        - Reads of snapshots are lock-free

    Attributes:
        _snapshots: Last persisted field values keyed by (entity type, entity id)
        _persist_count: Number of successful persist calls
        _untracked_types: Entity types that opt out of history tracking
    """

    def __init__(self, untracked_types: Iterable[str] = ()) -> None:
        """Initialize InMemoryEntityStore.

        Args:
            untracked_types: Entity type names whose transitions are not
                recorded in history.
        """
        self._snapshots: dict[tuple[str, str | None], dict[str, Any]] = {}
        self._persist_count = 0
        self._untracked_types = set(untracked_types)
        self._write_lock = threading.Lock()

    def persist(self, entity: Any) -> None:
        """Store a snapshot of the entity's current fields."""
        try:
            if isinstance(entity, MutableMapping):
                snapshot = dict(entity)
            else:
                snapshot = dict(vars(entity))
        except TypeError as e:
            raise EntityStoreError(
                f"Cannot snapshot entity of type {type(entity).__name__}: {e}"
            ) from e
        key = (self.entity_type(entity), self.entity_id(entity))
        with self._write_lock:
            self._snapshots[key] = snapshot
            self._persist_count += 1

    def saved(self, entity: Any) -> dict[str, Any] | None:
        """Get the last persisted snapshot of an entity."""
        return self._snapshots.get((self.entity_type(entity), self.entity_id(entity)))

    def saved_field(self, entity: Any, field: str) -> Any:
        """Get a field value from the last persisted snapshot."""
        snapshot = self.saved(entity)
        return None if snapshot is None else snapshot.get(field)

    @property
    def persist_count(self) -> int:
        return self._persist_count

    def tracks_history(self, entity: Any) -> bool:
        return self.entity_type(entity) not in self._untracked_types


class InMemoryHistoryStore(HistoryStore):
    """History store keeping records in per-entity lists.

    When an entity exceeds ``max_records`` the oldest record of that entity
    is dropped (FIFO). A store created with ``installed=False`` behaves like
    an unprovisioned backend and raises HistoryStoreUnavailableError.
    """

    def __init__(self, max_records: int = 1000, installed: bool = True) -> None:
        """Initialize InMemoryHistoryStore.

        Args:
            max_records: Maximum records kept per entity. Set to 0 or
                negative for unlimited storage.
            installed: Whether the store is provisioned.
        """
        self._records: dict[tuple[str, str | None], list[HistoryRecord]] = {}
        self._max_records = max_records if max_records > 0 else 0  # 0 means unlimited
        self._installed = installed
        self._write_lock = threading.Lock()

    def append(self, record: HistoryRecord) -> str:
        self._ensure_installed()
        try:
            with self._write_lock:
                bucket = self._records.setdefault((record.entity_type, record.entity_id), [])
                bucket.append(record)
                # Enforce max_records limit (FIFO removal)
                if self._max_records > 0 and len(bucket) > self._max_records:
                    bucket.pop(0)
        except Exception as e:
            raise HistoryStoreError(
                f"Failed to append history for {record.entity_type}:{record.entity_id}: {e}"
            ) from e
        return record.id

    def query(self, query: HistoryQuery) -> list[HistoryRecord]:
        self._ensure_installed()
        if query.entity_type is not None and (
            query.entity_id is not None or query.exact_entity_id
        ):
            candidates = list(self._records.get((query.entity_type, query.entity_id), []))
        else:
            candidates = [r for bucket in list(self._records.values()) for r in bucket]
        matches = [r for r in candidates if query.matches(r)]
        matches.sort(key=lambda r: r.created_at)
        return query.paginate(matches)

    def install(self) -> None:
        """Mark the store as provisioned."""
        self._installed = True

    def uninstall(self) -> None:
        """Mark the store as not provisioned."""
        self._installed = False

    def clear(self) -> None:
        """Remove every record."""
        with self._write_lock:
            self._records.clear()

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._records.values())

    def _ensure_installed(self) -> None:
        if not self._installed:
            raise HistoryStoreUnavailableError("In-memory history store is not installed")
