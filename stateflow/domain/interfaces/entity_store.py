"""EntityStore interface for reading, mutating and persisting entity state.

The engine never talks to a database directly. It borrows an entity for one
call, reads and writes a single field through an EntityStore and asks the
store to persist the entity once the field is mutated.

Example:
    ```python
    from stateflow.domain.interfaces.entity_store import EntityStore

    class OrmEntityStore(EntityStore):
        def persist(self, entity):
            session.add(entity)
            session.commit()
    ```
"""

from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from typing import Any


class EntityStore(ABC):
    """Abstract interface for entity persistence.

    ``get_field`` and ``set_field`` work on plain objects (attribute access)
    and on mutable mappings (key access); implementations override them when
    the entity needs a different accessor. ``persist`` is the only abstract
    method: it must durably save the entity or raise EntityStoreError.
    """

    def get_field(self, entity: Any, field: str) -> str | None:
        """Read the current state value of a field.

        Args:
            entity: The entity to read from.
            field: Name of the state field.

        Returns:
            The raw stored value as a string, or None when the field is unset.
        """
        value = self.raw_field(entity, field)
        if value is None:
            return None
        # Enum-backed fields store their value
        return str(getattr(value, "value", value))

    def raw_field(self, entity: Any, field: str) -> Any:
        """Read a field exactly as the entity holds it, without conversion."""
        if isinstance(entity, MutableMapping):
            return entity.get(field)
        return getattr(entity, field, None)

    def set_field(self, entity: Any, field: str, value: Any) -> None:
        """Write a state value to a field in memory (no persistence)."""
        if isinstance(entity, MutableMapping):
            entity[field] = value
        else:
            setattr(entity, field, value)

    @abstractmethod
    def persist(self, entity: Any) -> None:
        """Durably save the entity.

        Args:
            entity: The entity to save.

        Raises:
            EntityStoreError: If the entity could not be saved.
        """
        pass

    def entity_type(self, entity: Any) -> str:
        """Get the entity type identifier recorded in history."""
        if isinstance(entity, MutableMapping) and "type" in entity:
            return str(entity["type"])
        return type(entity).__name__

    def entity_id(self, entity: Any) -> str | None:
        """Get the entity identifier recorded in history."""
        if isinstance(entity, MutableMapping):
            value = entity.get("id")
        else:
            value = getattr(entity, "id", None)
        return None if value is None else str(value)

    def tracks_history(self, entity: Any) -> bool:
        """Check if transitions of this entity should be recorded."""
        return True


class EntityStoreError(Exception):
    """Raised when EntityStore operations fail.

    Propagated unchanged by the engine. A failure while persisting restores
    the in-memory field before the error reaches the caller.
    """

    pass
