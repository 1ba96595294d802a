"""HistoryStore interface for the append-only transition audit trail.

Example:
    ```python
    from stateflow.infrastructure.state_store.memory_store import InMemoryHistoryStore

    store: HistoryStore = InMemoryHistoryStore()
    store.append(record)

    query = HistoryQuery(entity_type="Post", entity_id="42", to_state="published")
    published = store.query(query)
    ```
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from stateflow.domain.models.history_record import HistoryRecord


class HistoryQuery(BaseModel):
    """Query parameters for history store lookups.

    Every filter is optional; a query with no filters returns every record.
    A None entity_id means "any entity" unless exact_entity_id is set.
    Results are ordered by creation time, oldest first.
    """

    entity_type: str | None = Field(
        default=None,
        description="Filter by entity type",
    )
    entity_id: str | None = Field(
        default=None,
        description="Filter by entity identifier",
    )
    exact_entity_id: bool = Field(
        default=False,
        description="Match entity_id exactly, so None selects records without an identifier",
    )
    field: str | None = Field(
        default=None,
        description="Filter by state field",
    )
    from_state: str | None = Field(
        default=None,
        description="Filter by previous state",
    )
    to_state: str | None = Field(
        default=None,
        description="Filter by new state",
    )
    performer_id: str | None = Field(
        default=None,
        description="Filter by performer identifier",
    )
    transition_handler: str | None = Field(
        default=None,
        description="Filter by handler identifier",
    )
    created_from: datetime | None = Field(
        default=None,
        description="Start of creation time range",
    )
    created_to: datetime | None = Field(
        default=None,
        description="End of creation time range",
    )
    limit: int | None = Field(
        default=None,
        description="Maximum number of results to return",
        ge=1,
    )
    offset: int | None = Field(
        default=None,
        description="Number of results to skip",
        ge=0,
    )

    model_config = ConfigDict(
        frozen=True,
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    def matches(self, record: HistoryRecord) -> bool:
        """Check if a record satisfies every filter of this query."""
        checks = (
            (self.entity_type, record.entity_type),
            (self.entity_id, record.entity_id),
            (self.field, record.field),
            (self.from_state, record.from_state),
            (self.to_state, record.to_state),
            (self.performer_id, record.performer_id),
            (self.transition_handler, record.transition_handler),
        )
        if any(expected is not None and expected != actual for expected, actual in checks):
            return False
        if self.exact_entity_id and record.entity_id != self.entity_id:
            return False
        if self.created_from is not None and record.created_at < self.created_from:
            return False
        if self.created_to is not None and record.created_at > self.created_to:
            return False
        return True

    def paginate(self, records: list[HistoryRecord]) -> list[HistoryRecord]:
        """Apply offset and limit to an ordered result list."""
        start = self.offset or 0
        if self.limit is None:
            return records[start:]
        return records[start : start + self.limit]


class HistoryStore(ABC):
    """Abstract interface for history persistence.

    Implementations must be append-only: records are never updated or
    deleted by the engine. Stores that are not provisioned (no table, no
    connection configured) raise HistoryStoreUnavailableError so the
    recorder can skip recording instead of failing the transition.
    """

    @abstractmethod
    def append(self, record: HistoryRecord) -> str:
        """Append a record to the audit trail.

        Args:
            record: The HistoryRecord to store.

        Returns:
            The identifier of the stored record.

        Raises:
            HistoryStoreUnavailableError: If the store is not provisioned.
            HistoryStoreError: If the write fails.
        """
        pass

    @abstractmethod
    def query(self, query: HistoryQuery) -> list[HistoryRecord]:
        """Return records matching the query, oldest first.

        Raises:
            HistoryStoreUnavailableError: If the store is not provisioned.
            HistoryStoreError: If the read fails.
        """
        pass

    def for_entity(
        self,
        entity_type: str,
        entity_id: str | None,
        field: str | None = None,
    ) -> list[HistoryRecord]:
        """Return every record of one entity, optionally for one field.

        An entity_id of None selects only records of entities without an
        identifier.
        """
        return self.query(
            HistoryQuery(
                entity_type=entity_type,
                entity_id=entity_id,
                exact_entity_id=True,
                field=field,
            )
        )


class HistoryStoreError(Exception):
    """Raised when HistoryStore operations fail."""

    pass


class HistoryStoreUnavailableError(HistoryStoreError):
    """Raised when the history store is not installed or provisioned."""

    pass
