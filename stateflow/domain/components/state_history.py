"""StateHistory read model over the audit trail of one entity field."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime, timedelta
from typing import Any

from stateflow.domain.interfaces.history_store import HistoryStore
from stateflow.domain.models.history_record import HistoryRecord


class StateHistory:
    """Answers questions about the past states of one entity field.

    Records are read from the store on every call, oldest first, so the
    answers always reflect the latest appended transitions.

    Example:
        ```python
        history = flow.history(post)
        if history.was_ever_in_state("published"):
            print(history.last_transition().summary())
        ```
    """

    def __init__(
        self,
        history_store: HistoryStore,
        entity_type: str,
        entity_id: str | None,
        field: str | None = None,
    ) -> None:
        self._store = history_store
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.field = field

    def records(self) -> list[HistoryRecord]:
        """All records, oldest first."""
        records = self._store.for_entity(self.entity_type, self.entity_id, self.field)
        return sorted(records, key=lambda record: record.created_at)

    def last_transition(self) -> HistoryRecord | None:
        records = self.records()
        return records[-1] if records else None

    def first_transition(self) -> HistoryRecord | None:
        records = self.records()
        return records[0] if records else None

    def recent(self, count: int = 10) -> list[HistoryRecord]:
        """The latest ``count`` records, newest first."""
        if count <= 0:
            return []
        return list(reversed(self.records()[-count:]))

    def count(self) -> int:
        return len(self.records())

    def was_ever_in_state(self, state: str) -> bool:
        """Check if the field ever held ``state`` (as source or target)."""
        return any(r.from_state == state or r.to_state == state for r in self.records())

    def has_transitioned(self, from_state: str, to_state: str) -> bool:
        """Check if the exact transition ``from_state -> to_state`` happened."""
        return any(
            r.from_state == from_state and r.to_state == to_state for r in self.records()
        )

    def transitions_to(self, state: str) -> list[HistoryRecord]:
        return [r for r in self.records() if r.to_state == state]

    def transitions_from(self, state: str) -> list[HistoryRecord]:
        return [r for r in self.records() if r.from_state == state]

    def by_performer(self, performer_id: str | int) -> list[HistoryRecord]:
        return [r for r in self.records() if r.was_performed_by(performer_id)]

    def timeline(self) -> list[dict[str, Any]]:
        """Compact dictionaries of every record, oldest first."""
        return [r.to_summary_dict() for r in self.records()]

    def unique_states(self) -> list[str]:
        """Every state the field has held, in order of first appearance."""
        seen: dict[str, None] = {}
        for record in self.records():
            seen.setdefault(record.from_state, None)
            seen.setdefault(record.to_state, None)
        return list(seen)

    def counts_by_state(self) -> dict[str, int]:
        """How many times each state was entered."""
        return dict(Counter(r.to_state for r in self.records()))

    def has_automated_transitions(self) -> bool:
        return any(r.is_automated for r in self.records())

    def current_state_entered_at(self) -> datetime | None:
        """When the latest transition happened."""
        last = self.last_transition()
        return last.created_at if last else None

    def time_in_current_state(self, now: datetime | None = None) -> timedelta | None:
        """How long the field has held its current state."""
        entered_at = self.current_state_entered_at()
        if entered_at is None:
            return None
        return (now or datetime.now(UTC)) - entered_at
