"""HistoryRecord data model for the transition audit trail."""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HistoryRecord(BaseModel):
    """Represents one completed transition for audit trail purposes.

    HistoryRecord is append-only: it is created by the HistoryRecorder right
    after a successful mutation and never updated or deleted by the engine.
    A missing performer means the transition was automated (system-driven).
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique record identifier",
    )
    entity_type: str = Field(
        ...,
        description="Type of entity (e.g., 'Post')",
        min_length=1,
    )
    entity_id: str | None = Field(
        default=None,
        description="Entity identifier",
    )
    field: str = Field(
        ...,
        description="State field that changed",
        min_length=1,
    )
    from_state: str = Field(
        ...,
        description="Previous state value",
    )
    to_state: str = Field(
        ...,
        description="New state value",
    )
    performer_id: str | None = Field(
        default=None,
        description="Identifier of the actor (None = automated)",
    )
    performer_type: str | None = Field(
        default=None,
        description="Type of the actor",
    )
    reason: str | None = Field(
        default=None,
        description="Reason given for the transition",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata snapshot at transition time",
    )
    transition_handler: str | None = Field(
        default=None,
        description="Identifier of the handler that executed the transition",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the transition was recorded",
    )

    model_config = ConfigDict(
        frozen=True,  # Immutable audit trail
        validate_assignment=True,
    )

    @property
    def is_automated(self) -> bool:
        """Check if no actor performed this transition."""
        return self.performer_id is None

    @property
    def is_manual(self) -> bool:
        """Check if an actor performed this transition."""
        return self.performer_id is not None

    def was_performed_by(self, performer_id: str | int) -> bool:
        """Check if the given actor performed this transition."""
        return self.performer_id is not None and self.performer_id == str(performer_id)

    def metadata_value(self, key: str, default: Any = None) -> Any:
        """Get a metadata value by key."""
        return self.metadata.get(key, default)

    def has_metadata(self, key: str) -> bool:
        """Check if a metadata key is present."""
        return key in self.metadata

    def summary(self) -> str:
        """Get a one-line human-readable summary."""
        by = f" by {self.performer_type or 'actor'} #{self.performer_id}" if self.is_manual else ""
        reason = f" ({self.reason})" if self.reason else ""
        return f"{self.field}: {self.from_state} -> {self.to_state}{by}{reason}"

    def to_summary_dict(self) -> dict[str, Any]:
        """Convert to a compact dictionary for listings."""
        return {
            "id": self.id,
            "field": self.field,
            "from": self.from_state,
            "to": self.to_state,
            "performer_id": self.performer_id,
            "reason": self.reason,
            "automated": self.is_automated,
            "created_at": self.created_at.isoformat(),
        }
