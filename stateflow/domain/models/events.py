"""Notification events emitted around a transition."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from stateflow.domain.models.history_record import HistoryRecord

if TYPE_CHECKING:
    from stateflow.domain.models.transition_context import TransitionContext


class TransitionEvent(BaseModel):
    """Common payload of every transition notification."""

    entity_type: str = Field(..., description="Type of entity")
    entity_id: str | None = Field(default=None, description="Entity identifier")
    field: str = Field(..., description="State field")
    from_state: str | None = Field(default=None, description="Current state name")
    to_state: str = Field(..., description="Target state name")
    performer_id: str | None = Field(default=None, description="Performer identifier")
    reason: str | None = Field(default=None, description="Transition reason")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Caller metadata")
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event was created",
    )

    model_config = ConfigDict(validate_assignment=True)

    @classmethod
    def from_context(cls, context: TransitionContext, **extra: Any) -> TransitionEvent:
        """Build the event from a transition context."""
        return cls(
            entity_type=context.entity_type,
            entity_id=context.entity_id,
            field=context.field,
            from_state=context.from_state,
            to_state=context.to_state,
            performer_id=context.performer_id,
            reason=context.reason,
            metadata=dict(context.metadata),
            **extra,
        )

    def summary(self) -> str:
        """Get a one-line summary for logs."""
        return (
            f"{self.entity_type}#{self.entity_id} {self.field}: "
            f"{self.from_state} -> {self.to_state}"
        )


class TransitioningEvent(TransitionEvent):
    """Sent before mutation; listeners may cancel the transition."""

    cancelled: bool = Field(default=False, description="Whether a listener cancelled")
    cancellation_reason: str | None = Field(default=None, description="Why it was cancelled")

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the transition."""
        self.cancelled = True
        self.cancellation_reason = reason

    @property
    def is_cancelled(self) -> bool:
        """Check if a listener cancelled the transition."""
        return self.cancelled


class TransitionedEvent(TransitionEvent):
    """Sent after a successful transition."""


class TransitionFailedEvent(TransitionEvent):
    """Sent when a transition attempt fails."""

    error: str = Field(..., description="Error message")
    error_kind: str | None = Field(default=None, description="Error kind identifier")


class HistoryRecordedEvent(BaseModel):
    """Sent after a history record was persisted (opt-in)."""

    record: HistoryRecord = Field(..., description="The persisted record")

    model_config = ConfigDict(frozen=True)
