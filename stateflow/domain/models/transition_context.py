"""TransitionContext model tracking one in-flight transition attempt."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class TransitionContext(BaseModel):
    """Everything needed to execute and audit one transition attempt.

    Built by the engine once the endpoints are resolved, mutated only by the
    engine while the attempt runs (hook log, custom data) and discarded after
    the call returns or attached to the raised error for diagnostics. The
    entity is borrowed: the context never persists a copy of it.
    """

    entity: Any = Field(
        ...,
        description="The entity being transitioned (borrowed reference)",
        exclude=True,
    )
    entity_type: str = Field(
        ...,
        description="Entity type identifier",
    )
    entity_id: str | None = Field(
        default=None,
        description="Entity identifier",
    )
    field: str = Field(
        ...,
        description="Name of the state field being transitioned",
    )
    from_state: str = Field(
        ...,
        description="Resolved current state name",
    )
    to_state: str = Field(
        ...,
        description="Resolved target state name",
    )
    performer: Any = Field(
        default=None,
        description="Actor performing the transition (None = system)",
        exclude=True,
    )
    performer_id: str | None = Field(
        default=None,
        description="Identifier of the performer",
    )
    reason: str | None = Field(
        default=None,
        description="Human-readable reason for the transition",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Caller-supplied metadata",
    )
    initiated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the attempt started",
    )
    forced: bool = Field(
        default=False,
        description="Whether graph edges were bypassed",
    )
    silent: bool = Field(
        default=False,
        description="Whether notifications are suppressed",
    )
    transition_handler: str | None = Field(
        default=None,
        description="Identifier of the custom handler bound to this edge",
    )
    executed_hooks: list[str] = Field(
        default_factory=list,
        description="Ordered log of executed lifecycle phases",
    )

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
    )

    _custom_data: dict[str, Any] = PrivateAttr(default_factory=dict)

    def record_hook(self, hook_name: str) -> None:
        """Record that a lifecycle phase was executed."""
        self.executed_hooks.append(hook_name)

    def hook_was_executed(self, hook_name: str) -> bool:
        """Check if a lifecycle phase was executed."""
        return hook_name in self.executed_hooks

    def attach(self, key: str, value: Any) -> None:
        """Attach custom data for later hooks."""
        self._custom_data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get attached custom data."""
        return self._custom_data.get(key, default)

    def has(self, key: str) -> bool:
        """Check if custom data is attached under key."""
        return key in self._custom_data

    def all(self) -> dict[str, Any]:
        """Get all attached custom data."""
        return dict(self._custom_data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for logging/serialization."""
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "field": self.field,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "performer_id": self.performer_id,
            "reason": self.reason,
            "metadata": dict(self.metadata),
            "initiated_at": self.initiated_at.isoformat(),
            "forced": self.forced,
            "silent": self.silent,
            "transition_handler": self.transition_handler,
            "executed_hooks": list(self.executed_hooks),
        }
