"""TransitionResult data model describing the outcome of a transition."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from stateflow.domain.models.transition_error import StateflowError


class TransitionResult(BaseModel):
    """Outcome of one transition attempt.

    Immutable once constructed. On success ``metadata`` merges the caller's
    metadata with engine-added keys (reason, entity identity, performer,
    forced flag, handler). On failure ``error`` and ``error_kind`` describe
    what went wrong and ``errors`` carries field-level validation messages.

    Example:
        ```python
        result = engine.try_transition(post, "published")
        if result.failed:
            print(result.error, result.errors)
        ```
    """

    success: bool = Field(
        ...,
        description="Whether the transition succeeded",
    )
    from_state: str | None = Field(
        default=None,
        description="Previous state name",
    )
    to_state: str | None = Field(
        default=None,
        description="New (or requested) state name",
    )
    error: str | None = Field(
        default=None,
        description="Error message (on failure)",
    )
    error_kind: str | None = Field(
        default=None,
        description="Error kind identifier (on failure)",
    )
    errors: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Field-level validation messages (on validation failure)",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Merged caller and engine metadata",
    )
    noop: bool = Field(
        default=False,
        description="True when a same-state transition was accepted without changes",
    )

    model_config = ConfigDict(
        frozen=True,
    )

    @classmethod
    def succeeded_with(
        cls,
        from_state: str,
        to_state: str,
        metadata: dict[str, Any] | None = None,
    ) -> TransitionResult:
        """Create a successful result."""
        return cls(
            success=True,
            from_state=from_state,
            to_state=to_state,
            metadata=metadata or {},
        )

    @classmethod
    def noop_for(cls, state: str, metadata: dict[str, Any] | None = None) -> TransitionResult:
        """Create a successful no-op result for an accepted same-state transition."""
        return cls(
            success=True,
            from_state=state,
            to_state=state,
            metadata=metadata or {},
            noop=True,
        )

    @classmethod
    def failed_with(
        cls,
        error: str | StateflowError,
        from_state: str | None = None,
        to_state: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TransitionResult:
        """Create a failed result from a message or a stateflow error."""
        if isinstance(error, StateflowError):
            return cls(
                success=False,
                from_state=from_state or getattr(error, "from_state", None),
                to_state=to_state or getattr(error, "to_state", None),
                error=str(error),
                error_kind=error.kind.value,
                errors=getattr(error, "errors", {}),
                metadata=metadata or {},
            )
        return cls(
            success=False,
            from_state=from_state,
            to_state=to_state,
            error=error,
            metadata=metadata or {},
        )

    @property
    def succeeded(self) -> bool:
        """Check if transition succeeded."""
        return self.success

    @property
    def failed(self) -> bool:
        """Check if transition failed."""
        return not self.success
