"""Error taxonomy for state configuration and transition failures."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stateflow.domain.models.permission_denied import PermissionDenied
    from stateflow.domain.models.transition_context import TransitionContext
    from stateflow.domain.models.transition_result import TransitionResult


class TransitionErrorKind(str, Enum):
    """Categories of stateflow errors."""

    ConfigurationError = "configuration_error"
    """Graph construction failed (unknown endpoint, duplicate state, empty graph)."""

    UnknownState = "unknown_state"
    """A state name is not present in the registry."""

    NullCurrentState = "null_current_state"
    """The entity has no current state and no default applies."""

    TransitionNotAllowed = "transition_not_allowed"
    """The graph has no edge for the requested pair."""

    AlreadyInState = "already_in_state"
    """Target equals current and same-state transitions are not allowed."""

    ValidationFailed = "validation_failed"
    """One or more metadata rules were violated."""

    Unauthorized = "unauthorized"
    """The permission checker denied the transition."""

    AbortedByHook = "aborted_by_hook"
    """A lifecycle hook vetoed the transition."""

    CancelledByListener = "cancelled_by_listener"
    """A notification listener cancelled the transition."""


class StateflowError(Exception):
    """Base error for every stateflow failure.

    Example:
        ```python
        raise StateflowError(
            kind=TransitionErrorKind.UnknownState,
            message="Unknown state: shipped",
            details={"state": "shipped"},
        )
        ```
    """

    default_kind: TransitionErrorKind = TransitionErrorKind.ConfigurationError

    def __init__(
        self,
        message: str,
        kind: TransitionErrorKind | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize StateflowError.

        Args:
            message: Human-readable error message.
            kind: Error kind (TransitionErrorKind enum or string). Defaults to
                the class default kind.
            details: Additional structured error details.
        """
        if kind is None:
            kind = self.default_kind
        self.kind = TransitionErrorKind(kind) if isinstance(kind, str) else kind
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        """String representation of the error."""
        return f"{type(self).__name__}(kind={self.kind.value}, message={self.message!r})"

    def __str__(self) -> str:
        """Human-readable error message."""
        return self.message


class ConfigurationError(StateflowError):
    """Raised when a graph or configuration file is malformed.

    Fatal at construction time; never raised while executing a transition.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error message.
            field: Optional configuration field that failed validation.
            details: Additional structured error details.
        """
        self.field = field
        # Explicit base call: UnregisteredStateError also mixes in UnknownStateError.
        StateflowError.__init__(
            self, message, TransitionErrorKind.ConfigurationError, details
        )

    def __str__(self) -> str:
        """Return error message with field name if available."""
        if self.field:
            return f"Configuration error in field '{self.field}': {self.message}"
        return self.message


class DuplicateStateError(ConfigurationError):
    """Raised when a state name is registered twice."""

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(
            f"State '{state}' is already registered.", details={"state": state}
        )


class NoStatesRegisteredError(ConfigurationError):
    """Raised when a default state is requested from an empty graph."""

    def __init__(self, graph: str = "graph") -> None:
        super().__init__(
            f"No states registered on '{graph}'. Register at least one state "
            "before resolving a default.",
            details={"graph": graph},
        )


class UnknownStateError(StateflowError):
    """Raised when a state name is not present in the registry."""

    default_kind = TransitionErrorKind.UnknownState

    def __init__(self, state: str, message: str | None = None) -> None:
        self.state = state
        super().__init__(
            message or f"Unknown state: {state}",
            TransitionErrorKind.UnknownState,
            {"state": state},
        )


class UnregisteredStateError(ConfigurationError, UnknownStateError):
    """Raised when a transition endpoint references an unregistered state.

    This is both an UnknownStateError (what went wrong) and a
    ConfigurationError (when it is detected: at graph construction).
    """

    def __init__(self, state: str, role: str = "endpoint") -> None:
        self.state = state
        ConfigurationError.__init__(
            self,
            f"Transition {role} '{state}' is not a registered state.",
            details={"state": state, "role": role},
        )


class TransitionError(StateflowError):
    """Base class for failures while executing a transition.

    Carries the transition endpoints, the context of the attempt (when one
    was built) and the failure result handed to ``on_failure`` hooks.
    """

    default_kind = TransitionErrorKind.TransitionNotAllowed

    def __init__(
        self,
        message: str,
        kind: TransitionErrorKind | str | None = None,
        from_state: str | None = None,
        to_state: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.context: TransitionContext | None = None
        self.result: TransitionResult | None = None
        super().__init__(message, kind, details)

    def with_context(self, context: TransitionContext | None) -> TransitionError:
        """Attach the transition context to this error."""
        self.context = context
        return self

    def with_result(self, result: TransitionResult) -> TransitionError:
        """Attach the failure result to this error."""
        self.result = result
        return self


class NullCurrentStateError(TransitionError):
    """Raised when the entity field is unset and no default applies."""

    default_kind = TransitionErrorKind.NullCurrentState

    def __init__(self, field: str, to_state: str | None = None) -> None:
        self.field = field
        super().__init__(
            f"Current state is null for field '{field}'.",
            TransitionErrorKind.NullCurrentState,
            to_state=to_state,
            details={"field": field},
        )


class TransitionNotAllowedError(TransitionError):
    """Raised when the graph has no edge from the current to the target state."""

    def __init__(self, from_state: str, to_state: str) -> None:
        super().__init__(
            f"Transition from '{from_state}' to '{to_state}' is not allowed.",
            TransitionErrorKind.TransitionNotAllowed,
            from_state=from_state,
            to_state=to_state,
        )


class AlreadyInStateError(TransitionError):
    """Raised when the target equals the current state."""

    default_kind = TransitionErrorKind.AlreadyInState

    def __init__(self, state: str) -> None:
        super().__init__(
            f"Entity is already in state '{state}'.",
            TransitionErrorKind.AlreadyInState,
            from_state=state,
            to_state=state,
        )


class ValidationFailedError(TransitionError):
    """Raised when metadata violates one or more validation rules.

    ``errors`` maps each metadata key to every message raised for it, ready to
    be displayed next to a form field.
    """

    default_kind = TransitionErrorKind.ValidationFailed

    def __init__(
        self,
        errors: dict[str, list[str]],
        from_state: str | None = None,
        to_state: str | None = None,
    ) -> None:
        self.errors = errors
        summary = ", ".join(
            f"{key}: {', '.join(messages)}" for key, messages in errors.items()
        )
        super().__init__(
            f"Transition validation failed: {summary}",
            TransitionErrorKind.ValidationFailed,
            from_state=from_state,
            to_state=to_state,
            details={"errors": errors},
        )


class UnauthorizedError(TransitionError):
    """Raised when the permission checker denies the transition."""

    default_kind = TransitionErrorKind.Unauthorized

    def __init__(
        self,
        performer: Any,
        to_state: str,
        from_state: str | None = None,
        denial: PermissionDenied | None = None,
    ) -> None:
        self.performer = performer
        self.denial = denial
        reason = denial.reason if denial is not None else "Permission denied."
        super().__init__(
            f"Not authorized to transition to '{to_state}': {reason}",
            TransitionErrorKind.Unauthorized,
            from_state=from_state,
            to_state=to_state,
            details={"reason": reason},
        )


class AbortedByHookError(TransitionError):
    """Raised when a lifecycle hook vetoes the transition."""

    default_kind = TransitionErrorKind.AbortedByHook

    def __init__(
        self,
        hook_name: str,
        reason: str | None = None,
        from_state: str | None = None,
        to_state: str | None = None,
    ) -> None:
        self.hook_name = hook_name
        self.reason = reason
        message = f"Transition was aborted by '{hook_name}' hook."
        if reason:
            message = f"{message} {reason}"
        super().__init__(
            message,
            TransitionErrorKind.AbortedByHook,
            from_state=from_state,
            to_state=to_state,
            details={"hook": hook_name, "reason": reason},
        )


class CancelledByListenerError(TransitionError):
    """Raised when a notification listener cancels the transition."""

    default_kind = TransitionErrorKind.CancelledByListener

    def __init__(
        self,
        reason: str | None = None,
        from_state: str | None = None,
        to_state: str | None = None,
    ) -> None:
        self.reason = reason or "Cancelled by listener"
        super().__init__(
            f"Transition was cancelled by event listener: {self.reason}",
            TransitionErrorKind.CancelledByListener,
            from_state=from_state,
            to_state=to_state,
            details={"reason": self.reason},
        )
