"""Domain models for stateflow."""

from stateflow.domain.models.events import (
    HistoryRecordedEvent,
    TransitionedEvent,
    TransitionEvent,
    TransitionFailedEvent,
    TransitioningEvent,
)
from stateflow.domain.models.history_record import HistoryRecord
from stateflow.domain.models.permission_denied import PermissionDenied
from stateflow.domain.models.state_descriptor import StateDescriptor
from stateflow.domain.models.transition_context import TransitionContext
from stateflow.domain.models.transition_error import (
    AbortedByHookError,
    AlreadyInStateError,
    CancelledByListenerError,
    ConfigurationError,
    DuplicateStateError,
    NoStatesRegisteredError,
    NullCurrentStateError,
    StateflowError,
    TransitionError,
    TransitionErrorKind,
    TransitionNotAllowedError,
    UnauthorizedError,
    UnknownStateError,
    UnregisteredStateError,
    ValidationFailedError,
)
from stateflow.domain.models.transition_result import TransitionResult

__all__ = [
    "StateDescriptor",
    "TransitionContext",
    "TransitionResult",
    "HistoryRecord",
    "PermissionDenied",
    "TransitionEvent",
    "TransitioningEvent",
    "TransitionedEvent",
    "TransitionFailedEvent",
    "HistoryRecordedEvent",
    "TransitionErrorKind",
    "StateflowError",
    "ConfigurationError",
    "DuplicateStateError",
    "NoStatesRegisteredError",
    "UnknownStateError",
    "UnregisteredStateError",
    "TransitionError",
    "NullCurrentStateError",
    "TransitionNotAllowedError",
    "AlreadyInStateError",
    "ValidationFailedError",
    "UnauthorizedError",
    "AbortedByHookError",
    "CancelledByListenerError",
]
