"""Domain components."""

from stateflow.domain.components.history_recorder import HistoryRecorder
from stateflow.domain.components.metadata_validator import MetadataValidator
from stateflow.domain.components.permissions import (
    CompositeChecker,
    DefaultPermissionChecker,
    PermissionChecker,
    PolicyBasedChecker,
    RoleBasedChecker,
)
from stateflow.domain.components.state_history import StateHistory
from stateflow.domain.components.transition_engine import (
    TransitionEngine,
    TransitionHandler,
    TransitionHooks,
)
from stateflow.domain.components.transition_graph import TransitionGraph

__all__ = [
    "TransitionGraph",
    "TransitionEngine",
    "TransitionHooks",
    "TransitionHandler",
    "MetadataValidator",
    "HistoryRecorder",
    "StateHistory",
    "PermissionChecker",
    "RoleBasedChecker",
    "PolicyBasedChecker",
    "DefaultPermissionChecker",
    "CompositeChecker",
]
