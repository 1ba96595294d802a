"""TransitionGraph component: state registry and legal transition topology."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from stateflow.domain.models.state_descriptor import StateDescriptor
from stateflow.domain.models.transition_error import (
    ConfigurationError,
    DuplicateStateError,
    NoStatesRegisteredError,
    UnknownStateError,
    UnregisteredStateError,
)

if TYPE_CHECKING:
    from stateflow.domain.components.transition_engine import TransitionHandler

logger = structlog.get_logger(__name__)


class TransitionGraph:
    """Registry of states and directed transitions for one entity field.

    The graph is built once at startup and treated as read-only afterwards;
    it is the single source of truth for which transitions are legal.

    Edges come from two sources. Edges declared on the graph with ``allow()``
    take precedence: when at least one is declared for a from-state, the
    successors listed on that state's descriptor are ignored. Otherwise the
    descriptor's ``transitions`` are used.

    Example:
        ```python
        graph = TransitionGraph(field="status")
        graph.state("draft", is_default=True)
        graph.state("review")
        graph.state("published", permitted_roles=["admin"])
        graph.allow("draft", "review")
        graph.allow("review", "published")
        graph.require("published", {"approved_by": "required|string"})
        ```
    """

    def __init__(self, field: str = "state", name: str | None = None) -> None:
        """Initialize TransitionGraph.

        Args:
            field: Name of the entity field constrained by this graph.
            name: Optional graph name used in error messages and logs.
        """
        if not field or not field.strip():
            raise ConfigurationError("Graph field cannot be empty", field="field")
        self.field = field.strip()
        self.name = name or self.field
        self._states: dict[str, StateDescriptor] = {}
        self._edges: dict[str, dict[str, TransitionHandler | None]] = {}
        self._entry_rules: dict[str, dict[str, Any]] = {}
        self._default: str | None = None

    # Registration

    def register(self, descriptor: StateDescriptor) -> StateDescriptor:
        """Register a state descriptor.

        Raises:
            DuplicateStateError: If a state with the same name exists.
            ConfigurationError: If a second default-flagged state is registered.
        """
        if descriptor.name in self._states:
            raise DuplicateStateError(descriptor.name)
        if descriptor.is_default:
            existing = next((s.name for s in self._states.values() if s.is_default), None)
            if existing is not None:
                raise ConfigurationError(
                    f"States '{existing}' and '{descriptor.name}' are both flagged "
                    "as default",
                    field="is_default",
                )
        self._states[descriptor.name] = descriptor
        return descriptor

    def state(self, name: str | Enum, **attributes: Any) -> StateDescriptor:
        """Create and register a descriptor in one call."""
        return self.register(StateDescriptor(name=_state_name(name), **attributes))

    def register_many(self, descriptors: Iterable[StateDescriptor]) -> None:
        """Register several descriptors in order."""
        for descriptor in descriptors:
            self.register(descriptor)

    def set_default(self, name: str | Enum) -> None:
        """Set the explicit default state.

        Raises:
            UnregisteredStateError: If the state is not registered.
        """
        state = _state_name(name)
        if state not in self._states:
            raise UnregisteredStateError(state, role="default")
        self._default = state

    def allow(
        self,
        from_state: str | Enum,
        to_state: str | Enum,
        handler: TransitionHandler | None = None,
    ) -> None:
        """Declare a directed transition edge.

        Re-declaring an existing edge replaces its handler.

        Raises:
            UnregisteredStateError: If either endpoint is not registered.
        """
        source = _state_name(from_state)
        target = _state_name(to_state)
        if source not in self._states:
            raise UnregisteredStateError(source, role="source")
        if target not in self._states:
            raise UnregisteredStateError(target, role="target")
        self._edges.setdefault(source, {})[target] = handler

    def allow_many(self, from_state: str | Enum, to_states: Iterable[str | Enum]) -> None:
        """Declare edges from one state to several targets."""
        for to_state in to_states:
            self.allow(from_state, to_state)

    def allow_from_list(self, transitions: Iterable[Any]) -> None:
        """Declare edges from a list of ``{"from": ..., "to": ...}`` mappings.

        Raises:
            ConfigurationError: If an entry is not a mapping with both keys.
        """
        for index, entry in enumerate(transitions):
            if not isinstance(entry, dict) or "from" not in entry or "to" not in entry:
                raise ConfigurationError(
                    f"Transition entry #{index} must be a mapping with 'from' and 'to'",
                    field="transitions",
                )
            targets = entry["to"]
            if isinstance(targets, (list, tuple)):
                self.allow_many(entry["from"], targets)
            else:
                self.allow(entry["from"], targets)

    def require(self, state: str | Enum, rules: dict[str, Any]) -> None:
        """Attach metadata validation rules required to enter a state."""
        name = _state_name(state)
        if name not in self._states:
            raise UnregisteredStateError(name, role="rules")
        self._entry_rules.setdefault(name, {}).update(rules)

    # Queries

    def allowed_transitions(self, from_state: str | Enum) -> list[str]:
        """Get the successor names of a state.

        Graph-declared edges win when any exist for ``from_state``; otherwise
        the descriptor-declared successors are returned.
        """
        source = _state_name(from_state)
        declared = self._edges.get(source)
        if declared:
            return list(declared)
        descriptor = self._states.get(source)
        if descriptor is None:
            return []
        return list(descriptor.transitions)

    def is_allowed(self, from_state: str | Enum, to_state: str | Enum) -> bool:
        """Check if the graph has an edge from ``from_state`` to ``to_state``."""
        return _state_name(to_state) in self.allowed_transitions(from_state)

    def handler_for(
        self, from_state: str | Enum, to_state: str | Enum
    ) -> TransitionHandler | None:
        """Get the custom handler bound to an edge, if any."""
        return self._edges.get(_state_name(from_state), {}).get(_state_name(to_state))

    def entry_rules(self, state: str | Enum) -> dict[str, Any]:
        """Get the validation rules required to enter a state."""
        return dict(self._entry_rules.get(_state_name(state), {}))

    def default_state(self) -> StateDescriptor:
        """Get the default state.

        The explicit default wins, then the first default-flagged descriptor,
        then the first registered state.

        Raises:
            NoStatesRegisteredError: If no state is registered.
        """
        if not self._states:
            raise NoStatesRegisteredError(self.name)
        if self._default is not None:
            return self._states[self._default]
        for descriptor in self._states.values():
            if descriptor.is_default:
                return descriptor
        return next(iter(self._states.values()))

    def resolve(self, state: str | Enum | StateDescriptor) -> StateDescriptor:
        """Resolve a name, enum member or descriptor to the registered descriptor.

        Raises:
            UnknownStateError: If the state is not registered.
        """
        name = state.name if isinstance(state, StateDescriptor) else _state_name(state)
        descriptor = self._states.get(name)
        if descriptor is None:
            raise UnknownStateError(name)
        return descriptor

    def get(self, name: str | Enum) -> StateDescriptor | None:
        """Get a descriptor by name, or None."""
        return self._states.get(_state_name(name))

    def validate(self) -> None:
        """Check that every descriptor-declared successor is registered.

        Raises:
            NoStatesRegisteredError: If the graph is empty.
            UnregisteredStateError: If a declared successor is not registered.
        """
        if not self._states:
            raise NoStatesRegisteredError(self.name)
        for descriptor in self._states.values():
            for target in descriptor.transitions:
                if target not in self._states:
                    raise UnregisteredStateError(target, role="target")
        logger.debug(
            "Transition graph validated",
            graph=self.name,
            states=len(self._states),
            edges=sum(len(targets) for targets in self._edges.values()),
        )

    @property
    def states(self) -> list[StateDescriptor]:
        """Registered descriptors in registration order."""
        return list(self._states.values())

    @property
    def state_names(self) -> list[str]:
        """Registered state names in registration order."""
        return list(self._states)

    def __contains__(self, state: object) -> bool:
        if isinstance(state, StateDescriptor):
            return state.name in self._states
        if isinstance(state, (str, Enum)):
            return _state_name(state) in self._states
        return False

    def __iter__(self) -> Iterator[StateDescriptor]:
        return iter(self._states.values())

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        return f"TransitionGraph(field={self.field!r}, states={self.state_names!r})"

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> TransitionGraph:
        """Build a graph from a declarative mapping.

        Expected keys: ``field``, ``name``, ``default``, ``states`` (list of
        names or descriptor mappings), ``transitions`` (list of from/to
        mappings, or a mapping from state to successor list) and ``rules``
        (state name to rule mapping).

        Raises:
            ConfigurationError: If the mapping is malformed.
        """
        if not isinstance(config, dict):
            raise ConfigurationError("Graph configuration must be a mapping")
        states = config.get("states")
        if not isinstance(states, list) or not states:
            raise ConfigurationError("At least one state is required", field="states")

        graph = cls(field=config.get("field", "state"), name=config.get("name"))
        for index, entry in enumerate(states):
            if isinstance(entry, str):
                graph.state(entry)
            elif isinstance(entry, dict):
                try:
                    graph.register(StateDescriptor(**entry))
                except ValueError as e:
                    raise ConfigurationError(
                        f"Invalid state #{index}: {e}", field="states"
                    ) from e
            else:
                raise ConfigurationError(
                    f"State #{index} must be a name or a mapping", field="states"
                )

        transitions = config.get("transitions") or []
        if isinstance(transitions, dict):
            for source, targets in transitions.items():
                graph.allow_many(source, targets if isinstance(targets, list) else [targets])
        elif isinstance(transitions, list):
            graph.allow_from_list(transitions)
        else:
            raise ConfigurationError(
                "Transitions must be a list or a mapping", field="transitions"
            )

        rules = config.get("rules") or {}
        if not isinstance(rules, dict):
            raise ConfigurationError("Rules must be a mapping", field="rules")
        for state, state_rules in rules.items():
            if not isinstance(state_rules, dict):
                raise ConfigurationError(
                    f"Rules for '{state}' must be a mapping", field="rules"
                )
            graph.require(state, state_rules)

        if config.get("default") is not None:
            graph.set_default(config["default"])

        graph.validate()
        return graph


def _state_name(state: str | Enum) -> str:
    if isinstance(state, Enum):
        return str(state.value)
    return str(state).strip()
