"""Permission checkers deciding who may perform a transition.

Every checker implements ``explain()``, returning a PermissionDenied when
the actor may not move the entity into the target state and None otherwise.
``can_transition()`` and ``denial_reason()`` are derived from it.

Example:
    ```python
    checker = DefaultPermissionChecker(
        role_checker=RoleBasedChecker(role_attribute="role"),
        policy_checker=PolicyBasedChecker(
            {"published": lambda entity, from_state, to_state, actor: actor.is_editor}
        ),
    )
    checker.can_transition(post, graph.resolve("review"), graph.resolve("published"), user)
    ```
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

from stateflow.domain.models.permission_denied import PermissionDenied
from stateflow.domain.models.state_descriptor import StateDescriptor

PolicyCallback = Callable[[Any, str, str, Any], bool]
"""Policy: ``(entity, from_state, to_state, actor) -> allowed``."""

StateRef = StateDescriptor | str


def actor_identifier(actor: Any) -> str | None:
    """Get a stable identifier for an actor (``id`` attribute or key)."""
    if actor is None:
        return None
    if isinstance(actor, (str, int)):
        return str(actor)
    if isinstance(actor, Mapping):
        value = actor.get("id")
    else:
        value = getattr(actor, "id", None)
    return None if value is None else str(value)


def actor_type(actor: Any) -> str | None:
    """Get the type name of an actor."""
    if actor is None:
        return None
    if isinstance(actor, Mapping) and "type" in actor:
        return str(actor["type"])
    return type(actor).__name__


def _name(state: StateRef) -> str:
    return state.name if isinstance(state, StateDescriptor) else str(state)


def _denied(
    checker: str, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any, reason: str
) -> PermissionDenied:
    entity_id = entity.get("id") if isinstance(entity, Mapping) else getattr(entity, "id", None)
    return PermissionDenied(
        actor_id=actor_identifier(actor),
        entity_type=type(entity).__name__,
        entity_id=None if entity_id is None else str(entity_id),
        from_state=_name(from_state),
        to_state=_name(to_state),
        reason=reason,
        checker=checker,
    )


class PermissionChecker(ABC):
    """Base class for permission checkers."""

    name = "permission"

    @abstractmethod
    def explain(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> PermissionDenied | None:
        """Explain why the transition is denied, or return None when allowed."""
        pass

    def can_transition(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> bool:
        """Check if the actor may perform the transition."""
        return self.explain(entity, from_state, to_state, actor) is None

    def denial_reason(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> str | None:
        """Get the human-readable denial reason, or None when allowed."""
        denial = self.explain(entity, from_state, to_state, actor)
        return denial.reason if denial is not None else None

    def actor_roles(self, actor: Any) -> list[str] | None:
        """Get the roles of an actor, when this checker knows about roles."""
        return None


class RoleBasedChecker(PermissionChecker):
    """Allows a transition when the actor holds a role permitted by the target.

    A target state with no ``permitted_roles`` is open to anyone, including
    a missing actor. Otherwise the actor's role (string, enum member or list
    of either) must intersect the permitted roles.
    """

    name = "role"

    def __init__(self, role_attribute: str = "role") -> None:
        self._role_attribute = role_attribute

    def actor_roles(self, actor: Any) -> list[str] | None:
        if actor is None:
            return None
        if isinstance(actor, Mapping):
            value = actor.get(self._role_attribute)
        else:
            value = getattr(actor, self._role_attribute, None)
        if value is None:
            return None
        if isinstance(value, (str, Enum)):
            value = [value]
        return [str(role.value) if isinstance(role, Enum) else str(role) for role in value]

    def explain(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> PermissionDenied | None:
        permitted = to_state.permitted_roles if isinstance(to_state, StateDescriptor) else ()
        if not permitted:
            return None
        required = ", ".join(permitted)
        if actor is None:
            return _denied(
                self.name, entity, from_state, to_state, actor,
                f"An actor with one of the roles [{required}] is required.",
            )
        roles = self.actor_roles(actor)
        if not roles:
            return _denied(
                self.name, entity, from_state, to_state, actor,
                f"Actor has no role; one of [{required}] is required.",
            )
        if set(roles) & set(permitted):
            return None
        return _denied(
            self.name, entity, from_state, to_state, actor,
            f"Role(s) [{', '.join(roles)}] may not enter '{_name(to_state)}'; "
            f"one of [{required}] is required.",
        )


class PolicyBasedChecker(PermissionChecker):
    """Delegates the decision to policy callbacks.

    A policy is looked up by the target descriptor's ``policy`` reference
    first, then by the target state name. When no policy applies the
    transition is allowed and ``decide()`` returns None.
    """

    name = "policy"

    def __init__(self, policies: Mapping[str, PolicyCallback] | None = None) -> None:
        self._policies: dict[str, PolicyCallback] = dict(policies or {})

    def register(self, name: str, callback: PolicyCallback) -> None:
        """Register a policy under a state name or policy reference."""
        self._policies[name] = callback

    def policy_for(self, to_state: StateRef) -> tuple[str, PolicyCallback] | None:
        """Get the policy name and callback applying to a target state."""
        if isinstance(to_state, StateDescriptor) and to_state.policy:
            callback = self._policies.get(to_state.policy)
            if callback is not None:
                return to_state.policy, callback
        name = _name(to_state)
        callback = self._policies.get(name)
        return (name, callback) if callback is not None else None

    def has_policy(self, to_state: StateRef) -> bool:
        """Check if a policy applies to a target state."""
        return self.policy_for(to_state) is not None

    def decide(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> bool | None:
        """Run the applicable policy; None when no policy applies."""
        policy = self.policy_for(to_state)
        if policy is None:
            return None
        _, callback = policy
        return bool(callback(entity, _name(from_state), _name(to_state), actor))

    def explain(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> PermissionDenied | None:
        decision = self.decide(entity, from_state, to_state, actor)
        if decision is None or decision:
            return None
        policy_name, _ = self.policy_for(to_state)  # type: ignore[misc]
        return _denied(
            self.name, entity, from_state, to_state, actor,
            f"Policy '{policy_name}' denied the transition.",
        )


class DefaultPermissionChecker(PermissionChecker):
    """Policy decisions take precedence over role checks.

    When a policy applies to the target state its result is final, even if
    the actor's role would (or would not) be permitted. Otherwise the role
    check decides.
    """

    name = "default"

    def __init__(
        self,
        role_checker: RoleBasedChecker | None = None,
        policy_checker: PolicyBasedChecker | None = None,
    ) -> None:
        self.role_checker = role_checker or RoleBasedChecker()
        self.policy_checker = policy_checker or PolicyBasedChecker()

    def actor_roles(self, actor: Any) -> list[str] | None:
        return self.role_checker.actor_roles(actor)

    def explain(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> PermissionDenied | None:
        if self.policy_checker.has_policy(to_state):
            return self.policy_checker.explain(entity, from_state, to_state, actor)
        return self.role_checker.explain(entity, from_state, to_state, actor)


class CompositeChecker(PermissionChecker):
    """Combines checkers with AND (``all``) or OR (``any``) semantics."""

    name = "composite"

    def __init__(self, checkers: Iterable[PermissionChecker], require_all: bool = True) -> None:
        self._checkers = list(checkers)
        self._require_all = require_all

    @classmethod
    def all(cls, checkers: Iterable[PermissionChecker]) -> CompositeChecker:
        """Allow only when every checker allows."""
        return cls(checkers, require_all=True)

    @classmethod
    def any(cls, checkers: Iterable[PermissionChecker]) -> CompositeChecker:
        """Allow when at least one checker allows."""
        return cls(checkers, require_all=False)

    def actor_roles(self, actor: Any) -> list[str] | None:
        for checker in self._checkers:
            roles = checker.actor_roles(actor)
            if roles is not None:
                return roles
        return None

    def explain(
        self, entity: Any, from_state: StateRef, to_state: StateRef, actor: Any
    ) -> PermissionDenied | None:
        denials: list[PermissionDenied] = []
        for checker in self._checkers:
            denial = checker.explain(entity, from_state, to_state, actor)
            if denial is None and not self._require_all:
                return None
            if denial is not None:
                if self._require_all:
                    return denial
                denials.append(denial)
        if self._require_all:
            return None
        if not denials:
            return _denied(
                self.name, entity, from_state, to_state, actor,
                "No permission checker allowed the transition.",
            )
        return _denied(
            self.name, entity, from_state, to_state, actor,
            " ".join(denial.reason for denial in denials),
        )
