"""Tests for permission checkers."""

from enum import Enum

from stateflow.domain.components.permissions import (
    CompositeChecker,
    DefaultPermissionChecker,
    PolicyBasedChecker,
    RoleBasedChecker,
    actor_identifier,
    actor_type,
)
from stateflow.domain.models.state_descriptor import StateDescriptor


class Role(Enum):
    ADMIN = "admin"


class Actor:
    def __init__(self, id, role=None, is_editor=False):
        self.id = id
        self.role = role
        self.is_editor = is_editor


REVIEW = StateDescriptor(name="review")
PUBLISHED = StateDescriptor(name="published", permitted_roles=["admin"])
ARCHIVED = StateDescriptor(name="archived", policy="can_archive")
ENTITY = {"id": 1}


class TestActorHelpers:
    def test_actor_identifier(self) -> None:
        assert actor_identifier(None) is None
        assert actor_identifier(5) == "5"
        assert actor_identifier("u-1") == "u-1"
        assert actor_identifier({"id": 9}) == "9"
        assert actor_identifier(Actor(3)) == "3"
        assert actor_identifier(object()) is None

    def test_actor_type(self) -> None:
        assert actor_type(None) is None
        assert actor_type(Actor(1)) == "Actor"
        assert actor_type({"id": 1, "type": "ServiceAccount"}) == "ServiceAccount"


class TestRoleBasedChecker:
    """Tests for RoleBasedChecker."""

    def setup_method(self) -> None:
        self.checker = RoleBasedChecker()

    def test_state_without_roles_is_open(self) -> None:
        assert self.checker.can_transition(ENTITY, "draft", REVIEW, None)
        assert self.checker.can_transition(ENTITY, "draft", REVIEW, Actor(1, "viewer"))

    def test_permitted_role_allowed(self) -> None:
        assert self.checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1, "admin"))

    def test_other_role_denied(self) -> None:
        actor = Actor(1, "viewer")

        assert not self.checker.can_transition(ENTITY, REVIEW, PUBLISHED, actor)
        denial = self.checker.explain(ENTITY, REVIEW, PUBLISHED, actor)
        assert denial is not None
        assert denial.checker == "role"
        assert denial.actor_id == "1"
        assert denial.from_state == "review"
        assert denial.to_state == "published"
        assert "viewer" in denial.reason

    def test_missing_actor_denied(self) -> None:
        reason = self.checker.denial_reason(ENTITY, REVIEW, PUBLISHED, None)
        assert reason is not None
        assert "admin" in reason

    def test_actor_without_role_denied(self) -> None:
        assert not self.checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1))

    def test_role_list_and_enum(self) -> None:
        assert self.checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1, ["editor", "admin"]))
        assert self.checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1, Role.ADMIN))

    def test_mapping_actor(self) -> None:
        assert self.checker.can_transition(ENTITY, REVIEW, PUBLISHED, {"id": 1, "role": "admin"})

    def test_custom_role_attribute(self) -> None:
        checker = RoleBasedChecker(role_attribute="group")
        assert checker.actor_roles({"group": "admin"}) == ["admin"]
        assert checker.can_transition(ENTITY, REVIEW, PUBLISHED, {"group": "admin"})

    def test_plain_state_name_has_no_roles(self) -> None:
        assert self.checker.can_transition(ENTITY, "review", "published", None)


class TestPolicyBasedChecker:
    """Tests for PolicyBasedChecker."""

    def test_no_policy_allows(self) -> None:
        checker = PolicyBasedChecker()

        assert checker.decide(ENTITY, REVIEW, PUBLISHED, None) is None
        assert checker.can_transition(ENTITY, REVIEW, PUBLISHED, None)

    def test_policy_by_state_name(self) -> None:
        checker = PolicyBasedChecker(
            {"published": lambda entity, from_state, to_state, actor: actor.is_editor}
        )

        assert checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1, is_editor=True))
        denial = checker.explain(ENTITY, REVIEW, PUBLISHED, Actor(1))
        assert denial is not None
        assert denial.checker == "policy"
        assert "published" in denial.reason

    def test_policy_by_descriptor_reference(self) -> None:
        checker = PolicyBasedChecker()
        checker.register("can_archive", lambda entity, f, t, actor: actor is not None)

        assert checker.has_policy(ARCHIVED)
        assert checker.can_transition(ENTITY, "published", ARCHIVED, Actor(1))
        assert not checker.can_transition(ENTITY, "published", ARCHIVED, None)

    def test_policy_receives_state_names(self) -> None:
        seen = []
        checker = PolicyBasedChecker(
            {"published": lambda entity, f, t, actor: seen.append((entity, f, t)) or True}
        )
        checker.can_transition(ENTITY, REVIEW, PUBLISHED, None)

        assert seen == [(ENTITY, "review", "published")]


class TestDefaultPermissionChecker:
    """Tests for policy precedence over roles."""

    def test_role_check_without_policy(self) -> None:
        checker = DefaultPermissionChecker()

        assert checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1, "admin"))
        assert not checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1, "viewer"))

    def test_policy_allows_despite_role(self) -> None:
        """Test that an allowing policy overrides a failing role check."""
        checker = DefaultPermissionChecker(
            policy_checker=PolicyBasedChecker({"published": lambda e, f, t, a: True})
        )
        assert checker.can_transition(ENTITY, REVIEW, PUBLISHED, Actor(1, "viewer"))

    def test_policy_denies_despite_role(self) -> None:
        """Test that a denying policy overrides a passing role check."""
        checker = DefaultPermissionChecker(
            policy_checker=PolicyBasedChecker({"published": lambda e, f, t, a: False})
        )
        denial = checker.explain(ENTITY, REVIEW, PUBLISHED, Actor(1, "admin"))

        assert denial is not None
        assert denial.checker == "policy"

    def test_actor_roles_delegate_to_role_checker(self) -> None:
        checker = DefaultPermissionChecker(role_checker=RoleBasedChecker("group"))
        assert checker.actor_roles({"group": ["a", "b"]}) == ["a", "b"]


class TestCompositeChecker:
    """Tests for AND/OR composition."""

    def setup_method(self) -> None:
        self.allow = PolicyBasedChecker({"published": lambda e, f, t, a: True})
        self.deny = PolicyBasedChecker({"published": lambda e, f, t, a: False})

    def test_all_requires_every_checker(self) -> None:
        assert CompositeChecker.all([self.allow, self.allow]).can_transition(
            ENTITY, REVIEW, PUBLISHED, None
        )
        assert not CompositeChecker.all([self.allow, self.deny]).can_transition(
            ENTITY, REVIEW, PUBLISHED, None
        )

    def test_any_requires_one_checker(self) -> None:
        assert CompositeChecker.any([self.deny, self.allow]).can_transition(
            ENTITY, REVIEW, PUBLISHED, None
        )
        denial = CompositeChecker.any([self.deny, self.deny]).explain(
            ENTITY, REVIEW, PUBLISHED, None
        )
        assert denial is not None
        assert denial.checker == "composite"

    def test_empty_composites(self) -> None:
        assert CompositeChecker.all([]).can_transition(ENTITY, REVIEW, PUBLISHED, None)
        assert not CompositeChecker.any([]).can_transition(ENTITY, REVIEW, PUBLISHED, None)
