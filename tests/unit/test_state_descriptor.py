"""Tests for StateDescriptor data model."""

from enum import Enum

import pytest
from pydantic import ValidationError

from stateflow.domain.models.state_descriptor import StateDescriptor


class Role(Enum):
    ADMIN = "admin"
    EDITOR = "editor"


class TestStateDescriptor:
    """Tests for StateDescriptor model."""

    def test_minimal_descriptor_uses_defaults(self) -> None:
        """Test that a descriptor with only a name gets UI defaults."""
        descriptor = StateDescriptor(name="draft")

        assert descriptor.name == "draft"
        assert descriptor.title == "Draft"
        assert descriptor.color == "gray"
        assert descriptor.icon is None
        assert descriptor.permitted_roles == ()
        assert descriptor.transitions == ()
        assert descriptor.is_default is False

    def test_title_derived_from_snake_case_name(self) -> None:
        """Test that in_review becomes 'In Review'."""
        assert StateDescriptor(name="in_review").title == "In Review"

    def test_explicit_title_is_kept(self) -> None:
        """Test that an explicit title is not overwritten."""
        assert StateDescriptor(name="in_review", title="Under review").title == "Under review"

    def test_name_is_stripped(self) -> None:
        """Test that whitespace around the name is removed."""
        assert StateDescriptor(name="  draft  ").name == "draft"

    def test_empty_name_rejected(self) -> None:
        """Test that an empty or blank name is rejected."""
        with pytest.raises(ValidationError):
            StateDescriptor(name="")
        with pytest.raises(ValidationError):
            StateDescriptor(name="   ")

    def test_roles_accept_list_string_and_enum(self) -> None:
        """Test that permitted roles are normalized to a tuple of strings."""
        assert StateDescriptor(name="a", permitted_roles=["admin", "editor"]).permitted_roles == (
            "admin",
            "editor",
        )
        assert StateDescriptor(name="a", permitted_roles="admin").permitted_roles == ("admin",)
        assert StateDescriptor(
            name="a", permitted_roles=[Role.ADMIN, Role.EDITOR]
        ).permitted_roles == ("admin", "editor")

    def test_transitions_normalized(self) -> None:
        """Test that declared successors are normalized to a tuple."""
        descriptor = StateDescriptor(name="draft", transitions=["review", "cancelled"])
        assert descriptor.transitions == ("review", "cancelled")

    def test_descriptor_is_immutable(self) -> None:
        """Test that a registered descriptor cannot be changed."""
        descriptor = StateDescriptor(name="draft")
        with pytest.raises(ValidationError):
            descriptor.name = "other"  # type: ignore[misc]

    def test_to_resource(self) -> None:
        """Test that the UI resource only carries display attributes."""
        descriptor = StateDescriptor(
            name="published",
            color="green",
            icon="check",
            description="Visible to everyone",
            permitted_roles=["admin"],
        )

        assert descriptor.to_resource() == {
            "name": "published",
            "title": "Published",
            "color": "green",
            "icon": "check",
            "description": "Visible to everyone",
        }

    def test_str_is_name(self) -> None:
        """Test that str() returns the stored value."""
        assert str(StateDescriptor(name="draft")) == "draft"
