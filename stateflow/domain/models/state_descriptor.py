"""StateDescriptor data model for registered states."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StateDescriptor(BaseModel):
    """Describes one state a tracked field may hold.

    The ``name`` is the value persisted on the entity. Title, color, icon and
    description are inert UI metadata. ``permitted_roles`` and ``policy``
    govern who may transition INTO this state; ``transitions`` lists the
    successors declared on the state itself (used when the graph declares no
    edges for this state).

    Example:
        ```python
        draft = StateDescriptor(name="draft", is_default=True, transitions=("review",))
        published = StateDescriptor(name="published", permitted_roles=("admin",))
        ```
    """

    name: str = Field(
        ...,
        description="Stable state identifier stored on the entity",
        min_length=1,
    )
    title: str = Field(
        default="",
        description="Human-readable title for UI display",
    )
    color: str = Field(
        default="gray",
        description="UI color (opaque to the engine)",
    )
    icon: str | None = Field(
        default=None,
        description="Optional UI icon identifier",
    )
    description: str | None = Field(
        default=None,
        description="Optional human-readable description",
    )
    permitted_roles: tuple[str, ...] = Field(
        default=(),
        description="Roles allowed to transition into this state (empty = anyone)",
    )
    policy: str | None = Field(
        default=None,
        description="Name of a registered policy authorizing transitions into this state",
    )
    is_default: bool = Field(
        default=False,
        description="Whether this is the initial state for new entities",
    )
    transitions: tuple[str, ...] = Field(
        default=(),
        description="Successor state names declared on the state itself",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional free-form state metadata",
    )

    model_config = ConfigDict(
        frozen=True,  # Registered once, immutable thereafter
        str_strip_whitespace=True,
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate state name is non-empty."""
        if not v or not v.strip():
            raise ValueError("State name cannot be empty")
        return v.strip()

    @field_validator("permitted_roles", "transitions", mode="before")
    @classmethod
    def normalize_names(cls, v: Any) -> tuple[str, ...]:
        """Accept lists, single strings and enum members."""
        if v is None:
            return ()
        if isinstance(v, (str, Enum)):
            v = [v]
        return tuple(
            str(item.value) if isinstance(item, Enum) else str(item) for item in v
        )

    @model_validator(mode="before")
    @classmethod
    def derive_title(cls, data: Any) -> Any:
        """Derive the title from the name when none is given (in_review -> In Review)."""
        if isinstance(data, dict) and not data.get("title") and data.get("name"):
            data = {**data, "title": str(data["name"]).strip().replace("_", " ").title()}
        return data

    def to_resource(self) -> dict[str, Any]:
        """Convert to a UI resource dictionary."""
        return {
            "name": self.name,
            "title": self.title,
            "color": self.color,
            "icon": self.icon,
            "description": self.description,
        }

    def __str__(self) -> str:
        return self.name
