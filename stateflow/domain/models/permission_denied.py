"""PermissionDenied value object describing a rejected authorization."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PermissionDenied(BaseModel):
    """Why a permission checker rejected a transition."""

    actor_id: str | None = Field(default=None, description="Identifier of the denied actor")
    entity_type: str | None = Field(default=None, description="Type of the entity")
    entity_id: str | None = Field(default=None, description="Identifier of the entity")
    field: str | None = Field(default=None, description="State field")
    from_state: str = Field(..., description="Current state name")
    to_state: str = Field(..., description="Requested state name")
    reason: str = Field(..., description="Human-readable denial reason")
    checker: str = Field(..., description="Checker that produced the denial")

    model_config = ConfigDict(frozen=True)

    def description(self) -> str:
        """Get a human-readable description."""
        return (
            f"Transition from '{self.from_state}' to '{self.to_state}' denied: "
            f"{self.reason}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for logging."""
        return self.model_dump()
