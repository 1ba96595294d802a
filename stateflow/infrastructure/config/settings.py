"""Configuration settings using pydantic-settings."""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StateflowSettings(BaseSettings):
    """Configuration settings for stateflow.

    Settings can be loaded from environment variables or passed as a dictionary.
    Environment variables should be prefixed with 'STATEFLOW_' (e.g., STATEFLOW_HISTORY_ENABLED=false).

    Example:
        ```python
        # From environment variables
        settings = StateflowSettings()

        # From dictionary
        settings = StateflowSettings(permissions_enabled=False)

        # From environment with prefix
        # Set STATEFLOW_REDIS_URL=redis://localhost:6379/0
        settings = StateflowSettings()
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="STATEFLOW_",
        case_sensitive=False,
        extra="ignore",
    )

    # Graph configuration
    default_state_field: str = Field(
        default="state",
        description="Field name used when a graph does not name one",
    )
    apply_default_state: bool = Field(
        default=True,
        description="Treat an unset field as being in the graph's default state",
    )
    graph_file: str | None = Field(
        default=None,
        description="Path to a YAML or JSON graph definition",
    )

    # History configuration
    history_enabled: bool = Field(
        default=True,
        description="Record a history entry for every successful transition",
    )
    history_dispatch_events: bool = Field(
        default=False,
        description="Send a notification after each history record is persisted",
    )
    max_history_records: int = Field(
        default=1000,
        description="Maximum number of history records kept per entity",
        ge=1,
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis URL for the history store (in-memory when unset)",
    )
    history_key_prefix: str = Field(
        default="stateflow:history",
        description="Key prefix for history lists in Redis",
    )

    # Permission configuration
    permissions_enabled: bool = Field(
        default=True,
        description="Run the authorization stage of every transition",
    )
    role_attribute: str = Field(
        default="role",
        description="Actor attribute (or key) holding the actor's role(s)",
    )

    # Observability configuration
    events_enabled: bool = Field(
        default=True,
        description="Send lifecycle notifications",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (console renderer when False)",
    )

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "StateflowSettings":
        """Create settings from a dictionary.

        Args:
            config: Dictionary with configuration values.

        Returns:
            StateflowSettings instance.
        """
        return cls(**config)
