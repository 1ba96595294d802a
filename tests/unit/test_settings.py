"""Tests for StateflowSettings."""

import pytest
from pydantic import ValidationError

from stateflow.infrastructure.config.settings import StateflowSettings


class TestStateflowSettings:
    """Tests for StateflowSettings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings values."""
        for name in ("STATEFLOW_REDIS_URL", "STATEFLOW_PERMISSIONS_ENABLED", "STATEFLOW_GRAPH_FILE"):
            monkeypatch.delenv(name, raising=False)

        settings = StateflowSettings()

        assert settings.default_state_field == "state"
        assert settings.apply_default_state is True
        assert settings.history_enabled is True
        assert settings.history_dispatch_events is False
        assert settings.max_history_records == 1000
        assert settings.redis_url is None
        assert settings.permissions_enabled is True
        assert settings.role_attribute == "role"
        assert settings.events_enabled is True
        assert settings.log_level == "INFO"

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that STATEFLOW_ prefixed variables are loaded."""
        monkeypatch.setenv("STATEFLOW_PERMISSIONS_ENABLED", "false")
        monkeypatch.setenv("STATEFLOW_MAX_HISTORY_RECORDS", "50")
        monkeypatch.setenv("STATEFLOW_REDIS_URL", "redis://cache:6379/1")

        settings = StateflowSettings()

        assert settings.permissions_enabled is False
        assert settings.max_history_records == 50
        assert settings.redis_url == "redis://cache:6379/1"

    def test_from_dict(self) -> None:
        settings = StateflowSettings.from_dict(
            {"history_enabled": False, "role_attribute": "group", "unknown": 1}
        )

        assert settings.history_enabled is False
        assert settings.role_attribute == "group"

    def test_max_history_records_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            StateflowSettings(max_history_records=0)
