"""Tests for graph definition file loader."""

import json
from pathlib import Path

import pytest
import yaml

from stateflow.domain.models.transition_error import (
    ConfigurationError,
    UnregisteredStateError,
)
from stateflow.infrastructure.config.file_loader import GraphFileLoader

GRAPH = {
    "field": "status",
    "default": "draft",
    "states": [
        "draft",
        {"name": "published", "permitted_roles": ["admin"]},
        {"name": "archived", "color": "grey"},
    ],
    "transitions": [
        {"from": "draft", "to": "published"},
        {"from": "published", "to": ["archived", "draft"]},
    ],
    "rules": {"published": {"approved_by": "required|string"}},
}


class TestGraphFileLoader:
    """Tests for GraphFileLoader."""

    def test_init_with_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test initialization with environment variable."""
        graph_file = tmp_path / "graph.yaml"
        graph_file.write_text(yaml.dump(GRAPH))

        monkeypatch.setenv("STATEFLOW_GRAPH_FILE", str(graph_file))
        assert GraphFileLoader().path == graph_file

    def test_init_no_path_no_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("STATEFLOW_GRAPH_FILE", raising=False)
        with pytest.raises(ConfigurationError, match="Graph file path not provided"):
            GraphFileLoader()

    def test_init_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Graph file not found"):
            GraphFileLoader(tmp_path / "missing.yaml")

    def test_load_yaml(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.yml"
        graph_file.write_text(yaml.dump(GRAPH))

        assert GraphFileLoader(graph_file).load() == GRAPH

    def test_load_json(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.json"
        graph_file.write_text(json.dumps(GRAPH))

        assert GraphFileLoader(str(graph_file)).load() == GRAPH

    def test_unsupported_format(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.toml"
        graph_file.write_text("states = []")

        with pytest.raises(ConfigurationError, match="Unsupported graph file format"):
            GraphFileLoader(graph_file).load()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.yaml"
        graph_file.write_text("states: [draft\n  - oops: {")

        with pytest.raises(ConfigurationError, match="Invalid YAML format"):
            GraphFileLoader(graph_file).load()

    def test_invalid_json(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.json"
        graph_file.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON format"):
            GraphFileLoader(graph_file).load()

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.yaml"
        graph_file.write_text("- draft\n- published\n")

        with pytest.raises(ConfigurationError, match="dictionary/mapping"):
            GraphFileLoader(graph_file).load()

    def test_states_required(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.yaml"
        graph_file.write_text("field: status\n")

        with pytest.raises(ConfigurationError) as exc_info:
            GraphFileLoader(graph_file).load()
        assert exc_info.value.field == "states"

    def test_transition_entries_need_both_endpoints(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.json"
        graph_file.write_text(json.dumps({"states": ["a", "b"], "transitions": [{"from": "a"}]}))

        with pytest.raises(ConfigurationError, match="missing required field 'to'"):
            GraphFileLoader(graph_file).load()

    def test_load_graph(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "post_status.yaml"
        graph_file.write_text(yaml.dump(GRAPH))

        graph = GraphFileLoader(graph_file).load_graph()

        assert graph.name == "post_status"
        assert graph.field == "status"
        assert graph.state_names == ["draft", "published", "archived"]
        assert graph.default_state().name == "draft"
        assert graph.allowed_transitions("published") == ["archived", "draft"]
        assert graph.get("published").permitted_roles == ("admin",)
        assert graph.entry_rules("published") == {"approved_by": "required|string"}

    def test_load_graph_field_fallback(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.yaml"
        graph_file.write_text(
            yaml.dump({"states": ["open", "closed"], "transitions": {"open": "closed"}})
        )

        graph = GraphFileLoader(graph_file).load_graph(field="phase")

        assert graph.field == "phase"
        assert graph.is_allowed("open", "closed")

    def test_load_graph_with_unregistered_endpoint(self, tmp_path: Path) -> None:
        graph_file = tmp_path / "graph.yaml"
        graph_file.write_text(
            yaml.dump({"states": ["open"], "transitions": [{"from": "open", "to": "closed"}]})
        )

        with pytest.raises(UnregisteredStateError):
            GraphFileLoader(graph_file).load_graph()
