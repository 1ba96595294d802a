"""Graph definition file loader for YAML and JSON files."""

import json
import os
from pathlib import Path
from typing import Any

import yaml

from stateflow.domain.components.transition_graph import TransitionGraph
from stateflow.domain.models.transition_error import ConfigurationError


class GraphFileLoader:
    """Loads a transition graph definition from a YAML or JSON file.

    The file declares the state field, the states, the transitions and the
    per-state entry rules of one graph:

    ```yaml
    field: status
    default: draft
    states:
      - name: draft
      - name: published
        permitted_roles: [admin]
    transitions:
      - {from: draft, to: published}
    rules:
      published:
        approved_by: required|string
    ```
    """

    def __init__(self, graph_file_path: str | Path | None = None) -> None:
        """Initialize GraphFileLoader.

        Args:
            graph_file_path: Path to the graph file. If None, attempts to
                            load from STATEFLOW_GRAPH_FILE environment variable.
                            If not set, raises ConfigurationError.

        Raises:
            ConfigurationError: If graph_file_path is not provided and
                              STATEFLOW_GRAPH_FILE is not set, or the file
                              does not exist.
        """
        if graph_file_path is None:
            graph_file_path = os.getenv("STATEFLOW_GRAPH_FILE")
            if not graph_file_path:
                raise ConfigurationError(
                    "Graph file path not provided and STATEFLOW_GRAPH_FILE "
                    "environment variable is not set"
                )

        self._path = Path(graph_file_path)
        if not self._path.exists():
            raise ConfigurationError(f"Graph file not found: {self._path}")

        # Relative paths must stay inside the working directory
        try:
            self._path.resolve().relative_to(Path.cwd().resolve())
        except ValueError:
            if not self._path.is_absolute():
                raise ConfigurationError(
                    f"Graph file path must be within current directory or absolute: {self._path}"
                ) from None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        """Load the raw graph definition.

        Automatically detects file format (YAML or JSON) based on file extension.

        Returns:
            Dictionary with ``field``, ``default``, ``states``, ``transitions``
            and ``rules`` keys (as present in the file).

        Raises:
            ConfigurationError: If the format is unsupported or the file cannot be parsed.
        """
        suffix = self._path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            data = self._load_yaml()
        elif suffix == ".json":
            data = self._load_json()
        else:
            raise ConfigurationError(
                f"Unsupported graph file format: {suffix}. "
                "Supported formats: .yaml, .yml, .json"
            )
        self._check_structure(data)
        return data

    def load_graph(self, field: str | None = None) -> TransitionGraph:
        """Load the file and build a validated TransitionGraph.

        Args:
            field: Field name used when the file does not declare one.

        Raises:
            ConfigurationError: If the definition is invalid.
        """
        data = self.load()
        if field and not data.get("field"):
            data = {**data, "field": field}
        data.setdefault("name", self._path.stem)
        return TransitionGraph.from_dict(data)

    def _load_yaml(self) -> dict[str, Any]:
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
                if data is None:
                    return {}
                if not isinstance(data, dict):
                    raise ConfigurationError("YAML file must contain a dictionary/mapping")
                return data
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read graph file: {e}") from e

    def _load_json(self) -> dict[str, Any]:
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
                if not isinstance(data, dict):
                    raise ConfigurationError("JSON file must contain an object")
                return data
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read graph file: {e}") from e

    def _check_structure(self, data: dict[str, Any]) -> None:
        states = data.get("states")
        if not isinstance(states, list) or not states:
            raise ConfigurationError(
                "Graph file must declare a non-empty 'states' list", field="states"
            )
        for idx, state in enumerate(states):
            if isinstance(state, dict):
                if not isinstance(state.get("name"), str) or not state["name"].strip():
                    raise ConfigurationError(
                        f"State at index {idx} has invalid 'name' (must be non-empty string)",
                        field=f"states[{idx}].name",
                    )
            elif not isinstance(state, str):
                raise ConfigurationError(
                    f"State at index {idx} must be a name or a dictionary",
                    field=f"states[{idx}]",
                )

        transitions = data.get("transitions", [])
        if isinstance(transitions, list):
            for idx, entry in enumerate(transitions):
                if not isinstance(entry, dict):
                    raise ConfigurationError(
                        f"Transition at index {idx} must be a dictionary",
                        field=f"transitions[{idx}]",
                    )
                for key in ("from", "to"):
                    if key not in entry:
                        raise ConfigurationError(
                            f"Transition at index {idx} missing required field '{key}'",
                            field=f"transitions[{idx}].{key}",
                        )
        elif transitions is not None and not isinstance(transitions, dict):
            raise ConfigurationError(
                "Configuration 'transitions' must be a list or a mapping",
                field="transitions",
            )

        if "rules" in data and data["rules"] is not None and not isinstance(data["rules"], dict):
            raise ConfigurationError("Configuration 'rules' must be a mapping", field="rules")
