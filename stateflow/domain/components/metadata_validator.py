"""MetadataValidator component for transition metadata rules."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from stateflow.domain.models.transition_error import ConfigurationError

RuleCallable = Callable[[str, Any, Mapping[str, Any]], str | None]
"""Custom rule: ``(key, value, metadata) -> error message or None``."""

RuleDefinition = str | RuleCallable | list[Any]
RuleSet = Mapping[str, RuleDefinition] | type[BaseModel]

_NAMED_RULES = frozenset(
    {
        "required",
        "nullable",
        "string",
        "integer",
        "numeric",
        "boolean",
        "list",
        "mapping",
        "min",
        "max",
        "in",
        "not_in",
    }
)


class MetadataValidator:
    """Validates transition metadata against rule sets.

    A rule set maps a metadata key to a rule definition. A definition is a
    pipe-delimited string of named rules (``"required|string|max:255"``), a
    callable, or a list mixing both. A pydantic model class may be given
    instead of a mapping and validates the whole metadata dict.

    Keys absent from the metadata skip their rules unless ``required`` is
    present. ``nullable`` lets an explicit None pass.

    Example:
        ```python
        validator = MetadataValidator()
        errors = validator.validate(
            {"priority": 7},
            {"approved_by": "required|string", "priority": "integer|max:5"},
        )
        # {"approved_by": ["The approved_by field is required."],
        #  "priority": ["The priority field must not be greater than 5."]}
        ```
    """

    def validate(self, metadata: Mapping[str, Any], rules: RuleSet) -> dict[str, list[str]]:
        """Validate metadata against one rule set.

        Returns:
            Mapping of metadata key to every error message raised for it.
            Empty when the metadata is valid.

        Raises:
            ConfigurationError: If a rule name is unknown or a definition is malformed.
        """
        if isinstance(rules, type) and issubclass(rules, BaseModel):
            return self._validate_schema(metadata, rules)

        errors: dict[str, list[str]] = {}
        for key, definition in rules.items():
            messages = self._validate_key(key, metadata, _parse_definition(key, definition))
            if messages:
                errors[key] = messages
        return errors

    def validate_all(
        self, metadata: Mapping[str, Any], rule_sets: list[RuleSet]
    ) -> dict[str, list[str]]:
        """Validate metadata against several rule sets and merge the errors."""
        merged: dict[str, list[str]] = {}
        for rules in rule_sets:
            for key, messages in self.validate(metadata, rules).items():
                bucket = merged.setdefault(key, [])
                bucket.extend(m for m in messages if m not in bucket)
        return merged

    def _validate_key(
        self,
        key: str,
        metadata: Mapping[str, Any],
        rules: list[tuple[str, str | None] | RuleCallable],
    ) -> list[str]:
        names = {rule[0] for rule in rules if isinstance(rule, tuple)}
        present = key in metadata
        value = metadata.get(key)

        if "required" in names and (not present or value is None or value == ""):
            return [f"The {key} field is required."]
        if not present:
            return []
        if value is None:
            if "nullable" in names:
                return []
            null_messages = [f"The {key} field must not be null."] if names else []
            for rule in rules:
                if not isinstance(rule, tuple):
                    message = rule(key, None, metadata)
                    if message:
                        null_messages.append(message)
            return null_messages

        messages: list[str] = []
        for rule in rules:
            if isinstance(rule, tuple):
                message = _check_named(key, value, rule[0], rule[1])
            else:
                message = rule(key, value, metadata)
            if message:
                messages.append(message)
        return messages

    def _validate_schema(
        self, metadata: Mapping[str, Any], model: type[BaseModel]
    ) -> dict[str, list[str]]:
        try:
            model.model_validate(dict(metadata))
        except ValidationError as e:
            errors: dict[str, list[str]] = {}
            for error in e.errors():
                key = str(error["loc"][0]) if error["loc"] else "__root__"
                errors.setdefault(key, []).append(error["msg"])
            return errors
        return {}


def _parse_definition(
    key: str, definition: RuleDefinition
) -> list[tuple[str, str | None] | RuleCallable]:
    if callable(definition):
        return [definition]
    if isinstance(definition, str):
        parts = [part.strip() for part in definition.split("|") if part.strip()]
    elif isinstance(definition, (list, tuple)):
        parsed: list[tuple[str, str | None] | RuleCallable] = []
        for item in definition:
            parsed.extend(_parse_definition(key, item))
        return parsed
    else:
        raise ConfigurationError(
            f"Rule for '{key}' must be a string, callable or list", field=key
        )

    rules: list[tuple[str, str | None] | RuleCallable] = []
    for part in parts:
        name, _, argument = part.partition(":")
        name = name.strip()
        if name not in _NAMED_RULES:
            raise ConfigurationError(f"Unknown validation rule '{name}'", field=key)
        if name in ("min", "max", "in", "not_in") and not argument:
            raise ConfigurationError(
                f"Validation rule '{name}' requires an argument", field=key
            )
        rules.append((name, argument or None))
    return rules


def _check_named(key: str, value: Any, name: str, argument: str | None) -> str | None:
    if name in ("required", "nullable"):
        return None
    if name == "string":
        return None if isinstance(value, str) else f"The {key} field must be a string."
    if name == "integer":
        ok = isinstance(value, int) and not isinstance(value, bool)
        return None if ok else f"The {key} field must be an integer."
    if name == "numeric":
        return None if _is_numeric(value) else f"The {key} field must be a number."
    if name == "boolean":
        return None if isinstance(value, bool) else f"The {key} field must be true or false."
    if name == "list":
        return None if isinstance(value, (list, tuple)) else f"The {key} field must be a list."
    if name == "mapping":
        return None if isinstance(value, Mapping) else f"The {key} field must be a mapping."
    if name in ("min", "max"):
        return _check_size(key, value, name, argument or "")
    options = [option.strip() for option in (argument or "").split(",")]
    if name == "in":
        return None if str(value) in options else f"The selected {key} is invalid."
    # not_in
    return f"The selected {key} is invalid." if str(value) in options else None


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _check_size(key: str, value: Any, name: str, argument: str) -> str | None:
    try:
        limit = float(argument)
    except ValueError as e:
        raise ConfigurationError(
            f"Validation rule '{name}' requires a numeric argument", field=key
        ) from e
    shown = int(limit) if limit.is_integer() else limit

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        size, unit = value, ""
    elif isinstance(value, str):
        size, unit = len(value), " characters"
    elif isinstance(value, (list, tuple, Mapping)):
        size, unit = len(value), " items"
    else:
        return None

    if name == "min" and size < limit:
        if unit:
            return f"The {key} field must be at least {shown}{unit}."
        return f"The {key} field must be at least {shown}."
    if name == "max" and size > limit:
        if unit:
            return f"The {key} field must not be greater than {shown}{unit}."
        return f"The {key} field must not be greater than {shown}."
    return None
