"""
Rule tree for config schemas.

A schema document is a mapping from field name to rule, where each rule
may carry nested `properties` (objects) or an `items` rule (arrays).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from cfgcheck.validator.errors import SchemaError


RULE_KEYS = {
    "type",
    "required",
    "format",
    "min_length",
    "max_length",
    "not_equals",
    "required_with",
    "custom_validator",
    "properties",
    "items",
}


@dataclass(frozen=True)
class RuleNode:
    """
    Validation contract for a single field.

    Attributes:
        type: Semantic type tag (string, number, object, timezone, ...)
        required: Whether the field must be present
        format: String format refinement (email, hostname, url)
        min_length: Inclusive minimum string length (0 = unbounded)
        max_length: Inclusive maximum string length (0 = unbounded)
        not_equals: Forbidden literal value
        required_with: Sibling fields that make this field mandatory
        custom_validator: Name of a registered validator
        properties: Nested rules, only for type == object
        items: Rule applied to each element, only for type == array
    """
    type: str = ""
    required: bool = False
    format: str = ""
    min_length: int = 0
    max_length: int = 0
    not_equals: Any = None
    required_with: tuple[str, ...] = ()
    custom_validator: str = ""
    properties: dict[str, "RuleNode"] | None = field(default=None, hash=False)
    items: "RuleNode | None" = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "") -> "RuleNode":
        """Decode one rule mapping, recursing into properties and items."""
        where = path or "<root>"
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise SchemaError(f"rule for '{where}' must be a mapping, got {type(data).__name__}")

        unknown = set(data) - RULE_KEYS
        if unknown:
            raise SchemaError(f"rule for '{where}' has unknown keys: {', '.join(sorted(map(str, unknown)))}")

        required = data.get("required", False)
        if not isinstance(required, bool):
            raise SchemaError(f"rule for '{where}': 'required' must be a boolean")

        lengths = {}
        for key in ("min_length", "max_length"):
            n = data.get(key) or 0
            if isinstance(n, bool) or not isinstance(n, int) or n < 0:
                raise SchemaError(f"rule for '{where}': '{key}' must be a non-negative integer")
            lengths[key] = n

        required_with = data.get("required_with") or []
        if isinstance(required_with, str):
            required_with = [required_with]
        if not isinstance(required_with, list) or not all(isinstance(f, str) for f in required_with):
            raise SchemaError(f"rule for '{where}': 'required_with' must be a list of field names")

        properties = None
        if data.get("properties") is not None:
            properties = parse_rules(data["properties"], path)

        items = None
        if data.get("items") is not None:
            items = cls.from_dict(data["items"], f"{path}[]")

        return cls(
            type=_string_key(data, "type", where),
            required=required,
            format=_string_key(data, "format", where),
            min_length=lengths["min_length"],
            max_length=lengths["max_length"],
            not_equals=data.get("not_equals"),
            required_with=tuple(required_with),
            custom_validator=_string_key(data, "custom_validator", where),
            properties=properties,
            items=items,
        )


def _string_key(data: dict[str, Any], key: str, where: str) -> str:
    value = data.get(key) or ""
    if not isinstance(value, str):
        raise SchemaError(f"rule for '{where}': '{key}' must be a string")
    return value


def parse_rules(data: Any, path: str = "") -> dict[str, RuleNode]:
    """Decode a field-name -> rule mapping."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SchemaError(f"properties of '{path or '<root>'}' must be a mapping, got {type(data).__name__}")

    rules = {}
    for name, rule in data.items():
        name = str(name)
        rules[name] = RuleNode.from_dict(rule, f"{path}.{name}" if path else name)
    return rules


def load_rules(schema_path: Path) -> dict[str, RuleNode]:
    """
    Load a YAML schema file into a rule tree.

    Args:
        schema_path: Path to the schema document

    Returns:
        Mapping of top-level field name to RuleNode

    Raises:
        SchemaError: If the file cannot be read or decoded
    """
    try:
        with open(schema_path, "rb") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise SchemaError(f"failed to read schema file {schema_path}: {e}") from e
    except yaml.YAMLError as e:
        raise SchemaError(f"failed to parse schema file {schema_path}: {e}") from e

    return parse_rules(data)
