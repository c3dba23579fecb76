"""
Shared types for the validator module.

This module exists to avoid circular imports between core.py, schema.py
and async_context.py.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


# A validator takes (value, enclosing object) and raises ValidatorFailed
# when the value is invalid.
Validator = Callable[[Any, dict[str, Any]], None]


class Severity(Enum):
    """Severity level for validation results."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


@dataclass
class ValidationResult:
    """A single validation check result."""
    check: str
    severity: Severity
    message: str
    path: str | None = None
    details: str | None = None


@dataclass(frozen=True)
class ValidationTask:
    """A deferred remote check captured during the synchronous pass."""
    path: str
    validator: str
    value: Any
    parent: dict[str, Any]


def value_type(value: Any) -> str:
    """Return the runtime type tag of a decoded config value."""
    if value is None:
        return "null"
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def is_empty(value: Any) -> bool:
    """Null and the empty string count as empty."""
    return value is None or value == ""
