"""
Schema validation for config documents.

Walks a rule tree against a decoded config, stopping at the first
structural error. Remote validators are not run here; they are handed
to an AsyncValidationContext for the caller to wait on.
"""

import logging
from pathlib import Path
from typing import Any

from cfgcheck.validator.async_context import DEFAULT_MAX_WORKERS, AsyncValidationContext
from cfgcheck.validator.builtins import (
    SEMANTIC_TYPES,
    is_valid_email,
    is_valid_hostname,
    is_valid_url,
)
from cfgcheck.validator.errors import FieldError, UnknownValidatorError, ValidatorFailed
from cfgcheck.validator.registry import ValidatorRegistry
from cfgcheck.validator.rules import RuleNode, load_rules
from cfgcheck.validator.types import is_empty, value_type


# Declared type -> runtime type tags it accepts besides its own name
FLEXIBLE_TYPES: dict[str, set[str]] = {
    "number": {"string", "integer"},
    "integer": {"integer"},
    "float": {"string", "float"},
    "ansible_bool": {"string", "boolean"},
}
FLEXIBLE_TYPES.update({t: {"string"} for t in SEMANTIC_TYPES if t != "ansible_bool"})

FORMATS = {
    "email": (is_valid_email, "a valid email address"),
    "hostname": (is_valid_hostname, "a valid hostname"),
    "url": (is_valid_url, "a valid URL"),
}


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


class Schema:
    """
    A rule tree bound to a validator registry.

    The rule tree and registry are only read during validation, so one
    Schema can serve several concurrent runs; each run gets its own
    AsyncValidationContext.
    """

    def __init__(
        self,
        rules: dict[str, RuleNode],
        registry: ValidatorRegistry | None = None,
        logger: logging.Logger | None = None,
    ):
        self.rules = rules
        self.registry = registry if registry is not None else ValidatorRegistry.with_builtins()
        self.log = logger or logging.getLogger(__name__)

    @classmethod
    def load(
        cls,
        schema_path: Path,
        registry: ValidatorRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> "Schema":
        return cls(load_rules(schema_path), registry=registry, logger=logger)

    def validate(
        self,
        config: Any,
        offline: bool = False,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> AsyncValidationContext:
        """
        Run the synchronous pass over a decoded config.

        Args:
            config: Decoded config document (must be a mapping)
            offline: Do not schedule remote validators; run their
                synchronous counterparts inline where registered
            max_workers: Concurrency bound for the returned context

        Returns:
            Context holding the deferred remote checks (possibly none)

        Raises:
            FieldError: On the first structural error found
        """
        ctx = AsyncValidationContext(self.registry, max_workers=max_workers, logger=self.log)
        self._check_root(config)
        self.log.debug("Validating config with top-level keys: %s", list(config))
        self._validate_object(config, self.rules, "", ctx, offline)
        self.log.debug("Synchronous pass complete, %d remote task(s) deferred", len(ctx.tasks))
        return ctx

    def validate_structure(self, config: Any) -> None:
        """Check only unknown and missing required fields, recursing into objects."""
        self._check_root(config)
        self._validate_structure(config, self.rules, "")

    def _check_root(self, config: Any) -> None:
        if not isinstance(config, dict):
            raise FieldError("", f"config root must be an object, got '{value_type(config)}'")

    def _validate_structure(self, obj: dict[str, Any], rules: dict[str, RuleNode], path: str) -> None:
        self._reject_unknown(obj, rules, path)
        for name, rule in rules.items():
            field_path = _join(path, name)
            if name not in obj:
                if rule.required:
                    raise FieldError(field_path, f"field '{field_path}' is required")
                continue
            value = obj[name]
            if rule.type == "object" and rule.properties is not None and isinstance(value, dict):
                self._validate_structure(value, rule.properties, field_path)

    def _reject_unknown(self, obj: dict[str, Any], rules: dict[str, RuleNode], path: str) -> None:
        for name in obj:
            if name not in rules:
                field_path = _join(path, str(name))
                raise FieldError(field_path, f"unknown field '{field_path}'")

    def _validate_object(
        self,
        obj: dict[str, Any],
        rules: dict[str, RuleNode],
        path: str,
        ctx: AsyncValidationContext,
        offline: bool,
    ) -> None:
        self._reject_unknown(obj, rules, path)

        for name, rule in rules.items():
            field_path = _join(path, name)
            if name not in obj:
                self.log.debug("Field '%s' absent (required=%s)", field_path, rule.required)
                if rule.required:
                    raise FieldError(field_path, f"field '{field_path}' is required")
                self._check_required_with(None, rule, field_path, obj)
                continue
            self._validate_field(obj[name], rule, field_path, obj, ctx, offline)

    def _validate_field(
        self,
        value: Any,
        rule: RuleNode,
        path: str,
        parent: dict[str, Any],
        ctx: AsyncValidationContext,
        offline: bool,
    ) -> None:
        self.log.debug("Checking field '%s' (type=%s, value type=%s)", path, rule.type or "-", value_type(value))

        # An optional field may be present but blank
        blank = not rule.required and is_empty(value)

        if not blank:
            self._check_type(value, rule, path)
            self._check_format(value, rule, path)
            self._check_length(value, rule, path)
        self._check_not_equals(value, rule, path)
        self._check_required_with(value, rule, path, parent)

        builtin = SEMANTIC_TYPES.get(rule.type)
        if builtin and blank:
            self.log.debug("Skipping built-in validator for blank optional field '%s'", path)
        elif builtin:
            validator = self.registry.sync_validator(builtin)
            if validator is None:
                raise UnknownValidatorError(path, f"unknown built-in validator '{builtin}' for field '{path}'")
            self._run_validator(validator, value, parent, path)

        if rule.custom_validator:
            self._dispatch_custom(value, rule.custom_validator, path, parent, ctx, offline)

        if rule.type == "object" and rule.properties is not None and isinstance(value, dict):
            self._validate_object(value, rule.properties, path, ctx, offline)

        if rule.type == "array" and rule.items is not None and isinstance(value, (list, tuple)):
            for i, item in enumerate(value):
                self._validate_field(item, rule.items, f"{path}[{i}]", parent, ctx, offline)

    def _dispatch_custom(
        self,
        value: Any,
        name: str,
        path: str,
        parent: dict[str, Any],
        ctx: AsyncValidationContext,
        offline: bool,
    ) -> None:
        if self.registry.is_remote(name) and not offline:
            ctx.add_task(path, name, value, parent)
            return

        validator = self.registry.sync_validator(name)
        if validator is not None:
            self.log.debug("Running validator '%s' for field '%s'", name, path)
            self._run_validator(validator, value, parent, path)
        elif self.registry.is_remote(name):
            self.log.debug("Offline: skipping remote validator '%s' for field '%s'", name, path)
        else:
            raise UnknownValidatorError(path, f"unknown custom validator '{name}' for field '{path}'")

    def _run_validator(self, validator, value: Any, parent: dict[str, Any], path: str) -> None:
        try:
            validator(value, parent)
        except ValidatorFailed as e:
            raise FieldError(path, f"field '{path}': {e}") from e

    def _check_type(self, value: Any, rule: RuleNode, path: str) -> None:
        if not rule.type:
            return

        actual = value_type(value)
        accepted = FLEXIBLE_TYPES.get(rule.type, {rule.type})
        if actual not in accepted:
            raise FieldError(path, f"field '{path}' must be of type '{rule.type}', got '{actual}'")

    def _check_format(self, value: Any, rule: RuleNode, path: str) -> None:
        if not rule.format or not isinstance(value, str):
            return

        if rule.format not in FORMATS:
            raise FieldError(path, f"unknown format '{rule.format}' for field '{path}'")
        check, description = FORMATS[rule.format]
        if not check(value):
            raise FieldError(path, f"field '{path}' must be {description}")

    def _check_length(self, value: Any, rule: RuleNode, path: str) -> None:
        if not isinstance(value, str):
            return

        length = len(value)
        if rule.min_length and length < rule.min_length:
            raise FieldError(path, f"field '{path}' must be at least {rule.min_length} characters long, got {length}")
        if rule.max_length and length > rule.max_length:
            raise FieldError(path, f"field '{path}' must be at most {rule.max_length} characters long, got {length}")

    def _check_not_equals(self, value: Any, rule: RuleNode, path: str) -> None:
        if rule.not_equals is None:
            return
        if deep_equal(value, rule.not_equals):
            raise FieldError(path, f"field '{path}' must not equal the default value: {rule.not_equals}")

    def _check_required_with(self, value: Any, rule: RuleNode, path: str, parent: dict[str, Any]) -> None:
        if not rule.required_with:
            return

        triggered = any(
            name in parent and not is_empty(parent[name])
            for name in rule.required_with
        )
        if triggered and is_empty(value):
            fields = " ".join(rule.required_with)
            raise FieldError(path, f"field '{path}' is required when any of [{fields}] are present")


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality that, unlike ==, does not equate True with 1 or 1 with 1.0."""
    if value_type(a) != value_type(b):
        return False
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(deep_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    return a == b
