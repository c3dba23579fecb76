"""
Schema-driven validation of config documents.

This module validates decoded config trees against declarative YAML schemas:
- Closed schemas (unknown fields are rejected)
- Required and conditionally required fields
- Flexible typing for values that may arrive quoted
- Built-in validators for semantic types (timezone, hostname, url, ...)
- Remote validators (credentials, cloud resources) run concurrently after
  the structural pass, with every failure reported together
"""

from cfgcheck.validator.types import Severity, ValidationResult, ValidationTask
from cfgcheck.validator.errors import (
    CfgcheckError,
    DocumentError,
    FieldError,
    RemoteValidationError,
    SchemaError,
    UnknownValidatorError,
    ValidationSkipped,
    ValidatorFailed,
)
from cfgcheck.validator.rules import RuleNode, load_rules, parse_rules
from cfgcheck.validator.registry import ValidatorRegistry
from cfgcheck.validator.async_context import AsyncValidationContext
from cfgcheck.validator.schema import Schema
from cfgcheck.validator.remote import RemoteValidators
from cfgcheck.validator.core import (
    ValidationResults,
    build_registry,
    combined_error,
    ensure_valid,
    format_results,
    run_jobs,
    validate_config,
    validate_document,
)

__all__ = [
    # Core validation
    "validate_config",
    "validate_document",
    "ensure_valid",
    "run_jobs",
    "build_registry",
    "combined_error",
    "format_results",
    "ValidationResults",
    "ValidationResult",
    "ValidationTask",
    "Severity",
    # Schema
    "Schema",
    "RuleNode",
    "load_rules",
    "parse_rules",
    # Validators
    "ValidatorRegistry",
    "RemoteValidators",
    "AsyncValidationContext",
    # Errors
    "CfgcheckError",
    "DocumentError",
    "FieldError",
    "RemoteValidationError",
    "SchemaError",
    "UnknownValidatorError",
    "ValidationSkipped",
    "ValidatorFailed",
]
