"""
cfgcheck: Schema-driven validation for YAML and TOML config files.

Provides a closed-schema interpreter with flexible typing, built-in
semantic validators, and concurrent remote checks.
"""

__version__ = "0.1.0"

from cfgcheck.validator import Schema, ValidatorRegistry, validate_config, validate_document
from cfgcheck.config import Settings

__all__ = [
    "Schema",
    "ValidatorRegistry",
    "validate_config",
    "validate_document",
    "Settings",
]
