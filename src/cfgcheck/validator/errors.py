"""
Exceptions raised while loading schemas and validating config documents.
"""


class CfgcheckError(Exception):
    """Base class for all cfgcheck errors."""


class SchemaError(CfgcheckError):
    """Schema document could not be read or decoded into rule nodes."""


class DocumentError(CfgcheckError):
    """Config document could not be read or decoded."""


class SettingsError(CfgcheckError):
    """Tool settings file is invalid."""


class FieldError(CfgcheckError):
    """
    A fatal, field-scoped validation error.

    Raised by the synchronous pass, which stops at the first one found.
    """

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path
        self.message = message


class UnknownValidatorError(FieldError):
    """A rule references a validator that is not registered."""


class ValidatorFailed(ValueError):
    """Raised by a validator function when the value is invalid."""


class ValidationSkipped(Exception):
    """Raised by a remote validator when a local prerequisite is missing."""


class RemoteValidationError(CfgcheckError):
    """All failures collected from the remote phase, reported together."""

    def __init__(self, errors: list[FieldError]):
        self.errors = sorted(errors, key=lambda e: e.path)
        lines = ["remote validation failed:"]
        lines.extend(f"  - {e.path}: {e.message}" for e in self.errors)
        super().__init__("\n".join(lines))
