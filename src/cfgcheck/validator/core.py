"""
Core validation pipeline: schema pass, remote checks, and result aggregation.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from cfgcheck.config.settings import Settings, ValidationJob
from cfgcheck.validator.errors import (
    DocumentError,
    FieldError,
    RemoteValidationError,
    SchemaError,
    UnknownValidatorError,
)
from cfgcheck.validator.loader import load_document
from cfgcheck.validator.registry import ValidatorRegistry
from cfgcheck.validator.remote import RemoteValidators
from cfgcheck.validator.schema import Schema
from cfgcheck.validator.types import Severity, ValidationResult


logger = logging.getLogger(__name__)


@dataclass
class ValidationResults:
    """Collection of validation results."""
    results: list[ValidationResult] = field(default_factory=list)
    config_path: Path | None = None

    @property
    def has_errors(self) -> bool:
        return any(r.severity == Severity.ERROR for r in self.results)

    @property
    def has_warnings(self) -> bool:
        return any(r.severity == Severity.WARNING for r in self.results)

    @property
    def errors(self) -> list[ValidationResult]:
        return [r for r in self.results if r.severity == Severity.ERROR]

    def add(self, result: ValidationResult) -> None:
        self.results.append(result)

    def add_success(self, check: str, message: str) -> None:
        self.add(ValidationResult(check=check, severity=Severity.SUCCESS, message=message))

    def add_warning(self, check: str, message: str, path: str | None = None, details: str | None = None) -> None:
        self.add(ValidationResult(check=check, severity=Severity.WARNING, message=message, path=path, details=details))

    def add_error(self, check: str, message: str, path: str | None = None, details: str | None = None) -> None:
        self.add(ValidationResult(check=check, severity=Severity.ERROR, message=message, path=path, details=details))


def build_registry(settings: Settings | None = None) -> ValidatorRegistry:
    """Registry with the built-in validators and the remote ones configured from settings."""
    settings = settings or Settings()
    registry = ValidatorRegistry.with_builtins()
    RemoteValidators(timeout=settings.timeout, rclone_user=settings.rclone_user).register(registry)
    return registry


def validate_document(
    schema: Schema,
    config: Any,
    offline: bool = False,
    max_workers: int = 8,
) -> ValidationResults:
    """
    Validate a decoded config against a schema.

    Runs the synchronous pass first. If it fails, its single error is the
    whole result and no remote check is started. Otherwise every deferred
    remote check runs, and all of their failures are reported together.

    Args:
        schema: Schema to validate against
        config: Decoded config document
        offline: Skip remote checks
        max_workers: Concurrency bound for remote checks

    Returns:
        ValidationResults with all check results
    """
    results = ValidationResults()
    start = time.monotonic()

    try:
        ctx = schema.validate(config, offline=offline, max_workers=max_workers)
    except UnknownValidatorError as e:
        results.add_error("unknown_validator", e.message, path=e.path)
        return results
    except FieldError as e:
        results.add_error("schema", e.message, path=e.path)
        return results

    logger.debug("Synchronous schema validation completed in %.3fs", time.monotonic() - start)
    results.add_success("schema", "Config matches schema")

    remote_errors = ctx.wait()
    for path, reason in ctx.skipped:
        results.add_warning("remote_skipped", f"{path}: validation skipped: {reason}", path=path)

    passed = len(ctx.tasks) - len(ctx.skipped)
    if remote_errors:
        combined = RemoteValidationError(remote_errors)
        for e in combined.errors:
            results.add_error("remote", f"{e.path}: {e.message}", path=e.path)
    elif passed:
        results.add_success("remote", f"{passed} remote check(s) passed")

    return results


def ensure_valid(
    schema: Schema,
    config: Any,
    offline: bool = False,
    max_workers: int = 8,
) -> list[tuple[str, str]]:
    """
    Exception-raising form of validate_document.

    Returns:
        Remote checks that were skipped, as (path, reason)

    Raises:
        FieldError: The first structural error (remote checks never start)
        RemoteValidationError: Every remote failure, combined
    """
    ctx = schema.validate(config, offline=offline, max_workers=max_workers)
    errors = ctx.wait()
    if errors:
        raise RemoteValidationError(errors)
    return ctx.skipped


def validate_config(
    config_path: Path,
    schema_path: Path,
    registry: ValidatorRegistry | None = None,
    offline: bool = False,
    max_workers: int = 8,
) -> ValidationResults:
    """
    Validate a config file against a schema file.

    Runs:
    1. Config file exists and decodes (YAML or TOML)
    2. Schema file exists and decodes
    3. Synchronous schema pass
    4. Remote checks

    Returns:
        ValidationResults with all check results
    """
    results = ValidationResults(config_path=config_path)

    if not config_path.exists():
        results.add_error("file_exists", f"Config file not found: {config_path}")
        return results

    try:
        config = load_document(config_path)
    except DocumentError as e:
        results.add_error("parse", str(e))
        return results

    if not schema_path.exists():
        results.add_error("schema_exists", f"Schema file not found: {schema_path}")
        return results

    try:
        schema = Schema.load(schema_path, registry=registry or build_registry())
    except SchemaError as e:
        results.add_error("schema_parse", str(e))
        return results

    document_results = validate_document(schema, config, offline=offline, max_workers=max_workers)
    results.results.extend(document_results.results)
    return results


def combined_error(results: ValidationResults) -> str | None:
    """All errors as one message: the single structural error, or every remote failure."""
    errors = results.errors
    if not errors:
        return None
    if all(r.check == "remote" for r in errors):
        return "\n".join(["remote validation failed:", *(f"  - {r.message}" for r in errors)])
    return "\n".join(r.message for r in errors)


def run_jobs(
    jobs: list[ValidationJob],
    registry: ValidatorRegistry,
    offline: bool = False,
    max_workers: int = 8,
) -> list[tuple[ValidationJob, ValidationResults]]:
    """
    Validate each job's config against its schema, in order.

    A missing optional config is skipped with an info result.
    """
    outcomes = []
    for job in jobs:
        if job.optional and not job.config.exists():
            results = ValidationResults(config_path=job.config)
            results.add(ValidationResult(
                check="file_exists",
                severity=Severity.INFO,
                message=f"{job.name} not found, skipping validation",
            ))
            outcomes.append((job, results))
            continue

        logger.debug("Validating %s against %s", job.config, job.schema)
        outcomes.append((job, validate_config(
            job.config,
            job.schema,
            registry=registry,
            offline=offline,
            max_workers=max_workers,
        )))
    return outcomes


def format_results(results: ValidationResults, console: Console) -> None:
    """Format validation results for display."""
    for r in results.results:
        if r.severity == Severity.SUCCESS:
            icon = "[green]✓[/green]"
        elif r.severity == Severity.WARNING:
            icon = "[yellow]⚠[/yellow]"
        elif r.severity == Severity.ERROR:
            icon = "[red]✗[/red]"
        else:
            icon = "[blue]ℹ[/blue]"

        console.print(f"{icon} {escape(r.message)}", highlight=False)

        if r.details:
            console.print(f"  [dim]{escape(r.details)}[/dim]")

    errors = sum(1 for r in results.results if r.severity == Severity.ERROR)
    warnings = sum(1 for r in results.results if r.severity == Severity.WARNING)

    if errors > 0:
        console.print(f"\n[red]{errors} error(s), {warnings} warning(s)[/red]")
    elif warnings > 0:
        console.print(f"\n[yellow]{warnings} warning(s)[/yellow]")
    else:
        console.print("\n[green]All checks passed[/green]")
