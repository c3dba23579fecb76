"""
cfgcheck CLI - Schema-driven validation for config files.

Commands:
    validate        Validate one config file against a schema
    validate-all    Validate every config/schema pair from settings
    validators      List registered validators
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

app = typer.Typer(
    name="cfgcheck",
    help="Schema-driven validation for config files",
    no_args_is_help=True,
)

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_settings(settings_path: Optional[Path]):
    from cfgcheck.config import Settings
    from cfgcheck.validator.errors import SettingsError

    try:
        return Settings.load(settings_path)
    except SettingsError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command()
def validate(
    config_path: Path = typer.Argument(..., help="Path to the config file (YAML or TOML)"),
    schema_path: Path = typer.Option(..., "--schema", "-s", help="Path to the YAML schema"),
    offline: bool = typer.Option(False, "--offline", help="Skip remote (network) checks"),
    strict: bool = typer.Option(False, "--strict", help="Fail on warnings"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output"),
    settings_path: Optional[Path] = typer.Option(None, "--settings", help="Settings file"),
) -> None:
    """
    Validate a config file against a schema.

    Checks:
    - No unknown fields, all required fields present
    - Types, formats, lengths, forbidden defaults
    - Built-in validators for semantic types
    - Remote checks (credentials, cloud resources), all reported together

    Example:
        cfgcheck validate accounts.yml --schema accounts.schema.yml
    """
    from cfgcheck.validator import build_registry, format_results, validate_config

    _setup_logging(verbose)
    settings = _load_settings(settings_path)

    console.print(f"[bold]Validating[/bold] {config_path}")

    results = validate_config(
        config_path,
        schema_path,
        registry=build_registry(settings),
        offline=offline,
        max_workers=settings.max_workers,
    )
    format_results(results, console)

    if results.has_errors or (strict and results.has_warnings):
        raise typer.Exit(1)


@app.command("validate-all")
def validate_all(
    offline: bool = typer.Option(False, "--offline", help="Skip remote (network) checks"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output"),
    settings_path: Optional[Path] = typer.Option(None, "--settings", help="Settings file"),
) -> None:
    """
    Validate every config/schema pair listed under `jobs` in the settings file.

    Stops at the first file that fails.

    Example:
        cfgcheck validate-all --settings ~/.cfgcheck/settings.yaml
    """
    from cfgcheck.validator import build_registry, format_results, run_jobs

    _setup_logging(verbose)
    settings = _load_settings(settings_path)

    if not settings.jobs:
        console.print("[yellow]No validation jobs configured[/yellow]")
        return

    registry = build_registry(settings)
    for job in settings.jobs:
        console.print(f"[bold]Validating[/bold] {job.name}")
        [(_, results)] = run_jobs([job], registry, offline=offline, max_workers=settings.max_workers)
        format_results(results, console)
        if results.has_errors:
            console.print(f"[red]Failed to validate {job.name}[/red]")
            raise typer.Exit(1)


@app.command()
def validators(
    settings_path: Optional[Path] = typer.Option(None, "--settings", help="Settings file"),
) -> None:
    """List registered validators."""
    from cfgcheck.validator import build_registry

    registry = build_registry(_load_settings(settings_path))

    table = Table(title="Validators")
    table.add_column("Name")
    table.add_column("Sync")
    table.add_column("Remote")

    for name, has_sync, has_remote in registry.names():
        table.add_row(name, "yes" if has_sync else "", "yes" if has_remote else "")

    console.print(table)


def _version_callback(value: bool) -> None:
    if value:
        from cfgcheck import __version__
        console.print(f"cfgcheck {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", help="Show version", callback=_version_callback, is_eager=True
    ),
) -> None:
    """cfgcheck: Schema-driven validation for config files."""


if __name__ == "__main__":
    app()
