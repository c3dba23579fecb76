"""
Tool settings.

Read from ~/.cfgcheck/settings.yaml unless another path is given.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from cfgcheck.validator.errors import SettingsError


DEFAULT_SETTINGS_PATH = Path.home() / ".cfgcheck" / "settings.yaml"


@dataclass
class ValidationJob:
    """One config file and the schema it is validated against."""
    name: str
    config: Path
    schema: Path
    optional: bool = False


@dataclass
class Settings:
    """Settings for a cfgcheck run."""
    timeout: float = 10.0  # seconds, per remote request
    max_workers: int = 8  # concurrent remote checks
    rclone_user: str | None = None
    jobs: list[ValidationJob] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from file, falling back to defaults if it does not exist."""
        if path is None:
            path = DEFAULT_SETTINGS_PATH

        if not path.exists():
            return cls()

        try:
            with open(path, "rb") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SettingsError(f"failed to read settings file {path}: {e}") from e

        if not isinstance(data, dict):
            raise SettingsError(f"settings file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise SettingsError(f"unknown settings in {path}: {', '.join(sorted(map(str, unknown)))}")

        try:
            jobs = [_parse_job(job, path.parent) for job in data.pop("jobs", None) or []]
            settings = cls(jobs=jobs, **data)
        except (TypeError, KeyError) as e:
            raise SettingsError(f"invalid settings in {path}: {e}") from e

        if not isinstance(settings.timeout, (int, float)) or settings.timeout <= 0:
            raise SettingsError(f"invalid settings in {path}: timeout must be a positive number")
        if not isinstance(settings.max_workers, int) or settings.max_workers < 1:
            raise SettingsError(f"invalid settings in {path}: max_workers must be a positive integer")
        return settings


def _parse_job(data: dict, base_dir: Path) -> ValidationJob:
    """Relative paths in a job resolve against the settings file's directory."""
    if not isinstance(data, dict):
        raise TypeError(f"job entries must be mappings, got {type(data).__name__}")
    config = base_dir / Path(data["config"]).expanduser()
    schema = base_dir / Path(data["schema"]).expanduser()
    return ValidationJob(
        name=data.get("name") or config.name,
        config=config,
        schema=schema,
        optional=bool(data.get("optional", False)),
    )
