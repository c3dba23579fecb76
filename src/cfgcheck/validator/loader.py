"""
Decoding of config documents into plain dicts, lists and scalars.
"""

from pathlib import Path
from typing import Any

import tomli
import yaml

from cfgcheck.validator.errors import DocumentError


TOML_SUFFIXES = {".toml"}


def load_document(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML or TOML config file.

    TOML is chosen by the .toml suffix; anything else is parsed as YAML.
    An empty YAML file decodes to an empty mapping.

    Raises:
        DocumentError: If the file is unreadable, malformed, or its
            top-level value is not a mapping
    """
    try:
        with open(config_path, "rb") as f:
            if config_path.suffix.lower() in TOML_SUFFIXES:
                data = tomli.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as e:
        raise DocumentError(f"error reading config file ({config_path}): {e}") from e
    except (yaml.YAMLError, tomli.TOMLDecodeError) as e:
        raise DocumentError(f"invalid {_format_name(config_path)} in config file ({config_path}): {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DocumentError(f"config file ({config_path}) must contain a mapping at the top level")
    return data


def _format_name(config_path: Path) -> str:
    return "TOML" if config_path.suffix.lower() in TOML_SUFFIXES else "YAML"
