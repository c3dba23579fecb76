"""
Built-in synchronous validators.

Each validator takes (value, enclosing object) and raises ValidatorFailed
when the value is invalid. They are pure and local: regex matching,
timezone lookups, at most a stat() of a local file.
"""

import logging
import re
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cfgcheck.validator.errors import ValidatorFailed
from cfgcheck.validator.types import Validator


logger = logging.getLogger(__name__)


EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
HOSTNAME_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$"
)
URL_RE = re.compile(r"^https?://\S+$")
# RFC 3986 unreserved + reserved + percent
URL_CHARS = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~!*'();:@&=+$,/?#[]%")
SUBDOMAIN_CHARS = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-")

ANSIBLE_BOOL_VALUES = {"yes", "true", "on", "1", "no", "false", "off", "0"}
CRON_SPECIAL_TIMES = ["annually", "daily", "hourly", "monthly", "reboot", "weekly", "yearly"]
RCLONE_TEMPLATES = {"dropbox", "google", "sftp", "nfs"}
SSH_KEY_TYPES = {
    "ssh-rsa",
    "ssh-dss",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
    "ssh-ed25519",
}
MIN_PASSWORD_LENGTH = 12


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.fullmatch(value))


def is_valid_hostname(value: str) -> bool:
    if not value or len(value) > 253:
        return False
    return bool(HOSTNAME_RE.fullmatch(value))


def is_valid_url(value: str) -> bool:
    return bool(URL_RE.fullmatch(value))


def is_valid_ssh_key(value: str) -> bool:
    parts = value.split()
    return len(parts) >= 2 and parts[0] in SSH_KEY_TYPES


def check_subdomain_label(label: str) -> None:
    """Check a single DNS label against RFC 1123 rules."""
    if not label:
        raise ValidatorFailed("subdomain cannot be empty")
    if len(label) > 63:
        raise ValidatorFailed(f"subdomain cannot be longer than 63 characters, got {len(label)}")

    prev_hyphen = False
    for i, char in enumerate(label, start=1):
        if char not in SUBDOMAIN_CHARS:
            raise ValidatorFailed(
                f"subdomain contains invalid character '{char}' at position {i}. "
                "Only letters, numbers, and hyphens are allowed"
            )
        if char == "-" and prev_hyphen:
            raise ValidatorFailed(f"subdomain cannot contain consecutive hyphens at position {i}")
        prev_hyphen = char == "-"

    if not label[0].isalnum():
        raise ValidatorFailed(f"subdomain must start with a letter or number, not '{label[0]}'")
    if not label[-1].isalnum():
        raise ValidatorFailed(f"subdomain must end with a letter or number, not '{label[-1]}'")


def _require_string(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValidatorFailed(f"{what} must be a string")
    return value


def validate_ansible_bool(value: Any, _config: dict[str, Any]) -> None:
    """Accept the boolean spellings Ansible understands."""
    if isinstance(value, bool):
        return
    if not isinstance(value, str):
        raise ValidatorFailed(f"ansible boolean must be a string or boolean, got: {type(value).__name__}")
    if value.lower() not in ANSIBLE_BOOL_VALUES:
        raise ValidatorFailed(
            f"must be a valid Ansible boolean (yes/no, true/false, on/off, 1/0), got: {value}"
        )


def validate_subdomain(value: Any, _config: dict[str, Any]) -> None:
    check_subdomain_label(_require_string(value, "subdomain"))


def validate_hostname(value: Any, _config: dict[str, Any]) -> None:
    """Strict RFC hostname check, label by label."""
    hostname = _require_string(value, "hostname")
    if not is_valid_hostname(hostname):
        raise ValidatorFailed("invalid hostname format")

    for i, label in enumerate(hostname.split("."), start=1):
        try:
            check_subdomain_label(label)
        except ValidatorFailed as e:
            raise ValidatorFailed(f"invalid characters in hostname label {i} ('{label}'): {e}") from e


def validate_directory_path(value: Any, _config: dict[str, Any]) -> None:
    path = _require_string(value, "directory path")
    # Relative paths are accepted and resolve against the working directory
    if not path.strip() or "\x00" in path:
        raise ValidatorFailed(f"invalid directory path format: {path!r}")


def validate_url(value: Any, _config: dict[str, Any]) -> None:
    if not isinstance(value, str) or value == "":
        return
    if not is_valid_url(value):
        raise ValidatorFailed("must be a valid URL format (e.g., https://example.com)")

    for i, char in enumerate(value, start=1):
        if char not in URL_CHARS:
            raise ValidatorFailed(
                f"contains invalid character '{char}' at position {i}. URLs can only contain letters, "
                "numbers, and these special characters: -._~!*'();:@&=+$,/?#[]%"
            )


def validate_timezone(value: Any, _config: dict[str, Any]) -> None:
    """IANA timezone name, or 'auto'."""
    tz = _require_string(value, "timezone")
    if tz.lower() == "auto":
        return
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidatorFailed(f"invalid timezone: {tz}") from e


def validate_cron_time(value: Any, _config: dict[str, Any]) -> None:
    special = _require_string(value, "cron time")
    if special.lower() not in CRON_SPECIAL_TIMES:
        raise ValidatorFailed(
            f"must be a valid Ansible cron special time ({', '.join(CRON_SPECIAL_TIMES)}), got: {special}"
        )


def validate_rclone_template(value: Any, _config: dict[str, Any]) -> None:
    """One of the predefined templates, or an absolute path to an existing file."""
    template = _require_string(value, "rclone template")
    if template.lower() in RCLONE_TEMPLATES:
        return
    if template.startswith("/"):
        if not Path(template).exists():
            raise ValidatorFailed(f"rclone template file not found: {template}")
        return
    raise ValidatorFailed(
        f"must be one of 'dropbox', 'google', 'sftp', 'nfs', or a valid absolute file path, got: {template}"
    )


def validate_ssh_key_or_url(value: Any, _config: dict[str, Any]) -> None:
    if not isinstance(value, str) or value == "":
        return
    if is_valid_url(value) or is_valid_ssh_key(value):
        return
    raise ValidatorFailed("must be a valid SSH public key or URL")


def validate_password_strength(value: Any, _config: dict[str, Any]) -> None:
    password = _require_string(value, "password")
    if not password:
        raise ValidatorFailed("password cannot be empty")
    if len(password) < MIN_PASSWORD_LENGTH:
        # Advisory only: some automated app setup flows reject short passwords
        logger.warning(
            "Password is shorter than %d characters (%d). A stronger password is recommended.",
            MIN_PASSWORD_LENGTH,
            len(password),
        )


def validate_whole_number(value: Any, _config: dict[str, Any]) -> None:
    if isinstance(value, bool):
        raise ValidatorFailed(f"must be a whole number (integer), got: {value} (type: bool)")
    if isinstance(value, int):
        return
    if isinstance(value, str):
        if not is_whole_number_string(value):
            raise ValidatorFailed(f"must be a whole number (integer), got: {value}")
        return
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidatorFailed(f"must be a whole number (integer), got: {value} (has decimal part)")
        return
    raise ValidatorFailed(f"must be a whole number (integer), got: {value} (type: {type(value).__name__})")


def validate_positive_number(value: Any, _config: dict[str, Any]) -> None:
    if isinstance(value, bool):
        raise ValidatorFailed("must be a number, got: bool")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        if not is_whole_number_string(value):
            raise ValidatorFailed(f"must be a valid number, got: {value}")
        number = int(value)
    else:
        raise ValidatorFailed(f"must be a number, got: {type(value).__name__}")

    if number <= 0:
        raise ValidatorFailed(f"must be greater than 0, got: {number}")


def validate_cloudflare_config(value: Any, config: dict[str, Any]) -> None:
    """Structural half of the Cloudflare check; the API calls live in remote.py."""
    if value is None:
        return
    if not isinstance(value, dict):
        raise ValidatorFailed("cloudflare config must be an object")

    has_api = isinstance(value.get("api"), str)
    has_email = isinstance(value.get("email"), str)
    if not has_api and not has_email:
        return
    if not (has_api and has_email):
        raise ValidatorFailed("both 'api' and 'email' must be provided together")

    user = config.get("user")
    if not isinstance(user, dict):
        raise ValidatorFailed("user config is required for Cloudflare validation")
    if not isinstance(user.get("domain"), str):
        raise ValidatorFailed("user domain is required for Cloudflare validation")


def validate_dockerhub_config(value: Any, _config: dict[str, Any]) -> None:
    """Structural half of the Docker Hub check."""
    if value is None:
        return
    if not isinstance(value, dict):
        raise ValidatorFailed("dockerhub config must be an object")

    has_user = isinstance(value.get("user"), str)
    has_token = isinstance(value.get("token"), str)
    if has_user != has_token:
        raise ValidatorFailed("both 'user' and 'token' must be provided together")


def is_whole_number_string(value: str) -> bool:
    return bool(re.fullmatch(r"[+-]?\d+", value))


BUILTIN_VALIDATORS: dict[str, Validator] = {
    "validate_ansible_bool": validate_ansible_bool,
    "validate_subdomain": validate_subdomain,
    "validate_hostname": validate_hostname,
    "validate_directory_path": validate_directory_path,
    "validate_url": validate_url,
    "validate_timezone": validate_timezone,
    "validate_cron_time": validate_cron_time,
    "validate_rclone_template": validate_rclone_template,
    "validate_ssh_key_or_url": validate_ssh_key_or_url,
    "validate_password_strength": validate_password_strength,
    "validate_whole_number": validate_whole_number,
    "validate_positive_number": validate_positive_number,
    "validate_cloudflare_config": validate_cloudflare_config,
    "validate_dockerhub_config": validate_dockerhub_config,
}

# Semantic types and the built-in validator each one implies
SEMANTIC_TYPES: dict[str, str] = {
    "ansible_bool": "validate_ansible_bool",
    "subdomain": "validate_subdomain",
    "hostname": "validate_hostname",
    "directory_path": "validate_directory_path",
    "url": "validate_url",
    "timezone": "validate_timezone",
    "cron_time": "validate_cron_time",
    "rclone_template": "validate_rclone_template",
    "ssh_key_or_url": "validate_ssh_key_or_url",
    "password": "validate_password_strength",
}
