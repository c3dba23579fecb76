"""
Remote validators.

These checks need a network round-trip or an external tool, so the schema
pass defers them to the async phase. Each one bounds its own I/O with a
timeout. A missing local prerequisite raises ValidationSkipped rather than
failing the value.
"""

import logging
import pwd
import re
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any, Callable

import httpx

from cfgcheck.validator.builtins import validate_cloudflare_config, validate_dockerhub_config
from cfgcheck.validator.errors import ValidationSkipped, ValidatorFailed
from cfgcheck.validator.registry import ValidatorRegistry


logger = logging.getLogger(__name__)


CLOUDFLARE_API = "https://api.cloudflare.com/client/v4"
DOCKERHUB_LOGIN_URL = "https://hub.docker.com/v2/users/login/"
# SSL/TLS modes that break an origin served over HTTPS
INCOMPATIBLE_SSL_MODES = {"off", "flexible"}
DEFAULT_TIMEOUT = 10.0


class RemoteValidators:
    """
    Network- and tool-backed validators sharing one timeout policy.

    Args:
        timeout: Per-request timeout in seconds
        rclone_user: System user whose rclone config is checked
        client_factory: Builds the httpx client; tests inject a mock transport
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        rclone_user: str | None = None,
        client_factory: Callable[[], httpx.Client] | None = None,
    ):
        self.timeout = timeout
        self.rclone_user = rclone_user
        self._client_factory = client_factory or (lambda: httpx.Client(timeout=self.timeout))

    def register(self, registry: ValidatorRegistry) -> None:
        registry.register("validate_cloudflare_config", self.cloudflare, remote=True)
        registry.register("validate_dockerhub_config", self.dockerhub, remote=True)
        registry.register("validate_rclone_remote", self.rclone_remote, remote=True)

    def cloudflare(self, value: Any, config: dict[str, Any]) -> None:
        """Verify the API key, zone ownership of the user's domain, and the zone's SSL mode."""
        validate_cloudflare_config(value, config)
        if value is None or not isinstance(value.get("api"), str):
            return
        api_key, email = value["api"], value["email"]

        domain = config["user"]["domain"]
        headers = {"X-Auth-Key": api_key, "X-Auth-Email": email}
        start = time.monotonic()

        with self._client_factory() as client:
            self._cloudflare_get(client, "/user", headers, "cloudflare API key verification failed")
            zone = self._find_zone(client, domain, headers)

            ssl = self._cloudflare_get(
                client, f"/zones/{zone['id']}/settings/ssl", headers, "failed to get zone SSL settings"
            )
            mode = (ssl.get("result") or {}).get("value")
            if mode in INCOMPATIBLE_SSL_MODES:
                raise ValidatorFailed(
                    f"incompatible SSL/TLS mode detected: '{mode}'. "
                    f"Change the encryption mode for '{zone['name']}' to 'Full' or 'Full (strict)' "
                    "in the Cloudflare dashboard"
                )

        logger.debug("Cloudflare validation for %s completed in %.2fs", domain, time.monotonic() - start)

    def _find_zone(self, client: httpx.Client, domain: str, headers: dict[str, str]) -> dict[str, Any]:
        """Find the zone for a domain, trying each parent down to two labels."""
        labels = domain.lower().rstrip(".").split(".")
        if len(labels) < 2:
            raise ValidatorFailed(f"invalid domain format: {domain}")

        for i in range(len(labels) - 1):
            candidate = ".".join(labels[i:])
            body = self._cloudflare_get(
                client, "/zones", headers, "domain verification failed", params={"name": candidate}
            )
            zones = body.get("result") or []
            if zones:
                logger.debug("Found Cloudflare zone %s for %s", zones[0].get("id"), candidate)
                return zones[0]

        raise ValidatorFailed(f"domain verification failed: {domain} not found in Cloudflare account")

    def _cloudflare_get(
        self,
        client: httpx.Client,
        endpoint: str,
        headers: dict[str, str],
        failure: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = client.get(f"{CLOUDFLARE_API}{endpoint}", headers=headers, params=params)
        except httpx.HTTPError as e:
            raise ValidatorFailed(f"{failure}: {e}") from e

        body = _json_or_empty(response)
        if response.status_code != 200 or body.get("success") is False:
            messages = "; ".join(err.get("message", "") for err in body.get("errors") or [] if isinstance(err, dict))
            raise ValidatorFailed(f"{failure} (HTTP {response.status_code}){': ' + messages if messages else ''}")
        return body

    def dockerhub(self, value: Any, config: dict[str, Any]) -> None:
        """Log in to Docker Hub with the configured user and token."""
        validate_dockerhub_config(value, config)
        if value is None or not isinstance(value.get("user"), str):
            return
        username, token = value["user"], value["token"]

        try:
            with self._client_factory() as client:
                response = client.post(DOCKERHUB_LOGIN_URL, json={"username": username, "password": token})
        except httpx.HTTPError as e:
            raise ValidatorFailed(f"failed to make request: {e}") from e

        if response.status_code != 200:
            body = _json_or_empty(response)
            reason = body.get("message") or body.get("details")
            if isinstance(reason, str):
                raise ValidatorFailed(f"docker hub authentication failed (HTTP {response.status_code}): {reason}")
            raise ValidatorFailed(f"docker hub authentication failed (HTTP {response.status_code})")

    def rclone_remote(self, value: Any, _config: dict[str, Any]) -> None:
        """Check that an rclone remote ('name' or 'name:path') is defined."""
        if value is None or value == "":
            return
        if not isinstance(value, str):
            raise ValidatorFailed("rclone remote must be a string")
        remote = value.split(":", 1)[0]

        if shutil.which("rclone") is None:
            raise ValidationSkipped("rclone is not installed")
        if not self.rclone_user:
            raise ValidationSkipped("no rclone user configured")
        try:
            home = Path(pwd.getpwnam(self.rclone_user).pw_dir)
        except KeyError:
            raise ValidationSkipped(f"user '{self.rclone_user}' does not exist") from None

        config_path = home / ".config" / "rclone" / "rclone.conf"
        if not config_path.exists():
            raise ValidationSkipped(f"config file not found at {config_path}")

        try:
            result = subprocess.run(
                ["sudo", "-u", self.rclone_user, "rclone", "--config", str(config_path), "config", "show"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ValidationSkipped("sudo is not installed") from None
        except subprocess.TimeoutExpired as e:
            raise ValidatorFailed(f"rclone config show timed out after {self.timeout:g}s") from e

        if result.returncode != 0:
            raise ValidatorFailed(
                f"failed to execute rclone config show (exit {result.returncode}): {result.stderr.strip()}"
            )
        if not re.search(rf"^\[{re.escape(remote)}\]$", result.stdout, re.MULTILINE):
            raise ValidatorFailed(f"rclone remote '{remote}' not found in configuration")


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
