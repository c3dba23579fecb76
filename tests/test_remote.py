"""Tests for the network- and tool-backed validators."""

import subprocess

import httpx
import pytest

from cfgcheck.validator import RemoteValidators, ValidationSkipped, ValidatorFailed, ValidatorRegistry
from cfgcheck.validator import remote as remote_module


CONFIG = {"user": {"domain": "media.example.com"}}
CREDENTIALS = {"api": "key", "email": "seed@example.com"}


def cloudflare_handler(ssl_mode="full", user_status=200, zone_name="example.com"):
    """Fake Cloudflare API that owns a single zone."""
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["X-Auth-Key"] == "key"
        path = request.url.path.removeprefix("/client/v4")
        if path == "/user":
            if user_status != 200:
                return httpx.Response(user_status, json={
                    "success": False,
                    "errors": [{"code": 9103, "message": "Unknown X-Auth-Key or X-Auth-Email"}],
                })
            return httpx.Response(200, json={"success": True, "result": {"id": "u1"}})
        if path == "/zones":
            name = request.url.params["name"]
            zones = [{"id": "z1", "name": name}] if name == zone_name else []
            return httpx.Response(200, json={"success": True, "result": zones})
        if path == "/zones/z1/settings/ssl":
            return httpx.Response(200, json={"success": True, "result": {"id": "ssl", "value": ssl_mode}})
        return httpx.Response(404, json={"success": False})
    return handler


def make_validators(handler, **kwargs) -> RemoteValidators:
    transport = httpx.MockTransport(handler)
    return RemoteValidators(client_factory=lambda: httpx.Client(transport=transport), **kwargs)


class TestCloudflare:
    """Tests for the Cloudflare check."""

    def test_valid_credentials_and_zone(self):
        """The zone is found by walking up from the subdomain."""
        make_validators(cloudflare_handler()).cloudflare(CREDENTIALS, CONFIG)

    def test_no_credentials_makes_no_requests(self):
        def handler(request):
            raise AssertionError("unexpected request")

        make_validators(handler).cloudflare({"api": None, "email": None}, CONFIG)
        make_validators(handler).cloudflare(None, CONFIG)

    def test_invalid_key(self):
        validators = make_validators(cloudflare_handler(user_status=403))

        with pytest.raises(ValidatorFailed) as exc:
            validators.cloudflare(CREDENTIALS, CONFIG)

        assert str(exc.value) == (
            "cloudflare API key verification failed (HTTP 403): Unknown X-Auth-Key or X-Auth-Email"
        )

    def test_domain_not_in_account(self):
        validators = make_validators(cloudflare_handler(zone_name="other.org"))

        with pytest.raises(ValidatorFailed, match="media.example.com not found in Cloudflare account"):
            validators.cloudflare(CREDENTIALS, CONFIG)

    @pytest.mark.parametrize("mode", ["off", "flexible"])
    def test_incompatible_ssl_mode(self, mode):
        validators = make_validators(cloudflare_handler(ssl_mode=mode))

        with pytest.raises(ValidatorFailed, match=f"incompatible SSL/TLS mode detected: '{mode}'"):
            validators.cloudflare(CREDENTIALS, CONFIG)

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ValidatorFailed, match="verification failed: connection refused"):
            make_validators(handler).cloudflare(CREDENTIALS, CONFIG)

    def test_structural_check_runs_first(self):
        with pytest.raises(ValidatorFailed, match="user domain is required"):
            make_validators(cloudflare_handler()).cloudflare(CREDENTIALS, {"user": {}})


class TestDockerhub:
    """Tests for the Docker Hub login check."""

    def test_login_succeeds(self):
        def handler(request):
            assert request.url == remote_module.DOCKERHUB_LOGIN_URL
            return httpx.Response(200, json={"token": "jwt"})

        make_validators(handler).dockerhub({"user": "seed", "token": "t"}, {})

    def test_login_fails_with_reason(self):
        def handler(request):
            return httpx.Response(401, json={"detail": "x", "message": "Incorrect authentication credentials"})

        with pytest.raises(ValidatorFailed) as exc:
            make_validators(handler).dockerhub({"user": "seed", "token": "t"}, {})

        assert str(exc.value) == (
            "docker hub authentication failed (HTTP 401): Incorrect authentication credentials"
        )

    def test_login_fails_without_body(self):
        def handler(request):
            return httpx.Response(500, text="oops")

        with pytest.raises(ValidatorFailed, match=r"^docker hub authentication failed \(HTTP 500\)$"):
            make_validators(handler).dockerhub({"user": "seed", "token": "t"}, {})

    def test_no_credentials_makes_no_requests(self):
        def handler(request):
            raise AssertionError("unexpected request")

        make_validators(handler).dockerhub({"user": None, "token": None}, {})
        make_validators(handler).dockerhub(None, {})


class TestRclone:
    """Tests for the rclone remote check."""

    @pytest.mark.parametrize("value", [None, ""])
    def test_blank_remote_is_ignored(self, monkeypatch, value):
        monkeypatch.setattr(remote_module.shutil, "which", lambda name: None)
        RemoteValidators(rclone_user="seed").rclone_remote(value, {})

    def test_skipped_without_rclone(self, monkeypatch):
        monkeypatch.setattr(remote_module.shutil, "which", lambda name: None)

        with pytest.raises(ValidationSkipped, match="rclone is not installed"):
            RemoteValidators(rclone_user="seed").rclone_remote("google:", {})

    def test_skipped_without_user(self, monkeypatch):
        monkeypatch.setattr(remote_module.shutil, "which", lambda name: "/usr/bin/rclone")

        with pytest.raises(ValidationSkipped, match="no rclone user configured"):
            RemoteValidators().rclone_remote("google", {})

    def test_skipped_for_unknown_user(self, monkeypatch):
        monkeypatch.setattr(remote_module.shutil, "which", lambda name: "/usr/bin/rclone")

        with pytest.raises(ValidationSkipped, match="does not exist"):
            RemoteValidators(rclone_user="no-such-user-cfgcheck").rclone_remote("google", {})

    def _fake_environment(self, monkeypatch, tmp_path, stdout, returncode=0):
        conf = tmp_path / ".config" / "rclone" / "rclone.conf"
        conf.parent.mkdir(parents=True)
        conf.write_text(stdout)

        class FakeUser:
            pw_dir = str(tmp_path)

        calls = []

        def fake_run(args, **kwargs):
            calls.append(args)
            return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr="boom")

        monkeypatch.setattr(remote_module.shutil, "which", lambda name: "/usr/bin/rclone")
        monkeypatch.setattr(remote_module.pwd, "getpwnam", lambda name: FakeUser)
        monkeypatch.setattr(remote_module.subprocess, "run", fake_run)
        return conf, calls

    def test_remote_found(self, monkeypatch, tmp_path):
        conf, calls = self._fake_environment(monkeypatch, tmp_path, "[google]\ntype = drive\n")

        RemoteValidators(rclone_user="seed").rclone_remote("google:Media", {})

        assert calls == [["sudo", "-u", "seed", "rclone", "--config", str(conf), "config", "show"]]

    def test_remote_missing(self, monkeypatch, tmp_path):
        self._fake_environment(monkeypatch, tmp_path, "[dropbox]\ntype = dropbox\n")

        with pytest.raises(ValidatorFailed, match="rclone remote 'google' not found"):
            RemoteValidators(rclone_user="seed").rclone_remote("google", {})

    def test_rclone_fails(self, monkeypatch, tmp_path):
        self._fake_environment(monkeypatch, tmp_path, "", returncode=1)

        with pytest.raises(ValidatorFailed, match=r"exit 1\): boom"):
            RemoteValidators(rclone_user="seed").rclone_remote("google", {})


class TestRegistration:
    """Remote validators sit beside their offline counterparts."""

    def test_register(self):
        registry = ValidatorRegistry.with_builtins()
        RemoteValidators().register(registry)

        assert registry.is_remote("validate_cloudflare_config")
        assert registry.is_remote("validate_dockerhub_config")
        assert registry.is_remote("validate_rclone_remote")
        assert registry.sync_validator("validate_cloudflare_config") is not None
        assert registry.sync_validator("validate_rclone_remote") is None
