"""Tests for exec credential plugins and the token cache."""

import json
import subprocess
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest

from cluster_client_core.auth.exceptions import ExecPluginError
from cluster_client_core.auth.exec_credential import (
    EXEC_INFO_ENV,
    ExecCredential,
    ExecCredentialRunner,
    ExecTokenCache,
    TokenState,
)
from cluster_client_core.auth.exec_provider import EXEC_API_VERSION_V1BETA1, ExecConfig, ExecEnvVar

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def _credential_json(token="token-1", expiration=None, api_version=EXEC_API_VERSION_V1BETA1, kind="ExecCredential"):
    status = {"token": token}
    if expiration:
        status["expirationTimestamp"] = expiration
    return json.dumps({"apiVersion": api_version, "kind": kind, "status": status})


@pytest.fixture
def exec_config():
    return ExecConfig(
        command="aws",
        args=["eks", "get-token", "--cluster-name", "prod"],
        env=[ExecEnvVar("AWS_PROFILE", "prod")],
        api_version=EXEC_API_VERSION_V1BETA1,
        install_hint="Install the AWS CLI",
    )


@pytest.fixture
def fake_run(monkeypatch):
    """Replace subprocess.run and record invocations."""
    calls = []
    result = {"returncode": 0, "stdout": _credential_json(), "stderr": ""}

    def run(argv, **kwargs):
        calls.append((argv, kwargs))
        if "raise" in result:
            raise result["raise"]
        return subprocess.CompletedProcess(argv, result["returncode"], result["stdout"], result["stderr"])

    monkeypatch.setattr(subprocess, "run", run)
    run.calls = calls
    run.result = result
    return run


class TestExecCredentialRunner:
    def test_runs_command_with_plugin_env(self, exec_config, fake_run):
        credential = ExecCredentialRunner(exec_config).run()

        assert credential == ExecCredential(token="token-1")
        argv, kwargs = fake_run.calls[0]
        assert argv == ["aws", "eks", "get-token", "--cluster-name", "prod"]
        assert kwargs["env"]["AWS_PROFILE"] == "prod"
        assert json.loads(kwargs["env"][EXEC_INFO_ENV])["apiVersion"] == EXEC_API_VERSION_V1BETA1
        assert kwargs["stdin"] == subprocess.DEVNULL

    def test_parses_expiration(self, exec_config, fake_run):
        fake_run.result["stdout"] = _credential_json(expiration="2024-01-01T12:15:00Z")

        credential = ExecCredentialRunner(exec_config).run()

        assert credential.expires_at == datetime(2024, 1, 1, 12, 15, tzinfo=UTC)

    def test_naive_expiration_is_utc(self, exec_config, fake_run):
        fake_run.result["stdout"] = _credential_json(expiration="2024-01-01T12:15:00")

        assert ExecCredentialRunner(exec_config).run().expires_at.tzinfo is UTC

    def test_missing_executable_includes_install_hint(self, exec_config, fake_run):
        """Test that the install hint is shown when the plugin is not installed."""
        fake_run.result["raise"] = FileNotFoundError("aws")

        with pytest.raises(ExecPluginError) as exc_info:
            ExecCredentialRunner(exec_config).run()

        assert "executable not found" in str(exc_info.value)
        assert "Install the AWS CLI" in str(exc_info.value)
        assert exc_info.value.command == "aws"
        assert exc_info.value.install_hint == "Install the AWS CLI"

    def test_non_zero_exit(self, exec_config, fake_run):
        fake_run.result.update(returncode=255, stdout="", stderr="ExpiredToken\n")

        with pytest.raises(ExecPluginError, match="exited with status 255: ExpiredToken"):
            ExecCredentialRunner(exec_config).run()

    def test_invalid_json(self, exec_config, fake_run):
        fake_run.result["stdout"] = "not json"

        with pytest.raises(ExecPluginError, match="not valid JSON"):
            ExecCredentialRunner(exec_config).run()

    def test_wrong_kind(self, exec_config, fake_run):
        fake_run.result["stdout"] = _credential_json(kind="Secret")

        with pytest.raises(ExecPluginError, match="not an ExecCredential"):
            ExecCredentialRunner(exec_config).run()

    def test_api_version_mismatch(self, exec_config, fake_run):
        fake_run.result["stdout"] = _credential_json(api_version="client.authentication.k8s.io/v1")

        with pytest.raises(ExecPluginError, match="plugin returned version"):
            ExecCredentialRunner(exec_config).run()

    def test_missing_token(self, exec_config, fake_run):
        fake_run.result["stdout"] = _credential_json(token="")

        with pytest.raises(ExecPluginError, match="did not return a token"):
            ExecCredentialRunner(exec_config).run()

    def test_no_exec_info_without_api_version(self, fake_run, monkeypatch):
        monkeypatch.delenv(EXEC_INFO_ENV, raising=False)
        config = ExecConfig(command="cmd", args=[], env=[], api_version="")

        ExecCredentialRunner(config).run()

        assert EXEC_INFO_ENV not in fake_run.calls[0][1]["env"]


class _FakeRunner:
    def __init__(self, *credentials):
        self.config = ExecConfig(command="fake", args=[], env=[], api_version="")
        self._credentials = list(credentials)
        self.calls = 0

    def run(self):
        self.calls += 1
        item = self._credentials.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class _Clock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


class TestExecTokenCache:
    def test_unfetched_until_first_use(self):
        cache = ExecTokenCache(_FakeRunner(ExecCredential("a")))

        assert cache.state is TokenState.UNFETCHED
        assert cache.needs_refresh()

    def test_token_is_cached(self):
        runner = _FakeRunner(ExecCredential("a"))
        cache = ExecTokenCache(runner)

        assert cache.get_token() == "a"
        assert cache.get_token() == "a"
        assert runner.calls == 1
        assert cache.state is TokenState.VALID

    def test_refreshes_before_expiry(self):
        """Test that a token is refreshed once inside the skew window."""
        clock = _Clock()
        runner = _FakeRunner(
            ExecCredential("a", expires_at=NOW + timedelta(minutes=15)),
            ExecCredential("b", expires_at=NOW + timedelta(minutes=30)),
        )
        cache = ExecTokenCache(runner, refresh_skew=10.0, clock=clock)

        assert cache.get_token() == "a"
        clock.now = NOW + timedelta(minutes=15) - timedelta(seconds=5)
        assert cache.state is TokenState.EXPIRED
        assert cache.get_token() == "b"
        assert runner.calls == 2

    def test_invalidate_forces_refresh(self):
        runner = _FakeRunner(ExecCredential("a"), ExecCredential("b"))
        cache = ExecTokenCache(runner)
        cache.get_token()

        cache.invalidate("a")

        assert cache.state is TokenState.EXPIRED
        assert cache.get_token() == "b"

    def test_invalidate_ignores_stale_token(self):
        """Test that a late 401 for an older token keeps the current one."""
        runner = _FakeRunner(ExecCredential("a"), ExecCredential("b"))
        cache = ExecTokenCache(runner)
        cache.get_token()

        cache.invalidate("old")

        assert cache.state is TokenState.VALID
        assert runner.calls == 1

    def test_invalidate_before_fetch_is_noop(self):
        cache = ExecTokenCache(_FakeRunner())

        cache.invalidate()

        assert cache.state is TokenState.UNFETCHED

    def test_failed_refresh_keeps_previous_entry(self):
        runner = _FakeRunner(ExecCredential("a"), ExecPluginError("boom"))
        cache = ExecTokenCache(runner)
        cache.get_token()
        cache.invalidate()

        with pytest.raises(ExecPluginError):
            cache.get_token()

        assert cache.state is TokenState.EXPIRED

    def test_concurrent_callers_share_one_plugin_run(self):
        """Test that threads racing on an unfetched cache run the plugin once."""

        class SlowRunner(_FakeRunner):
            def run(self):
                time.sleep(0.05)
                return super().run()

        workers = 10
        runner = SlowRunner(ExecCredential("shared"))
        cache = ExecTokenCache(runner)
        barrier = threading.Barrier(workers)

        def fetch():
            barrier.wait()
            return cache.get_token()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            tokens = list(pool.map(lambda _: fetch(), range(workers)))

        assert runner.calls == 1
        assert tokens == ["shared"] * workers
