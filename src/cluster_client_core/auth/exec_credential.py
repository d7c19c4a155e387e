"""Run credential plugins and cache the tokens they return.

A plugin is any executable that prints a ``client.authentication.k8s.io``
ExecCredential on stdout:

```json
{
  "apiVersion": "client.authentication.k8s.io/v1beta1",
  "kind": "ExecCredential",
  "status": {"token": "k8s-aws-v1...", "expirationTimestamp": "2024-01-01T00:15:00Z"}
}
```

``ExecTokenCache`` keeps the last token until shortly before its declared
expiry. A token without an expiry stays valid until ``invalidate`` is called,
which the transport does when the API server answers 401.
"""

import enum
import json
import logging
import os
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from threading import Lock

from cluster_client_core.auth.exceptions import ExecPluginError
from cluster_client_core.auth.exec_provider import ExecConfig

logger = logging.getLogger(__name__)

EXEC_INFO_ENV = "KUBERNETES_EXEC_INFO"
EXEC_CREDENTIAL_KIND = "ExecCredential"


@dataclass(frozen=True)
class ExecCredential:
    token: str
    expires_at: datetime | None = None


class ExecCredentialRunner:
    """Invoke the plugin described by an ``ExecConfig``."""

    def __init__(self, config: ExecConfig):
        self.config = config

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update({var.name: var.value for var in self.config.env})
        if self.config.api_version:
            env[EXEC_INFO_ENV] = json.dumps(
                {
                    "apiVersion": self.config.api_version,
                    "kind": EXEC_CREDENTIAL_KIND,
                    "spec": {"interactive": False},
                }
            )
        return env

    def _error(self, message: str) -> ExecPluginError:
        return ExecPluginError(
            f"exec plugin '{self.config.command}': {message}",
            command=self.config.command,
            install_hint=self.config.install_hint or None,
        )

    def run(self) -> ExecCredential:
        """Run the plugin once.

        Raises:
            ExecPluginError: If the plugin cannot be started, exits non-zero
                or prints something other than an ExecCredential with a token.
        """
        argv = [self.config.command, *self.config.args]
        logger.debug(f"Running exec credential plugin {self.config.command}")

        try:
            completed = subprocess.run(
                argv,
                env=self._environment(),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            message = "executable not found"
            if self.config.install_hint:
                message += f"\n\n{self.config.install_hint}"
            raise self._error(message) from e
        except OSError as e:
            raise self._error(f"failed to start: {e}") from e

        if completed.returncode != 0:
            raise self._error(f"exited with status {completed.returncode}: {completed.stderr.strip()}")

        return self._parse(completed.stdout)

    def _parse(self, output: str) -> ExecCredential:
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise self._error(f"output is not valid JSON: {e}") from e

        if not isinstance(data, dict) or data.get("kind") != EXEC_CREDENTIAL_KIND:
            raise self._error(f"output is not an {EXEC_CREDENTIAL_KIND}")

        returned_version = data.get("apiVersion")
        if self.config.api_version and returned_version and returned_version != self.config.api_version:
            raise self._error(
                f"configured to use API version {self.config.api_version}, plugin returned version {returned_version}"
            )

        status = data.get("status") or {}
        token = status.get("token")
        if not token:
            raise self._error("did not return a token")

        expires_at = None
        if status.get("expirationTimestamp"):
            try:
                expires_at = datetime.fromisoformat(status["expirationTimestamp"])
            except (TypeError, ValueError) as e:
                raise self._error(f"invalid expirationTimestamp {status['expirationTimestamp']!r}") from e
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=UTC)

        return ExecCredential(token=token, expires_at=expires_at)


class TokenState(enum.Enum):
    UNFETCHED = "unfetched"
    VALID = "valid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class _CachedToken:
    token: str
    expires_at: datetime | None
    invalidated: bool = False


class ExecTokenCache:
    """Token cache for one plugin, shared by every request of a transport.

    Readers look at an immutable entry without locking. Refreshes and
    invalidations take the lock, so only one plugin process runs at a time.

    Args:
        runner: Plugin runner used to fetch tokens.
        refresh_skew: Seconds before the declared expiry at which a token is
            already treated as expired.
        clock: Returns the current time as an aware datetime.
    """

    def __init__(
        self,
        runner: ExecCredentialRunner,
        refresh_skew: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self._runner = runner
        self._refresh_skew = timedelta(seconds=refresh_skew)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entry: _CachedToken | None = None
        self._lock = Lock()

    def _is_usable(self, entry: _CachedToken | None) -> bool:
        if entry is None or entry.invalidated:
            return False
        if entry.expires_at is None:
            return True
        return self._clock() + self._refresh_skew < entry.expires_at

    @property
    def state(self) -> TokenState:
        entry = self._entry
        if entry is None:
            return TokenState.UNFETCHED
        return TokenState.VALID if self._is_usable(entry) else TokenState.EXPIRED

    def needs_refresh(self) -> bool:
        return self.state is not TokenState.VALID

    def get_token(self) -> str:
        """Return a valid token, running the plugin if needed.

        Raises:
            ExecPluginError: If the plugin has to run and fails. The previous
                entry, if any, is kept.
        """
        entry = self._entry
        if self._is_usable(entry):
            return entry.token

        with self._lock:
            # Another thread may have refreshed while we waited
            entry = self._entry
            if self._is_usable(entry):
                return entry.token

            previous_state = self.state
            credential = self._runner.run()
            self._entry = _CachedToken(token=credential.token, expires_at=credential.expires_at)
            logger.debug(
                f"Fetched exec credential token (***) for {self._runner.config.command}, "
                f"previous state {previous_state.value}, expires at {credential.expires_at or 'never'}"
            )
            return credential.token

    def invalidate(self, token: str | None = None) -> None:
        """Mark the cached token expired.

        Args:
            token: Only invalidate if this is still the cached token, so a
                late 401 does not discard a token fetched in the meantime.
        """
        with self._lock:
            entry = self._entry
            if entry is None or (token is not None and entry.token != token):
                return
            self._entry = _CachedToken(token=entry.token, expires_at=entry.expires_at, invalidated=True)
            logger.debug(f"Invalidated exec credential token for {self._runner.config.command}")
