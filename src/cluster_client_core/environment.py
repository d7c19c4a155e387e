"""Environment lookups used by credential resolution and transport settings.

Values are resolved from multiple sources with priority ordering:

1. Explicitly provided value
2. Environment variable (including values loaded from a .env file by
   python-dotenv)
3. Default value

Example:
    ```python
    from cluster_client_core.environment import EnvironmentResolver

    env = EnvironmentResolver(load_dotenv=False)

    if env.resolve_flag("FAKE_IN_CLUSTER_CONFIG"):
        path = env.resolve_path(env_var_name="KUBECONFIG", default="~/.kube/config")
    ```

Security Considerations:
    - Values are never logged unless ``mask_in_logs=False``
    - Thread-safe dotenv loading with lock
"""

import logging
import os
from pathlib import Path
from threading import Lock

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset(["1", "true", "yes", "on"])


class EnvironmentResolver:
    """Resolve settings from explicit values, the environment and defaults.

    Attributes:
        _dotenv_loaded: Whether .env file has been loaded.
        _dotenv_lock: Thread lock for safe dotenv loading.
    """

    def __init__(self, dotenv_path: str | None = None, load_dotenv: bool = True):
        """Initialize environment resolver.

        Args:
            dotenv_path: Path to .env file. If None, searches parent directories
                for .env file (default behavior of python-dotenv).
            load_dotenv: Whether to load .env file. Set to False to read only
                the process environment.
        """
        self._dotenv_loaded = False
        self._dotenv_lock = Lock()
        self._dotenv_path = dotenv_path
        self._load_dotenv_enabled = load_dotenv

        if self._load_dotenv_enabled:
            self._ensure_dotenv_loaded()

    def _ensure_dotenv_loaded(self) -> None:
        """Load the .env file once (thread-safe)."""
        if self._dotenv_loaded:
            return

        with self._dotenv_lock:
            if self._dotenv_loaded:
                return

            try:
                load_dotenv(dotenv_path=self._dotenv_path)
                logger.debug("Loaded .env file for environment resolution")
            except OSError as e:
                logger.warning(f"Failed to load .env file: {e}")
            # Marked as attempted either way; a broken .env is not fatal
            self._dotenv_loaded = True

    def resolve(
        self,
        *,
        value: str | None = None,
        env_var_name: str | None = None,
        default: str | None = None,
        mask_in_logs: bool = True,
    ) -> str | None:
        """Resolve a value from multiple sources (first match wins).

        Args:
            value: Explicitly provided value (highest priority).
            env_var_name: Environment variable name to check.
            default: Default value if not found elsewhere.
            mask_in_logs: If True (default), masks values in log messages.

        Returns:
            Resolved value, or None if no source provides one.
        """
        result = None
        source = None

        if value is not None:
            result = value
            source = "explicit parameter"
        elif env_var_name and env_var_name in os.environ:
            result = os.environ[env_var_name]
            source = f"environment variable '{env_var_name}'"
        elif default is not None:
            result = default
            source = "default value"

        if result is not None:
            shown = "***" if mask_in_logs else result
            logger.debug(f"Resolved {env_var_name or 'value'} from {source}: {shown}")

        return result

    def resolve_flag(self, env_var_name: str, default: bool = False) -> bool:
        """Resolve a boolean flag such as ``FAKE_IN_CLUSTER_CONFIG=true``."""
        raw = self.resolve(env_var_name=env_var_name, mask_in_logs=False)
        if raw is None:
            return default
        return raw.strip().lower() in TRUE_VALUES

    def resolve_path(
        self,
        *,
        value: str | Path | None = None,
        env_var_name: str | None = None,
        default: str | Path | None = None,
    ) -> Path | None:
        """Resolve a filesystem path.

        Supports user home directory expansion (~) and environment variable
        expansion ($VAR or ${VAR}).
        """
        raw = self.resolve(
            value=str(value) if value is not None else None,
            env_var_name=env_var_name,
            default=str(default) if default is not None else None,
            mask_in_logs=False,
        )
        if not raw:
            return None
        return Path(os.path.expanduser(os.path.expandvars(raw)))
