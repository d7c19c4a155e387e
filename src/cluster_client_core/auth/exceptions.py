"""Exceptions raised while resolving and applying cluster credentials.

Errors fall into two tiers:

- ``EnvironmentUnavailableError``: the ambient environment a strategy depends
  on (a kubeconfig file, the in-cluster service account) cannot be loaded.
  Nothing downstream can succeed without it; callers decide whether to retry,
  fall back or stop.
- ``TransportConfigError`` / ``TLSConfigError``: the resolved configuration
  cannot be turned into a transport. Correcting the stored record and calling
  ``tune`` again is enough.

``ExecPluginError`` is raised while requests are in flight, when a credential
plugin cannot produce a token.

Example:
    ```python
    from cluster_client_core.auth.exceptions import EnvironmentUnavailableError

    try:
        config = resolver.resolve(descriptor)
    except EnvironmentUnavailableError as e:
        print(f"Cannot load {e.source}: {e}")
    ```
"""


class ClusterConfigError(Exception):
    """Base exception for cluster credential errors.

    All exceptions in this module inherit from this class, making it easy to
    catch any credential-related error.
    """

    pass


class EnvironmentUnavailableError(ClusterConfigError):
    """Raised when an environment-derived configuration cannot be loaded.

    Attributes:
        source: The file path or environment description that failed to load.
    """

    def __init__(self, message: str, source: str | None = None):
        """Initialize EnvironmentUnavailableError.

        Args:
            message: What could not be loaded and why.
            source: Optional path or environment description for reference.
        """
        super().__init__(message)
        self.source = source


class TransportConfigError(ClusterConfigError):
    """Raised when a resolved configuration cannot be wrapped into a transport.

    Example:
        ```python
        try:
            tuned = tuner.tune(config)
        except TransportConfigError as e:
            print(f"Fix the cluster record: {e}")
        ```
    """

    pass


class TLSConfigError(TransportConfigError):
    """Raised when TLS material is structurally invalid."""

    pass


class ExecPluginError(ClusterConfigError):
    """Raised when a credential plugin fails to produce a token.

    Attributes:
        command: The plugin executable.
        install_hint: Hint shown to users when the executable is missing.
    """

    def __init__(self, message: str, command: str | None = None, install_hint: str | None = None):
        super().__init__(message)
        self.command = command
        self.install_hint = install_hint
