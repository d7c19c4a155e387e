"""Load client configuration from the ambient environment.

Both loaders let the ``kubernetes`` client library fill a
``kubernetes.client.Configuration`` and copy it into a ``RestConfig``:

- ``load_kubeconfig`` reads a kubeconfig file, used when a process simulates
  running inside the cluster it manages;
- ``load_incluster_config`` reads the service account the kubelet mounts into
  every pod.

Bearer tokens the library keeps current (rotated service account tokens,
kubeconfig exec plugins, OIDC providers) stay attached as
``RestConfig.token_source`` so the transport asks for the current token on
every request.

Both raise ``EnvironmentUnavailableError`` when the environment cannot be
loaded. There is no partial result.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Any

import yaml
from kubernetes import client, config
from kubernetes.config.incluster_config import InClusterConfigLoader

from cluster_client_core.auth.exceptions import EnvironmentUnavailableError
from cluster_client_core.cluster.models import TLSClientConfig
from cluster_client_core.environment import EnvironmentResolver
from cluster_client_core.rest import RestConfig

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
SERVICE_HOST_ENV = "KUBERNETES_SERVICE_HOST"
SERVICE_PORT_ENV = "KUBERNETES_SERVICE_PORT"


def _read(path: str | None, what: str, source: str) -> bytes | None:
    if not path:
        return None
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise EnvironmentUnavailableError(f"Unable to read {what} {path} for {source}: {e}", source=source) from e


def _to_rest_config(configuration: client.Configuration, source: str) -> RestConfig:
    """Copy a configuration filled by the kubernetes library into a RestConfig."""
    rest = RestConfig(
        host=configuration.host,
        tls=TLSClientConfig(
            insecure=not configuration.verify_ssl,
            server_name=configuration.tls_server_name or "",
            ca_data=_read(configuration.ssl_ca_cert, "CA bundle", source),
            cert_data=_read(configuration.cert_file, "client certificate", source),
            key_data=_read(configuration.key_file, "client key", source),
        ),
    )

    # The library stores the complete header value, scheme included
    scheme, _, credentials = (configuration.api_key.get("authorization") or "").partition(" ")
    credentials = credentials.strip()
    if scheme.lower() == "basic":
        try:
            decoded = base64.b64decode(credentials, validate=True).decode()
        except (binascii.Error, UnicodeDecodeError) as e:
            raise EnvironmentUnavailableError(f"Invalid basic credentials in {source}", source=source) from e
        rest.username, _, rest.password = decoded.partition(":")
    elif scheme.lower() == "bearer" and credentials:
        rest.bearer_token = credentials
        if configuration.refresh_api_key_hook is not None:
            rest.token_source = configuration

    return rest


def _named(raw: dict[str, Any], kind: str, name: Any) -> dict[str, Any]:
    for entry in raw.get(f"{kind}s") or []:
        if isinstance(entry, dict) and entry.get("name") == name and isinstance(entry.get(kind), dict):
            return entry[kind]
    return {}


def _active_entries(raw: dict[str, Any], context: str | None) -> tuple[dict[str, Any], dict[str, Any]]:
    """Cluster and user entries of the selected context.

    Only inspected for checks the library does not make; a missing entry is
    reported by the library itself.
    """
    context_entry = _named(raw, "context", context or raw.get("current-context"))
    return _named(raw, "cluster", context_entry.get("cluster")), _named(raw, "user", context_entry.get("user"))


def load_kubeconfig(path: Path, context: str | None = None) -> RestConfig:
    """Build a RestConfig from a kubeconfig file.

    Exec plugins and auth providers of the selected user run while loading.

    Args:
        path: Kubeconfig file to read.
        context: Context to use instead of ``current-context``.

    Raises:
        EnvironmentUnavailableError: If the file is missing or unreadable, is
            not valid YAML, does not resolve to a cluster, or the user's
            plugin or auth provider yields no credentials.
    """
    source = str(path)
    try:
        raw = yaml.safe_load(path.read_text())
    except OSError as e:
        raise EnvironmentUnavailableError(f"Unable to read kubeconfig {source}: {e}", source=source) from e
    except yaml.YAMLError as e:
        raise EnvironmentUnavailableError(f"Unable to parse kubeconfig {source}: {e}", source=source) from e

    if not isinstance(raw, dict):
        raise EnvironmentUnavailableError(f"Kubeconfig {source} is not a mapping", source=source)

    cluster, user = _active_entries(raw, context)
    # The library negates any value, so the string "false" would disable verification
    insecure = cluster.get("insecure-skip-tls-verify")
    if insecure is not None and not isinstance(insecure, bool):
        raise EnvironmentUnavailableError(
            f"Kubeconfig {source}: insecure-skip-tls-verify must be a boolean, got {insecure!r}", source=source
        )

    configuration = client.Configuration()
    try:
        config.load_kube_config(
            config_file=source,
            context=context,
            client_configuration=configuration,
            persist_config=False,
        )
    except config.ConfigException as e:
        raise EnvironmentUnavailableError(f"Unable to load kubeconfig {source}: {e}", source=source) from e

    rest = _to_rest_config(configuration, source)

    for key in ("auth-provider", "exec"):
        if key in user and not rest.has_static_credentials() and not rest.tls.has_cert_auth():
            raise EnvironmentUnavailableError(
                f"Kubeconfig {source}: the {key} of the current user did not produce credentials", source=source
            )

    logger.debug(f"Loaded kubeconfig {source} for {rest.host}")
    return rest


def load_incluster_config(
    environment: EnvironmentResolver,
    service_account_dir: Path = SERVICE_ACCOUNT_DIR,
) -> RestConfig:
    """Build a RestConfig from the pod's service account.

    The token is re-read from disk once the library's refresh period has
    passed, so rotated service account tokens are picked up.

    Args:
        environment: Source of ``KUBERNETES_SERVICE_HOST`` and
            ``KUBERNETES_SERVICE_PORT``.
        service_account_dir: Directory holding ``token`` and ``ca.crt``.

    Raises:
        EnvironmentUnavailableError: If the service environment variables,
            the token or the CA bundle are missing.
    """
    environ = {}
    for name in (SERVICE_HOST_ENV, SERVICE_PORT_ENV):
        value = environment.resolve(env_var_name=name, mask_in_logs=False)
        if value is not None:
            environ[name] = value

    loader = InClusterConfigLoader(
        token_filename=str(service_account_dir / "token"),
        cert_filename=str(service_account_dir / "ca.crt"),
        environ=environ,
    )
    configuration = client.Configuration()
    source = str(service_account_dir)
    try:
        loader.load_and_set(configuration)
    except config.ConfigException as e:
        raise EnvironmentUnavailableError(f"Unable to load in-cluster configuration: {e}", source=source) from e

    rest = _to_rest_config(configuration, source)
    logger.debug(f"Loaded in-cluster configuration for {rest.host}")
    return rest
