"""Authentication components for cluster clients.

This module provides:
- Strategy selection over stored cluster credentials (static, AWS IAM,
  exec plugin, kubeconfig file, in-cluster service account)
- Credential plugin descriptors and a token cache for plugin output
- Loading of kubeconfig files and in-cluster service accounts

Example:
    ```python
    from cluster_client_core.auth import CredentialResolver

    resolver = CredentialResolver()
    config = resolver.resolve(descriptor)
    ```
"""

from cluster_client_core.auth.exceptions import (
    ClusterConfigError,
    EnvironmentUnavailableError,
    ExecPluginError,
    TLSConfigError,
    TransportConfigError,
)
from cluster_client_core.auth.exec_credential import ExecCredential, ExecCredentialRunner, ExecTokenCache, TokenState
from cluster_client_core.auth.exec_provider import ExecConfig, ExecEnvVar, ExecProviderBuilder
from cluster_client_core.auth.kubeconfig import load_incluster_config, load_kubeconfig
from cluster_client_core.auth.resolver import CredentialResolver
from cluster_client_core.auth.strategies import (
    AwsIamStrategy,
    CredentialStrategy,
    GenericExecStrategy,
    InClusterStrategy,
    KubeconfigFileStrategy,
    StaticCredentialsStrategy,
    select_strategy,
)

__all__ = [
    "AwsIamStrategy",
    "ClusterConfigError",
    "CredentialResolver",
    "CredentialStrategy",
    "EnvironmentUnavailableError",
    "ExecConfig",
    "ExecCredential",
    "ExecCredentialRunner",
    "ExecEnvVar",
    "ExecPluginError",
    "ExecProviderBuilder",
    "ExecTokenCache",
    "GenericExecStrategy",
    "InClusterStrategy",
    "KubeconfigFileStrategy",
    "StaticCredentialsStrategy",
    "TLSConfigError",
    "TokenState",
    "TransportConfigError",
    "load_incluster_config",
    "load_kubeconfig",
    "select_strategy",
]
