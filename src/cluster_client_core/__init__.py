"""Cluster Client Core - authenticated, tuned HTTP transports for remote clusters.

This library turns a stored cluster record into a ready-to-use client:
- Credential strategy selection (static, AWS IAM, exec plugin, kubeconfig
  file, in-cluster service account)
- Credential plugins with cached, expiry-aware tokens
- Production transports with pooling, TLS, timeouts and throttling

Example:
    ```python
    from cluster_client_core import ClusterDescriptor, create_client, rest_config

    descriptor = ClusterDescriptor.from_dict(record)
    config = rest_config(descriptor)

    with create_client(config) as client:
        response = client.get("/version")
    ```
"""

from cluster_client_core.auth import CredentialResolver
from cluster_client_core.client import create_async_client, create_client, raw_rest_config, rest_config
from cluster_client_core.cluster import ClusterDescriptor
from cluster_client_core.rest import RestConfig
from cluster_client_core.transport import TransportSettings, TransportTuner

__version__ = "0.1.0"

__all__ = [
    "ClusterDescriptor",
    "CredentialResolver",
    "RestConfig",
    "TransportSettings",
    "TransportTuner",
    "__version__",
    "create_async_client",
    "create_client",
    "raw_rest_config",
    "rest_config",
]
