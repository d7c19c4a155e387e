"""Entry points that go from a stored cluster record to an httpx client."""

import httpx

from cluster_client_core.auth.resolver import CredentialResolver
from cluster_client_core.cluster.models import ClusterDescriptor
from cluster_client_core.rest import RestConfig
from cluster_client_core.transport.settings import TransportSettings
from cluster_client_core.transport.tuner import TransportTuner


def raw_rest_config(descriptor: ClusterDescriptor, resolver: CredentialResolver | None = None) -> RestConfig:
    """Resolve credentials without tuning the transport.

    The result can be serialized into a kubeconfig or tuned later.
    """
    return (resolver or CredentialResolver()).resolve(descriptor)


def rest_config(
    descriptor: ClusterDescriptor,
    resolver: CredentialResolver | None = None,
    settings: TransportSettings | None = None,
) -> RestConfig:
    """Resolve credentials and tune the transport for production use."""
    return TransportTuner(settings).tune(raw_rest_config(descriptor, resolver))


def create_client(config: RestConfig, **kwargs) -> httpx.Client:
    """Create an ``httpx.Client`` bound to a tuned config.

    Environment proxies are already part of the transport; ``trust_env`` is
    disabled so httpx does not route around it.
    """
    if not isinstance(config.transport, httpx.BaseTransport):
        raise TypeError("create_client needs a config tuned with TransportTuner.tune")
    return httpx.Client(
        base_url=config.host, transport=config.transport, timeout=config.timeout, trust_env=False, **kwargs
    )


def create_async_client(config: RestConfig, **kwargs) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` bound to a config tuned with ``tune_async``."""
    if not isinstance(config.transport, httpx.AsyncBaseTransport):
        raise TypeError("create_async_client needs a config tuned with TransportTuner.tune_async")
    return httpx.AsyncClient(
        base_url=config.host, transport=config.transport, timeout=config.timeout, trust_env=False, **kwargs
    )
