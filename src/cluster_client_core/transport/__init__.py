"""Transport layer components for cluster clients.

This module turns resolved cluster configs into httpx transports with
authentication, TLS, throttling and connection pooling already embedded.

Modules:
    settings: Tuning values with environment overrides
    tls: SSL context construction from stored TLS material
    rate_limit: Token-bucket request throttling
    auth: Authenticating transport wrappers
    tuner: Builds the composed transport for a RestConfig

Example:
    ```python
    from cluster_client_core.transport import TransportSettings, TransportTuner

    tuner = TransportTuner(TransportSettings.from_env())
    tuned = tuner.tune(config)
    ```
"""

from cluster_client_core.transport.auth import (
    AsyncAuthenticatedTransport,
    AuthenticatedTransport,
    Authenticator,
    ExecAuthenticator,
    StaticAuthenticator,
    TokenSourceAuthenticator,
    authenticator_for,
)
from cluster_client_core.transport.rate_limit import TokenBucket
from cluster_client_core.transport.settings import TransportSettings
from cluster_client_core.transport.tls import build_ssl_context
from cluster_client_core.transport.tuner import TransportTuner, proxy_for

__all__ = [
    "AsyncAuthenticatedTransport",
    "AuthenticatedTransport",
    "Authenticator",
    "ExecAuthenticator",
    "StaticAuthenticator",
    "TokenBucket",
    "TokenSourceAuthenticator",
    "TransportSettings",
    "TransportTuner",
    "authenticator_for",
    "build_ssl_context",
    "proxy_for",
]
