"""Turn a plain RestConfig into one backed by a production transport.

Example:
    ```python
    from cluster_client_core.transport import TransportTuner

    tuner = TransportTuner()
    tuned = tuner.tune(resolver.resolve(descriptor))

    with httpx.Client(base_url=tuned.host, transport=tuned.transport, trust_env=False) as client:
        client.get("/version")
    ```

Tuning order:

1. rate limits (``qps``/``burst``)
2. SSL context from the TLS parameters
3. pooled httpx transport (proxy, timeouts, keep-alive, connection ceilings)
4. authenticating wrapper
5. plain TLS, plugin and credential fields cleared

After step 5 the credentials only live inside the transport.
"""

import dataclasses
import logging
import socket
import ssl
import urllib.request
from urllib.parse import urlsplit

import httpx

from cluster_client_core.auth.exceptions import TransportConfigError
from cluster_client_core.cluster.models import TLSClientConfig
from cluster_client_core.rest import RestConfig
from cluster_client_core.transport.auth import (
    AsyncAuthenticatedTransport,
    AuthenticatedTransport,
    Authenticator,
    authenticator_for,
)
from cluster_client_core.transport.rate_limit import TokenBucket
from cluster_client_core.transport.settings import TransportSettings
from cluster_client_core.transport.tls import build_ssl_context

logger = logging.getLogger(__name__)


def proxy_for(host: str) -> str | None:
    """Return the proxy URL the environment configures for ``host``.

    Honors ``HTTPS_PROXY``/``HTTP_PROXY``/``ALL_PROXY`` and ``NO_PROXY`` the
    same way httpx does for its own clients.
    """
    url = urlsplit(host)
    proxies = urllib.request.getproxies()
    proxy = proxies.get(url.scheme) or proxies.get("all")
    if not proxy or not url.hostname:
        return None
    if urllib.request.proxy_bypass_environment(url.netloc, proxies):
        return None
    return proxy


class TransportTuner:
    """Build the composed transport for resolved cluster configs.

    Args:
        settings: Transport tuning values. Defaults to ``TransportSettings()``.
    """

    def __init__(self, settings: TransportSettings | None = None):
        self.settings = settings or TransportSettings()

    def _socket_options(self) -> list[tuple[int, int, int]]:
        keep_alive = max(int(self.settings.keep_alive), 1)
        options = [(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)]
        # Not every platform exposes the keep-alive timing options
        for name in ("TCP_KEEPIDLE", "TCP_KEEPINTVL"):
            if hasattr(socket, name):
                options.append((socket.IPPROTO_TCP, getattr(socket, name), keep_alive))
        return options

    def _limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.settings.max_connections_per_host,
            max_keepalive_connections=min(
                self.settings.max_idle_connections,
                self.settings.max_idle_connections_per_host,
            ),
            keepalive_expiry=self.settings.idle_connection_timeout,
        )

    def _timeout(self) -> httpx.Timeout:
        # Read/write/pool are left unbounded; per-call deadlines belong to the caller
        return httpx.Timeout(None, connect=self.settings.connect_timeout)

    def _prepare(self, base_config: RestConfig) -> tuple[RestConfig, ssl.SSLContext, Authenticator | None]:
        if base_config.is_tuned():
            # Its credentials are already folded into the existing transport
            raise TransportConfigError(f"configuration for {base_config.host} is already tuned")

        config = dataclasses.replace(base_config)
        config.qps = self.settings.qps
        config.burst = self.settings.burst

        ssl_context = build_ssl_context(config.tls)
        authenticator = authenticator_for(config, refresh_skew=self.settings.exec_token_refresh_skew)
        return config, ssl_context, authenticator

    def _finish(self, config: RestConfig, transport: httpx.BaseTransport | httpx.AsyncBaseTransport) -> RestConfig:
        config.tls = TLSClientConfig()
        config.exec_provider = None
        config.token_source = None
        config.username = ""
        config.password = ""
        config.bearer_token = ""
        config.timeout = self._timeout()
        config.transport = transport
        logger.debug(f"Tuned transport for {config.host}: qps={config.qps}, burst={config.burst}")
        return config

    def _transport_kwargs(self, config: RestConfig, ssl_context: ssl.SSLContext) -> dict:
        return {
            "verify": ssl_context,
            "http2": self.settings.http2,
            "limits": self._limits(),
            "proxy": proxy_for(config.host),
            "socket_options": self._socket_options(),
        }

    def tune(self, base_config: RestConfig) -> RestConfig:
        """Return a tuned copy of ``base_config`` with a sync transport.

        Raises:
            TLSConfigError: If the TLS material is invalid.
            TransportConfigError: If the credentials cannot be combined.
        """
        config, ssl_context, authenticator = self._prepare(base_config)
        transport = AuthenticatedTransport(
            wrapped_transport=httpx.HTTPTransport(**self._transport_kwargs(config, ssl_context)),
            authenticator=authenticator,
            rate_limiter=TokenBucket(config.qps, config.burst),
            connect_timeout=self.settings.connect_timeout,
            server_name=config.tls.server_name,
        )
        return self._finish(config, transport)

    def tune_async(self, base_config: RestConfig) -> RestConfig:
        """Like ``tune`` but with a transport for ``httpx.AsyncClient``."""
        config, ssl_context, authenticator = self._prepare(base_config)
        transport = AsyncAuthenticatedTransport(
            wrapped_transport=httpx.AsyncHTTPTransport(**self._transport_kwargs(config, ssl_context)),
            authenticator=authenticator,
            rate_limiter=TokenBucket(config.qps, config.burst),
            connect_timeout=self.settings.connect_timeout,
            server_name=config.tls.server_name,
        )
        return self._finish(config, transport)
