"""Transports that authenticate, throttle and time-bound every request.

``AuthenticatedTransport`` (sync) and ``AsyncAuthenticatedTransport`` wrap
the pooled httpx transport built by ``TransportTuner``. On every request they:

1. wait for a rate-limiter token,
2. set the connect timeout and, when configured, the TLS server name,
3. add an ``Authorization`` header unless the request already carries one.

A 401 response makes plugin-based authenticators drop their cached token so
the next request fetches a fresh one. The 401 itself is returned as is.

Example:
    ```python
    import httpx

    transport = AuthenticatedTransport(
        wrapped_transport=httpx.HTTPTransport(),
        authenticator=StaticAuthenticator.bearer("token"),
    )

    with httpx.Client(transport=transport) as client:
        response = client.get("https://10.0.0.1:6443/version")
    ```
"""

import asyncio
import base64
import logging
import threading
from typing import TYPE_CHECKING

import httpx

from cluster_client_core.auth.exceptions import TransportConfigError
from cluster_client_core.auth.exec_credential import ExecCredentialRunner, ExecTokenCache
from cluster_client_core.rest import RestConfig
from cluster_client_core.transport.rate_limit import TokenBucket

if TYPE_CHECKING:
    from kubernetes.client import Configuration

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"


class Authenticator:
    """Produces the ``Authorization`` header value for outgoing requests."""

    # Set when producing the header may run a subprocess or wait on a lock
    blocking = False

    def authorization(self) -> str:
        raise NotImplementedError

    def on_unauthorized(self, request: httpx.Request) -> None:
        pass


class StaticAuthenticator(Authenticator):
    """Fixed ``Authorization`` header for basic or bearer credentials."""

    def __init__(self, header_value: str):
        self._header_value = header_value

    @classmethod
    def basic(cls, username: str, password: str) -> "StaticAuthenticator":
        encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        return cls(f"Basic {encoded}")

    @classmethod
    def bearer(cls, token: str) -> "StaticAuthenticator":
        return cls(f"Bearer {token}")

    def authorization(self) -> str:
        return self._header_value


class ExecAuthenticator(Authenticator):
    """Bearer token obtained from a credential plugin."""

    blocking = True

    def __init__(self, cache: ExecTokenCache):
        self._cache = cache

    def authorization(self) -> str:
        return f"Bearer {self._cache.get_token()}"

    def on_unauthorized(self, request: httpx.Request) -> None:
        header = request.headers.get(AUTHORIZATION, "")
        if header.startswith("Bearer "):
            logger.info(f"Request {request.method} {request.url} was rejected with 401, refreshing plugin token")
            self._cache.invalidate(header.removeprefix("Bearer "))


class TokenSourceAuthenticator(Authenticator):
    """Bearer token kept current by a kubernetes client ``Configuration``.

    The configuration's refresh hook re-reads rotated service account tokens
    and re-runs kubeconfig exec plugins or OIDC refreshes once a token
    expires. Refreshes are serialized by a lock.
    """

    blocking = True

    def __init__(self, configuration: "Configuration"):
        self._configuration = configuration
        self._lock = threading.Lock()

    def authorization(self) -> str:
        with self._lock:
            value = self._configuration.get_api_key_with_prefix("authorization") or ""
        _, _, token = value.partition(" ")
        if not token.strip():
            raise TransportConfigError(f"no bearer token available for {self._configuration.host}")
        return f"Bearer {token.strip()}"


def authenticator_for(config: RestConfig, refresh_skew: float = 10.0) -> Authenticator | None:
    """Pick the authenticator matching a plain RestConfig.

    Raises:
        TransportConfigError: If the config combines credentials that cannot
            be used together.
    """
    if config.has_basic_auth() and config.has_token_auth():
        raise TransportConfigError("username/password or bearer token may be set, but not both")

    if config.exec_provider is not None:
        if config.has_static_credentials() or config.token_source is not None:
            raise TransportConfigError("an exec credential plugin cannot be combined with static credentials")
        if not config.exec_provider.command:
            raise TransportConfigError("exec credential plugin has no command")
        runner = ExecCredentialRunner(config.exec_provider)
        return ExecAuthenticator(ExecTokenCache(runner, refresh_skew=refresh_skew))

    if config.token_source is not None:
        return TokenSourceAuthenticator(config.token_source)
    if config.has_basic_auth():
        return StaticAuthenticator.basic(config.username, config.password)
    if config.has_token_auth():
        return StaticAuthenticator.bearer(config.bearer_token)
    return None


class _RequestPreparer:
    def __init__(
        self,
        authenticator: Authenticator | None,
        rate_limiter: TokenBucket | None,
        connect_timeout: float | None,
        server_name: str,
    ) -> None:
        self.authenticator = authenticator
        self.rate_limiter = rate_limiter
        self.connect_timeout = connect_timeout
        self.server_name = server_name

    def _needs_authorization(self, request: httpx.Request) -> bool:
        return self.authenticator is not None and AUTHORIZATION not in request.headers

    def _prepare(self, request: httpx.Request) -> None:
        if self.connect_timeout is not None:
            timeout = dict(request.extensions.get("timeout") or {})
            timeout["connect"] = self.connect_timeout
            request.extensions["timeout"] = timeout

        if self.server_name:
            request.extensions["sni_hostname"] = self.server_name

    def _after_response(self, request: httpx.Request, response: httpx.Response) -> None:
        if response.status_code == 401 and self.authenticator is not None:
            self.authenticator.on_unauthorized(request)


class AuthenticatedTransport(_RequestPreparer, httpx.BaseTransport):
    """Sync composed transport.

    Args:
        wrapped_transport: The underlying pooled transport.
        authenticator: Adds credentials; None sends requests unauthenticated.
        rate_limiter: Throttles requests; None disables throttling.
        connect_timeout: Connect timeout forced on every request.
        server_name: TLS server name used for SNI and certificate checks.
    """

    def __init__(
        self,
        *,
        wrapped_transport: httpx.BaseTransport,
        authenticator: Authenticator | None = None,
        rate_limiter: TokenBucket | None = None,
        connect_timeout: float | None = None,
        server_name: str = "",
    ) -> None:
        super().__init__(authenticator, rate_limiter, connect_timeout, server_name)
        self._wrapped_transport = wrapped_transport

    def __enter__(self):
        """Enter context, delegating to wrapped transport."""
        self._wrapped_transport.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context, delegating to wrapped transport."""
        return self._wrapped_transport.__exit__(exc_type, exc_val, exc_tb)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()

        if self._needs_authorization(request):
            request.headers[AUTHORIZATION] = self.authenticator.authorization()

        self._prepare(request)
        response = self._wrapped_transport.handle_request(request)
        self._after_response(request, response)
        return response

    def close(self) -> None:
        self._wrapped_transport.close()


class AsyncAuthenticatedTransport(_RequestPreparer, httpx.AsyncBaseTransport):
    """Async composed transport.

    Blocking authenticators run in a worker thread, so plugin subprocesses and
    token-cache locks never stall the event loop.
    """

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        authenticator: Authenticator | None = None,
        rate_limiter: TokenBucket | None = None,
        connect_timeout: float | None = None,
        server_name: str = "",
    ) -> None:
        super().__init__(authenticator, rate_limiter, connect_timeout, server_name)
        self._wrapped_transport = wrapped_transport

    async def __aenter__(self):
        """Enter async context, delegating to wrapped transport."""
        await self._wrapped_transport.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context, delegating to wrapped transport."""
        return await self._wrapped_transport.__aexit__(exc_type, exc_val, exc_tb)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire_async()

        if self._needs_authorization(request):
            if self.authenticator.blocking:
                value = await asyncio.to_thread(self.authenticator.authorization)
            else:
                value = self.authenticator.authorization()
            request.headers[AUTHORIZATION] = value

        self._prepare(request)
        response = await self._wrapped_transport.handle_async_request(request)
        self._after_response(request, response)
        return response

    async def aclose(self) -> None:
        await self._wrapped_transport.aclose()
