"""Client configuration produced by credential resolution.

A ``RestConfig`` starts out "plain": host, TLS parameters and either static
credentials or a plugin descriptor. Configs loaded from a kubeconfig file or
a service account may also carry ``token_source``, the kubernetes client
``Configuration`` that refreshes their bearer token. ``TransportTuner.tune``
folds all of that into ``transport`` and clears the plain fields, so a tuned
config must be used through its transport.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from cluster_client_core.cluster.models import TLSClientConfig

if TYPE_CHECKING:
    from kubernetes.client import Configuration

    from cluster_client_core.auth.exec_provider import ExecConfig


@dataclass
class RestConfig:
    host: str
    username: str = ""
    password: str = ""
    bearer_token: str = ""
    tls: TLSClientConfig = field(default_factory=TLSClientConfig)
    exec_provider: "ExecConfig | None" = None
    # Environment-loaded configs only: keeps ``bearer_token`` current
    token_source: "Configuration | None" = None

    # Set by tuning
    qps: float = 0.0
    burst: int = 0
    timeout: httpx.Timeout | None = None
    transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None

    def has_basic_auth(self) -> bool:
        return bool(self.username or self.password)

    def has_token_auth(self) -> bool:
        return bool(self.bearer_token)

    def has_static_credentials(self) -> bool:
        return self.has_basic_auth() or self.has_token_auth()

    def is_tuned(self) -> bool:
        return self.transport is not None

    def __repr__(self) -> str:
        # Credentials are masked so configs can be logged safely
        return (
            f"RestConfig(host={self.host!r}, username={self.username!r}, "
            f"password={'***' if self.password else ''!r}, "
            f"bearer_token={'***' if self.bearer_token else ''!r}, "
            f"exec_provider={self.exec_provider.command if self.exec_provider else None!r}, "
            f"qps={self.qps}, burst={self.burst}, transport={type(self.transport).__name__ if self.transport else None})"
        )
