"""Tuning knobs for cluster transports.

Defaults suit a control-plane process that talks to many clusters at once.
Every value can be overridden from the environment:

| Field                           | Env var                                   | Default |
|---------------------------------|-------------------------------------------|---------|
| ``qps``                         | ``K8S_CLIENT_QPS``                        | 50      |
| ``burst``                       | ``K8S_CLIENT_BURST``                      | 100     |
| ``dial_timeout``                | ``K8S_CLIENT_DIAL_TIMEOUT``               | 30 s    |
| ``keep_alive``                  | ``K8S_CLIENT_KEEP_ALIVE``                 | 30 s    |
| ``tls_handshake_timeout``       | ``K8S_CLIENT_TLS_HANDSHAKE_TIMEOUT``      | 10 s    |
| ``max_idle_connections``        | ``K8S_CLIENT_MAX_IDLE_CONNECTIONS``       | 500     |
| ``max_idle_connections_per_host`` | ``K8S_CLIENT_MAX_IDLE_CONNECTIONS_PER_HOST`` | 500 |
| ``max_connections_per_host``    | ``K8S_CLIENT_MAX_CONNECTIONS_PER_HOST``   | 500     |
| ``idle_connection_timeout``     | ``K8S_CLIENT_IDLE_CONNECTION_TIMEOUT``    | 90 s    |
| ``http2``                       | ``K8S_CLIENT_HTTP2``                      | true    |
| ``exec_token_refresh_skew``     | ``K8S_CLIENT_EXEC_TOKEN_REFRESH_SKEW``    | 10 s    |

httpx has a single connect timeout that httpcore applies to the TCP dial and
to the TLS handshake in turn. ``tls_handshake_timeout`` is therefore not
enforced on its own: both phases are bounded by ``connect_timeout``, the
larger of ``dial_timeout`` and ``tls_handshake_timeout``. With the defaults a
handshake may take up to 30 s.
"""

import dataclasses
from dataclasses import dataclass

from cluster_client_core.environment import TRUE_VALUES, EnvironmentResolver

ENV_PREFIX = "K8S_CLIENT_"


@dataclass(frozen=True)
class TransportSettings:
    qps: float = 50.0  # Sustained requests per second; 0 disables throttling
    burst: int = 100
    dial_timeout: float = 30.0
    keep_alive: float = 30.0  # TCP keep-alive interval
    tls_handshake_timeout: float = 10.0  # Only raises connect_timeout; see module docs
    max_idle_connections: int = 500
    max_idle_connections_per_host: int = 500
    max_connections_per_host: int = 500
    idle_connection_timeout: float = 90.0
    http2: bool = True
    exec_token_refresh_skew: float = 10.0

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, bool) and value < 0:
                raise ValueError(f"TransportSettings.{f.name} must not be negative, got {value}")

    @property
    def connect_timeout(self) -> float:
        """Timeout for opening a connection.

        httpcore applies the connect timeout to the TCP dial and to the TLS
        handshake separately, so the larger of the two bounds both phases.
        """
        return max(self.dial_timeout, self.tls_handshake_timeout)

    @classmethod
    def from_env(cls, environment: EnvironmentResolver | None = None, prefix: str = ENV_PREFIX) -> "TransportSettings":
        """Build settings from ``<prefix><FIELD>`` environment variables.

        Raises:
            ValueError: If a variable cannot be parsed as the field's type.
        """
        environment = environment or EnvironmentResolver()
        overrides: dict[str, object] = {}

        for f in dataclasses.fields(cls):
            env_var_name = f"{prefix}{f.name.upper()}"
            raw = environment.resolve(env_var_name=env_var_name, mask_in_logs=False)
            if raw is None or raw.strip() == "":
                continue

            raw = raw.strip()
            if f.type is bool:
                overrides[f.name] = raw.lower() in TRUE_VALUES
                continue

            converter = int if f.type is int else float
            try:
                overrides[f.name] = converter(raw)
            except ValueError:
                msg = f"Invalid value for {env_var_name}: {raw!r} is not a valid {converter.__name__}"
                raise ValueError(msg) from None

        return cls(**overrides)
