"""Stored cluster records and their credential blocks.

A ``ClusterDescriptor`` is the serialized description of a remote cluster as
persisted by the cluster registry. This package only reads descriptors; the
operational metadata (connection state, cache info) is owned by whoever
stores them.

Byte fields (certificates, keys, CA bundles) are base64 strings in the
serialized form and raw PEM bytes once loaded.

Example:
    ```python
    from cluster_client_core.cluster import ClusterDescriptor

    descriptor = ClusterDescriptor.from_dict(
        {
            "server": "https://10.0.0.1:6443",
            "name": "prod",
            "config": {"bearerToken": "..."},
        }
    )
    ```
"""

import base64
import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

CONNECTION_STATUS_SUCCESSFUL = "Successful"
CONNECTION_STATUS_FAILED = "Failed"
CONNECTION_STATUS_UNKNOWN = "Unknown"


def _decode_bytes(value: str | bytes | None) -> bytes | None:
    if value is None or value == "":
        return None
    if isinstance(value, bytes):
        return value
    return base64.b64decode(value, validate=True)


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


@dataclass
class TLSClientConfig:
    """TLS settings used to reach a cluster's API server."""

    insecure: bool = False  # Skip server certificate verification (testing only)
    server_name: str = ""  # SNI / certificate hostname override
    cert_data: bytes | None = None  # PEM client certificate
    key_data: bytes | None = None  # PEM client key
    ca_data: bytes | None = None  # PEM root certificates bundle

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TLSClientConfig":
        data = data or {}
        return cls(
            insecure=bool(data.get("insecure", False)),
            server_name=data.get("serverName") or "",
            cert_data=_decode_bytes(data.get("certData")),
            key_data=_decode_bytes(data.get("keyData")),
            ca_data=_decode_bytes(data.get("caData")),
        )

    def has_ca(self) -> bool:
        return bool(self.ca_data)

    def has_cert_auth(self) -> bool:
        return bool(self.cert_data) and bool(self.key_data)

    def is_empty(self) -> bool:
        return self == TLSClientConfig()


@dataclass
class AWSAuthConfig:
    """AWS IAM authentication through ``aws eks get-token``."""

    cluster_name: str = ""
    # When set, the token is minted after assuming this role instead of
    # using the default AWS credential provider chain.
    role_arn: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AWSAuthConfig":
        return cls(cluster_name=data.get("clusterName") or "", role_arn=data.get("roleARN") or "")


@dataclass
class ExecProviderConfig:
    """External command that prints an ExecCredential for the cluster."""

    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    api_version: str = ""
    install_hint: str = ""  # Shown when the executable cannot be found

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecProviderConfig":
        return cls(
            command=data.get("command") or "",
            args=list(data.get("args") or []),
            env=dict(data.get("env") or {}),
            api_version=data.get("apiVersion") or "",
            install_hint=data.get("installHint") or "",
        )


@dataclass
class ClusterConfig:
    """Credential block of a cluster record.

    Only one authentication strategy is used at resolution time; see
    ``cluster_client_core.auth.strategies`` for the precedence order.
    """

    username: str = ""
    password: str = ""
    bearer_token: str = ""
    tls_client_config: TLSClientConfig = field(default_factory=TLSClientConfig)
    aws_auth_config: AWSAuthConfig | None = None
    exec_provider_config: ExecProviderConfig | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ClusterConfig":
        data = data or {}
        aws = data.get("awsAuthConfig")
        exec_provider = data.get("execProviderConfig")
        return cls(
            username=data.get("username") or "",
            password=data.get("password") or "",
            bearer_token=data.get("bearerToken") or "",
            tls_client_config=TLSClientConfig.from_dict(data.get("tlsClientConfig")),
            aws_auth_config=AWSAuthConfig.from_dict(aws) if aws is not None else None,
            exec_provider_config=ExecProviderConfig.from_dict(exec_provider) if exec_provider is not None else None,
        )

    def has_static_credentials(self) -> bool:
        return bool(self.username or self.password or self.bearer_token)


@dataclass
class ConnectionState:
    status: str = CONNECTION_STATUS_UNKNOWN
    message: str = ""
    modified_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ConnectionState":
        data = data or {}
        return cls(
            status=data.get("status") or CONNECTION_STATUS_UNKNOWN,
            message=data.get("message") or "",
            modified_at=_parse_time(data.get("attemptedAt")),
        )


@dataclass
class ClusterCacheInfo:
    resources_count: int = 0
    apis_count: int = 0
    last_cache_sync_time: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ClusterCacheInfo":
        data = data or {}
        return cls(
            resources_count=int(data.get("resourcesCount") or 0),
            apis_count=int(data.get("apisCount") or 0),
            last_cache_sync_time=_parse_time(data.get("lastCacheSyncTime")),
        )


@dataclass
class ClusterInfo:
    connection_state: ConnectionState = field(default_factory=ConnectionState)
    server_version: str = ""
    cache_info: ClusterCacheInfo = field(default_factory=ClusterCacheInfo)
    applications_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ClusterInfo":
        data = data or {}
        return cls(
            connection_state=ConnectionState.from_dict(data.get("connectionState")),
            server_version=data.get("serverVersion") or "",
            cache_info=ClusterCacheInfo.from_dict(data.get("cacheInfo")),
            applications_count=int(data.get("applicationsCount") or 0),
        )


@dataclass
class ClusterDescriptor:
    """A remote cluster as stored by the cluster registry.

    Attributes:
        id: Internal identifier, never serialized to API clients.
        server: API server URL.
        name: Display name; defaults to the server URL when omitted.
        config: Credential block used to build a client configuration.
        namespaces: Namespaces the cluster is restricted to. Empty means
            cluster-wide access.
        connection_state, server_version, refresh_requested_at, info, shard:
            Operational metadata maintained by the registry. Not used when
            resolving credentials.
    """

    server: str
    name: str = ""
    config: ClusterConfig = field(default_factory=ClusterConfig)
    id: str = ""
    namespaces: list[str] = field(default_factory=list)
    connection_state: ConnectionState = field(default_factory=ConnectionState)
    server_version: str = ""
    refresh_requested_at: datetime | None = None
    info: ClusterInfo = field(default_factory=ClusterInfo)
    shard: int | None = None

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.server

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, id: str = "") -> "ClusterDescriptor":
        """Build a descriptor from its stored JSON form.

        Args:
            data: Decoded JSON record. Unknown keys are ignored.
            id: Registry identifier; it is not part of the serialized form.

        Raises:
            ValueError: If ``server`` is missing or a byte field is not valid
                base64.
        """
        server = data.get("server")
        if not server:
            raise ValueError("Cluster record is missing required field 'server'")

        shard = data.get("shard")
        return cls(
            id=id,
            server=server,
            name=data.get("name") or "",
            config=ClusterConfig.from_dict(data.get("config")),
            namespaces=list(data.get("namespaces") or []),
            connection_state=ConnectionState.from_dict(data.get("connectionState")),
            server_version=data.get("serverVersion") or "",
            refresh_requested_at=_parse_time(data.get("refreshRequestedAt")),
            info=ClusterInfo.from_dict(data.get("info")),
            shard=int(shard) if shard is not None else None,
        )

    def with_config(self, config: ClusterConfig) -> "ClusterDescriptor":
        """Return a copy carrying new credentials and the same identity."""
        return dataclasses.replace(self, config=config)
