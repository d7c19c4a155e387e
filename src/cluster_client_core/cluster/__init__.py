"""Cluster records consumed by credential resolution."""

from cluster_client_core.cluster.models import (
    CONNECTION_STATUS_FAILED,
    CONNECTION_STATUS_SUCCESSFUL,
    CONNECTION_STATUS_UNKNOWN,
    AWSAuthConfig,
    ClusterCacheInfo,
    ClusterConfig,
    ClusterDescriptor,
    ClusterInfo,
    ConnectionState,
    ExecProviderConfig,
    TLSClientConfig,
)

__all__ = [
    "CONNECTION_STATUS_FAILED",
    "CONNECTION_STATUS_SUCCESSFUL",
    "CONNECTION_STATUS_UNKNOWN",
    "AWSAuthConfig",
    "ClusterCacheInfo",
    "ClusterConfig",
    "ClusterDescriptor",
    "ClusterInfo",
    "ConnectionState",
    "ExecProviderConfig",
    "TLSClientConfig",
]
