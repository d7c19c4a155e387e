"""Authentication strategies for a cluster and the order they are chosen in.

Each cluster record is resolved with exactly one strategy. The first rule
that matches wins:

| # | Strategy                    | Matches when                                                      |
|---|-----------------------------|-------------------------------------------------------------------|
| 1 | ``KubeconfigFileStrategy``  | in-cluster server address and ``FAKE_IN_CLUSTER_CONFIG=true``    |
| 2 | ``InClusterStrategy``       | in-cluster server address and no username, password or token     |
| 3 | ``AwsIamStrategy``          | an AWS auth block is present                                      |
| 4 | ``GenericExecStrategy``     | an exec provider block is present                                 |
| 5 | ``StaticCredentialsStrategy`` | everything else                                                 |

``select_strategy`` only decides; loading files and building configs is done
by ``CredentialResolver``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

from cluster_client_core.cluster.models import ClusterDescriptor, ExecProviderConfig
from cluster_client_core.environment import EnvironmentResolver

KUBERNETES_INTERNAL_API_SERVER_ADDR = "https://kubernetes.default.svc"
ENV_FAKE_IN_CLUSTER_CONFIG = "FAKE_IN_CLUSTER_CONFIG"
ENV_KUBECONFIG = "KUBECONFIG"
DEFAULT_KUBECONFIG_PATH = "~/.kube/config"


@dataclass(frozen=True)
class KubeconfigFileStrategy:
    name: ClassVar[str] = "kubeconfig-file"
    path: Path


@dataclass(frozen=True)
class InClusterStrategy:
    name: ClassVar[str] = "in-cluster"


@dataclass(frozen=True)
class AwsIamStrategy:
    name: ClassVar[str] = "aws-iam"
    cluster_name: str
    role_arn: str = ""


@dataclass(frozen=True)
class GenericExecStrategy:
    name: ClassVar[str] = "exec"
    config: ExecProviderConfig = field(default_factory=ExecProviderConfig)


@dataclass(frozen=True)
class StaticCredentialsStrategy:
    name: ClassVar[str] = "static"
    username: str = ""
    password: str = ""
    bearer_token: str = ""


CredentialStrategy = (
    KubeconfigFileStrategy | InClusterStrategy | AwsIamStrategy | GenericExecStrategy | StaticCredentialsStrategy
)


def select_strategy(descriptor: ClusterDescriptor, environment: EnvironmentResolver) -> CredentialStrategy:
    """Pick the authentication strategy for a cluster record.

    Args:
        descriptor: The stored cluster record. Not modified.
        environment: Source of the simulated in-cluster flag and the
            kubeconfig path.

    Returns:
        The first strategy whose rule matches.
    """
    config = descriptor.config
    in_cluster_address = descriptor.server == KUBERNETES_INTERNAL_API_SERVER_ADDR

    if in_cluster_address and environment.resolve_flag(ENV_FAKE_IN_CLUSTER_CONFIG):
        # An empty KUBECONFIG falls back to the default path as well
        path = environment.resolve_path(env_var_name=ENV_KUBECONFIG) or environment.resolve_path(
            value=DEFAULT_KUBECONFIG_PATH
        )
        return KubeconfigFileStrategy(path=path)

    if in_cluster_address and not config.has_static_credentials():
        return InClusterStrategy()

    if config.aws_auth_config is not None:
        return AwsIamStrategy(
            cluster_name=config.aws_auth_config.cluster_name,
            role_arn=config.aws_auth_config.role_arn,
        )

    if config.exec_provider_config is not None:
        return GenericExecStrategy(config=config.exec_provider_config)

    return StaticCredentialsStrategy(
        username=config.username,
        password=config.password,
        bearer_token=config.bearer_token,
    )
