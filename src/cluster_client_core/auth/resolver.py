"""Resolve a stored cluster record into a plain client configuration.

Example:
    ```python
    from cluster_client_core.auth import CredentialResolver

    resolver = CredentialResolver()
    config = resolver.resolve(descriptor)  # RestConfig, not yet tuned
    ```

The returned ``RestConfig`` carries either static credentials or a plugin
descriptor, never both. It shares no mutable state with the descriptor.
"""

import dataclasses
import logging
from pathlib import Path

from cluster_client_core.auth.exec_provider import ExecProviderBuilder
from cluster_client_core.auth.kubeconfig import SERVICE_ACCOUNT_DIR, load_incluster_config, load_kubeconfig
from cluster_client_core.auth.strategies import (
    AwsIamStrategy,
    CredentialStrategy,
    GenericExecStrategy,
    InClusterStrategy,
    KubeconfigFileStrategy,
    StaticCredentialsStrategy,
    select_strategy,
)
from cluster_client_core.cluster.models import ClusterDescriptor
from cluster_client_core.environment import EnvironmentResolver
from cluster_client_core.rest import RestConfig

logger = logging.getLogger(__name__)


class CredentialResolver:
    """Pick one authentication strategy for a cluster and build its config.

    Args:
        environment: Environment lookups for the in-cluster strategies.
            Defaults to the process environment without .env loading.
        exec_builder: Builder for plugin descriptors.
        service_account_dir: Where the in-cluster token and CA are mounted.
    """

    def __init__(
        self,
        environment: EnvironmentResolver | None = None,
        exec_builder: ExecProviderBuilder | None = None,
        service_account_dir: Path = SERVICE_ACCOUNT_DIR,
    ):
        self._environment = environment or EnvironmentResolver(load_dotenv=False)
        self._exec_builder = exec_builder or ExecProviderBuilder()
        self._service_account_dir = service_account_dir

    def select(self, descriptor: ClusterDescriptor) -> CredentialStrategy:
        return select_strategy(descriptor, self._environment)

    def resolve(self, descriptor: ClusterDescriptor) -> RestConfig:
        """Build the plain RestConfig for ``descriptor``.

        Raises:
            EnvironmentUnavailableError: If the kubeconfig file or in-cluster
                environment required by the selected strategy cannot be loaded.
        """
        strategy = self.select(descriptor)
        logger.debug(f"Resolving credentials for {descriptor.name} with strategy {strategy.name}")

        match strategy:
            case KubeconfigFileStrategy(path=path):
                config = load_kubeconfig(path)
            case InClusterStrategy():
                config = load_incluster_config(self._environment, self._service_account_dir)
            case _:
                config = self._from_descriptor(descriptor, strategy)

        logger.info(f"Resolved {strategy.name} credentials for cluster {descriptor.name} ({config.host})")
        return config

    def _from_descriptor(self, descriptor: ClusterDescriptor, strategy: CredentialStrategy) -> RestConfig:
        # TLS material is used as stored; copied so the config never aliases the record
        tls = dataclasses.replace(descriptor.config.tls_client_config)
        config = RestConfig(host=descriptor.server, tls=tls)

        match strategy:
            case AwsIamStrategy(cluster_name=cluster_name, role_arn=role_arn):
                config.exec_provider = self._exec_builder.build_aws(cluster_name, role_arn)
            case GenericExecStrategy(config=exec_config):
                config.exec_provider = self._exec_builder.build(
                    exec_config.command,
                    exec_config.args,
                    exec_config.api_version,
                    exec_config.env,
                    install_hint=exec_config.install_hint,
                )
            case StaticCredentialsStrategy(username=username, password=password, bearer_token=bearer_token):
                config.username = username
                config.password = password
                config.bearer_token = bearer_token

        return config
