"""Descriptors for credential plugins run as subprocesses."""

from dataclasses import dataclass, field

AWS_COMMAND = "aws"
EXEC_API_VERSION_V1BETA1 = "client.authentication.k8s.io/v1beta1"


@dataclass(frozen=True)
class ExecEnvVar:
    name: str
    value: str


@dataclass
class ExecConfig:
    """How to invoke a credential plugin.

    ``env`` is a list of name/value pairs added to the plugin's environment;
    its order carries no meaning.
    """

    command: str
    args: list[str] = field(default_factory=list)
    env: list[ExecEnvVar] = field(default_factory=list)
    api_version: str = ""
    install_hint: str = ""


class ExecProviderBuilder:
    """Build ``ExecConfig`` descriptors. Pure, performs no I/O."""

    def build(
        self,
        command: str,
        args: list[str] | None,
        api_version: str,
        env_map: dict[str, str] | None,
        install_hint: str = "",
    ) -> ExecConfig:
        env = [ExecEnvVar(name=key, value=value) for key, value in (env_map or {}).items()]
        return ExecConfig(
            command=command,
            args=list(args or []),
            env=env,
            api_version=api_version,
            install_hint=install_hint,
        )

    def build_aws(self, cluster_name: str, role_arn: str = "") -> ExecConfig:
        """Descriptor for ``aws eks get-token``."""
        args = ["eks", "get-token", "--cluster-name", cluster_name]
        if role_arn:
            args += ["--role-arn", role_arn]
        return self.build(AWS_COMMAND, args, EXEC_API_VERSION_V1BETA1, None)
