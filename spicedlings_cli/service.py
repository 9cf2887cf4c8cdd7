"""
Deploy and secrets services of the deploy CLI.

This module implements the logic behind the CLI commands:
- Assembly of the `cdk deploy` command of a project stack
- Execution of the command from the deployments directory
- Inspection of the secrets that need manual operator action

Follows the command/service split of the CLI:
- Commands: prompt, parse options, map errors to exit codes
- Services: everything else
"""

import json
import os
import subprocess
from pathlib import PurePosixPath
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

import boto3
from botocore.exceptions import ClientError

from spicedlings_shared.errors import DeployError, NotFoundError
from spicedlings_shared.logger import CORRELATION_ID_ENVIRONMENT_VARIABLE, StructuredLogger
from spicedlings_shared.names import (
    fargate_service_stack_name,
    pipeline_stack_name,
    secret_name,
    services_stack_name,
)
from spicedlings_shared.paths import DEPLOYMENTS
from spicedlings_shared.settings import CORE_STACK_NAME, SECRETS_MANAGER_GITHUB_TOKENS_SECRET_NAME
from spicedlings_shared.types import DeployTarget, SpicedlingConfigs, SpicedlingIdentity


class Target(NamedTuple):
    """A deployable stack of a project, as offered by the CLI."""
    label: str
    stack_name: Callable[[SpicedlingIdentity], str]
    options: Sequence[str] = ()


# Ordered as they need to be deployed
TARGETS: Dict[DeployTarget, Target] = {
    'pipeline-step-1': Target('Pipeline [Step I]', pipeline_stack_name),
    'fargate-service': Target('Fargate Service', fargate_service_stack_name),
    'pipeline-step-2': Target('Pipeline [Step II]', pipeline_stack_name, ('-c', 'fargateDeployStage=true')),
}


class DeployService:
    """
    Runs `npx cdk deploy` for the core stack and the project stacks.

    Attributes:
        cwd: Directory holding the CDK app (cdk.json)
    """

    def __init__(self, logger: StructuredLogger, cwd=DEPLOYMENTS, runner=None):
        """
        Initialize the DeployService.

        Args:
            logger: Structured logger of the CLI invocation
            cwd: Directory the CDK toolkit runs in
            runner: Callable with the signature of subprocess.run, subprocess.run if omitted
        """
        self.logger = logger
        self.cwd = cwd
        self._runner = runner or subprocess.run

    @staticmethod
    def stack_name(configs: SpicedlingConfigs, target: DeployTarget) -> str:
        """
        Name of the stack a target deploys.

        Raises:
            NotFoundError: If the target is unknown
        """
        if target not in TARGETS:
            raise NotFoundError(f"Unknown deploy target: {target}")
        return TARGETS[target].stack_name(configs.identity)

    @classmethod
    def deploy_command(cls, configs: SpicedlingConfigs, target: DeployTarget, cohort_dir: str) -> List[str]:
        """
        Assemble the deploy command of a project stack.

        Args:
            configs: Loaded project configuration
            target: One of TARGETS
            cohort_dir: Name of the cohort directory the configuration file lives in

        Returns:
            Command arguments, e.g.
            ['npx', 'cdk', 'deploy', 'SpicedlingFinalProjectPipelineJasmineDanielStreif',
             '-c', 'fargateDeployStage=true', '-c', 'configsPath=jasmine/daniel_streif.py']
        """
        stack = cls.stack_name(configs, target)
        configs_path = PurePosixPath(cohort_dir) / configs.file_name
        return [
            'npx', 'cdk', 'deploy', stack,
            *TARGETS[target].options,
            '-c', f"configsPath={configs_path}",
        ]

    @staticmethod
    def core_deploy_command() -> List[str]:
        return ['npx', 'cdk', 'deploy', CORE_STACK_NAME]

    def run(self, command: List[str], stack: str) -> int:
        """
        Run a deploy command and wait for it.

        The child inherits stdout/stderr and receives the correlation id of the
        invocation through the environment.

        Returns:
            The child's exit status (always 0)

        Raises:
            DeployError: If the child could not be started or exited non-zero
        """
        self.logger.log_deploy_start(stack=stack, command=command)

        env = {**os.environ, CORRELATION_ID_ENVIRONMENT_VARIABLE: self.logger.correlation_id}
        try:
            completed = self._runner(command, cwd=str(self.cwd), env=env, check=False)
        except OSError as error:
            self.logger.log_deploy_complete(stack=stack, return_code=-1)
            raise DeployError(f"Could not start `{command[0]}`: {error}")

        self.logger.log_deploy_complete(stack=stack, return_code=completed.returncode)

        if completed.returncode != 0:
            raise DeployError(
                f"Deploy of {stack} failed with exit status {completed.returncode}",
                return_code=completed.returncode,
            )
        return completed.returncode


class SecretsService:
    """
    Reports the secrets of a project that still need operator action.

    Manual secrets are created by the services stack with a generated value;
    a secret that was never given a new value only has its initial version.
    """

    def __init__(self, client=None):
        """
        Initialize the SecretsService.

        Args:
            client: boto3 Secrets Manager client, created from the default session if omitted
        """
        self.client = client or boto3.client('secretsmanager')

    def unpopulated_secrets(self, configs: SpicedlingConfigs) -> List[Dict[str, str]]:
        """
        List the manual secrets still holding their generated value.

        Args:
            configs: Loaded project configuration

        Returns:
            One entry per secret: {'service', 'variable', 'secretName', 'status'}
            where status is 'placeholder' or 'missing'
        """
        owner_stack_name = services_stack_name(configs.identity)
        unpopulated = []

        for service in configs.services:
            for variable in sorted(service.get('secret_environment_variables', ())):
                name = secret_name(owner_stack_name, variable)
                status = self._secret_status(name)
                if status is not None:
                    unpopulated.append({
                        'service': service['name'],
                        'variable': variable,
                        'secretName': name,
                        'status': status,
                    })

        return unpopulated

    def _secret_status(self, name: str) -> Optional[str]:
        try:
            response = self.client.list_secret_version_ids(SecretId=name)
        except ClientError as error:
            if error.response['Error']['Code'] == 'ResourceNotFoundException':
                return 'missing'
            raise

        if len(response.get('Versions', [])) <= 1:
            return 'placeholder'
        return None

    def github_token_present(self, github_username: str) -> bool:
        """
        Whether the GitHub tokens secret holds a token for the given user.

        Raises:
            botocore.exceptions.ClientError: For errors other than a missing secret
        """
        try:
            response = self.client.get_secret_value(SecretId=SECRETS_MANAGER_GITHUB_TOKENS_SECRET_NAME)
        except ClientError as error:
            if error.response['Error']['Code'] == 'ResourceNotFoundException':
                return False
            raise

        try:
            tokens = json.loads(response.get('SecretString') or '{}')
        except json.JSONDecodeError:
            return False

        return isinstance(tokens, dict) and bool(tokens.get(github_username))
