"""
Services CDK Stack of a Spicedling project.

This stack initializes the services a project declares: one ECR repository
per service and one Secrets Manager secret per secret environment variable.
Every built service is registered in the ServiceRegistry handed in by the app,
from which the Fargate service and pipeline stacks read them.

The stack does not need to be deployed on its own, it is created as a
dependency of the pipeline or Fargate service stacks:

    cdk deploy SpicedlingFinalProjectServicesJasmineDanielStreif
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from aws_cdk import (
    Annotations,
    Duration,
    RemovalPolicy,
    Stack,
    aws_ecr as ecr,
    aws_ecs as ecs,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

from spicedlings_shared.logger import StructuredLogger
from spicedlings_shared.names import camel_case, resource_kebab_case_name, secret_name
from spicedlings_shared.services import ServiceRegistry, build_service, requires_postgres_password
from spicedlings_shared.settings import load_postgres_password
from spicedlings_shared.types import ServiceConfig, SpicedlingConfigs


@dataclass
class ServiceResources:
    """CDK handles backing one registered service."""
    repository: ecr.Repository
    secrets: Dict[str, ecs.Secret] = field(default_factory=dict)


class SpicedlingServicesStack(Stack):
    """
    Image repositories and secrets of the services of one project.

    Attributes:
        registry: Registry the services were registered in
        resources: CDK handles per service container name
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        spicedling_configs: SpicedlingConfigs,
        registry: ServiceRegistry,
        logger: StructuredLogger,
        **kwargs
    ) -> None:
        """
        Initialize the services stack.

        Args:
            scope: CDK app scope
            construct_id: Stack identifier (see names.services_stack_name)
            spicedling_configs: Validated project configuration
            registry: Empty registry to populate
            logger: Logger for operator warnings
            **kwargs: Additional stack properties (env, tags, etc.)
        """
        super().__init__(scope, construct_id, **kwargs)

        self.registry = registry
        self.resources: Dict[str, ServiceResources] = {}
        self._identity = spicedling_configs.identity

        # Only read the password when a service actually needs it
        postgres_password: Optional[str] = None
        if any(requires_postgres_password(config) for config in spicedling_configs.services):
            postgres_password = load_postgres_password()

        for config in spicedling_configs.services:
            self._add_service(config, postgres_password, logger)

    def _add_service(
        self,
        config: ServiceConfig,
        postgres_password: Optional[str],
        logger: StructuredLogger,
    ) -> None:
        # 1. Image repository
        repository = ecr.Repository(
            self,
            camel_case(config['name']),
            repository_name=resource_kebab_case_name(config['name'], self._identity),
            lifecycle_rules=[
                ecr.LifecycleRule(
                    description='Remove Past Images after 30 days',
                    rule_priority=1,
                    tag_status=ecr.TagStatus.UNTAGGED,
                    max_image_age=Duration.days(30),
                ),
            ],
            removal_policy=RemovalPolicy.DESTROY,
        )

        # 2. Service
        service = build_service(
            config,
            repository_uri=repository.repository_uri,
            repository_arn=repository.repository_arn,
            postgres_password=postgres_password,
        )

        # 3. Secrets, generated with a random value; manual ones are overwritten by the operator
        resources = ServiceResources(repository=repository)
        for key in service.secret_variables:
            secret = secretsmanager.Secret(
                self,
                camel_case(f"{self.stack_name}{key}"),
                secret_name=secret_name(self.stack_name, key),
                removal_policy=RemovalPolicy.DESTROY,
                description=f"Environment Variable for the service \"{service.name}\" of the stack \"{self.stack_name}\".",
            )
            resources.secrets[key] = ecs.Secret.from_secrets_manager(secret)

        for warning in service.operator_warnings:
            Annotations.of(self).add_warning(warning)
            logger.log_operator_warning(
                message=warning,
                service=service.name,
                secretNames=[secret_name(self.stack_name, key) for key in service.secret_environment_variables],
            )

        # 4. Register
        self.registry.register(service)
        self.resources[service.container_name] = resources
