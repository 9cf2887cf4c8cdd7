#!/usr/bin/env python3
"""
CDK Application Entry Point.

This is the main entry point for the CDK application. It always defines the
one-time core stack; given the `configsPath` context it also defines the three
stacks of one Spicedling project.

Usage:
    # Core stack (VPC, load balancer, HTTP listener)
    cdk deploy SpicedlingsFinalProjectsCore

    # Project stacks, configsPath is relative to the projects directory
    cdk deploy SpicedlingFinalProjectPipelineJasmineDanielStreif -c configsPath=jasmine/daniel_streif.py
    cdk deploy SpicedlingFinalProjectFargateServiceJasmineDanielStreif -c configsPath=jasmine/daniel_streif.py
    cdk deploy SpicedlingFinalProjectPipelineJasmineDanielStreif -c configsPath=jasmine/daniel_streif.py \\
        -c fargateDeployStage=true

    The `spicedlings-deploy` CLI assembles these commands interactively.

Environment Configuration:
    - CDK_DEFAULT_ACCOUNT: AWS account ID
    - CDK_DEFAULT_REGION: AWS region
    - SPICEDLINGS_POSTGRES_PASSWORD: Postgres password, for projects that need one
"""

import os
import sys

from aws_cdk import App, Environment

from spicedlings import (
    CoreStack,
    SpicedlingFargateServiceStack,
    SpicedlingPipelineStack,
    SpicedlingServicesStack,
)
from spicedlings_shared.configs import load_spicedling_configs
from spicedlings_shared.errors import ConfigurationError, SpicedlingsError
from spicedlings_shared.logger import create_logger
from spicedlings_shared.names import (
    fargate_service_stack_name,
    pipeline_stack_name,
    services_stack_name,
    stack_tags,
)
from spicedlings_shared.priorities import TargetGroupPriorities
from spicedlings_shared.services import ServiceRegistry
from spicedlings_shared.settings import (
    APPLICATION_GROUP_TAG,
    APPLICATION_TAG_PREFIX,
    CORE_STACK_NAME,
    PRIVATE_SUBNET,
)

CONFIGS_PATH_CONTEXT = 'configsPath'


def build_app(app: App, logger, priorities: TargetGroupPriorities = None) -> App:
    """
    Define the stacks of the app.

    Args:
        app: CDK app, holding the context
        logger: StructuredLogger for operator warnings
        priorities: Listener rule priority allocator, the repository table if omitted

    Returns:
        The same app, with its stacks defined
    """
    account = os.environ.get('CDK_DEFAULT_ACCOUNT')
    region = os.environ.get('CDK_DEFAULT_REGION')
    env = Environment(account=account, region=region) if account and region else None

    # 1. Core
    core = CoreStack(
        app,
        CORE_STACK_NAME,
        private_subnet=PRIVATE_SUBNET,
        env=env,
        tags={
            'ApplicationGroup': APPLICATION_GROUP_TAG,
            'Application': f"{APPLICATION_TAG_PREFIX} Core",
            'ApplicationRole': 'Core',
        },
    )

    configs_path = app.node.try_get_context(CONFIGS_PATH_CONTEXT)
    if not configs_path:
        return app

    # 2. Project stacks
    spicedling_configs = load_spicedling_configs(configs_path)
    identity = spicedling_configs.identity
    registry = ServiceRegistry()

    services = SpicedlingServicesStack(
        app,
        services_stack_name(identity),
        spicedling_configs=spicedling_configs,
        registry=registry,
        logger=logger,
        env=env,
        tags=stack_tags('Services', identity),
    )

    fargate = SpicedlingFargateServiceStack(
        app,
        fargate_service_stack_name(identity),
        spicedling_configs=spicedling_configs,
        core=core,
        services=services,
        priorities=priorities or TargetGroupPriorities(),
        private_subnet=PRIVATE_SUBNET,
        env=env,
        tags=stack_tags('Fargate Service', identity),
    )

    SpicedlingPipelineStack(
        app,
        pipeline_stack_name(identity),
        spicedling_configs=spicedling_configs,
        registry=registry,
        fargate_service=fargate.fargate_service,
        env=env,
        tags=stack_tags('Pipeline', identity),
    )

    return app


def main() -> None:
    logger = create_logger(operation='synth')
    app = App()

    try:
        build_app(app, logger)
    except ConfigurationError as error:
        logger.log_configuration_error(errors=error.details, errorCode=error.code, errorMessage=error.message)
        sys.exit(2)
    except SpicedlingsError as error:
        logger.log_domain_error(error.code, error.message)
        sys.exit(3 if error.code == 'NOT_FOUND' else 1)

    app.synth()


if __name__ == '__main__':
    main()
