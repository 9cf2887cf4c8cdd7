"""
Settings for the Spicedlings Final Projects deployments.

Constants are shared by the CDK stacks and the CLI. The only sensitive value,
the Postgres password baked into the project containers, is read from the
environment and validated on first use.
"""

import os

from spicedlings_shared.errors import ConfigurationError

# Configs -------------------------------------------------------------------------

# Running the containers in a private subnet requires an expensive NAT gateway
PRIVATE_SUBNET = False
SECRETS_MANAGER_GITHUB_TOKENS_SECRET_NAME = 'spicedlings-final-projects-github-tokens'
DOCKERIZER_REPO = 'https://github.com/OliverSieweke/spicedlings-final-projects-dockerizer.git'
DOMAIN_NAME = 'oliversieweke.com'
DOCKER_IMAGES_LATEST_TAG = 'latest'

# Single exposed node server per project, so the port is fixed
NODE_SERVER_PORT = 8080
DEFAULT_DB_SETUP_SCRIPT_PATH = './setup.sql'

DEFAULT_BRANCH = 'master'
DEFAULT_INVITED_GITHUB_USERNAME = 'OliverSieweke'

# Resources -----------------------------------------------------------------------

# Set after the first deploy of the core stack
CORE_LOAD_BALANCER_SECURITY_GROUP_ID = 'sg-09e95cbdc436adad0'

# Names & Tags --------------------------------------------------------------------

CORE_STACK_NAME = 'SpicedlingsFinalProjectsCore'
APPLICATION_GROUP_TAG = 'Spicedlings Final Projects'
APPLICATION_TAG_PREFIX = 'Spicedling Final Project'
SPICEDLING_STACKS_NAME_PREFIX = 'SpicedlingFinalProject'

# Environment ---------------------------------------------------------------------

POSTGRES_PASSWORD_ENVIRONMENT_VARIABLE = 'SPICEDLINGS_POSTGRES_PASSWORD'


def load_postgres_password() -> str:
    """
    Read the Postgres password from the environment.

    Returns:
        The password used both by the Postgres container and in the node
        server's database URL

    Raises:
        ConfigurationError: If the environment variable is missing or empty
    """
    value = os.environ.get(POSTGRES_PASSWORD_ENVIRONMENT_VARIABLE)
    if not value:
        raise ConfigurationError(
            f"Missing required environment variable: {POSTGRES_PASSWORD_ENVIRONMENT_VARIABLE}",
            {'variable': POSTGRES_PASSWORD_ENVIRONMENT_VARIABLE}
        )
    return value
