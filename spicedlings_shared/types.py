"""
Shared type definitions for the Spicedlings Final Projects tooling.

This module defines TypedDict classes for the per-student configuration files
and the small immutable value types derived from them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TypedDict, Literal, List, Dict, Union, Set, Optional

# Scalar values accepted in a service environment map
EnvironmentValue = Union[str, int, float, bool]

# Deploy targets offered by the CLI
DeployTarget = Literal['pipeline-step-1', 'fargate-service', 'pipeline-step-2']


class ServiceType(str, Enum):
    """Closed set of service kinds a project may declare."""
    NODE_SERVER = 'node-server'
    POSTGRES = 'postgres'


class ServiceState(str, Enum):
    """Lifecycle of a registered service within one deploy."""
    CONSTRUCTED = 'constructed'
    WIRED = 'wired'


@dataclass(frozen=True)
class SpicedlingIdentity:
    """Identity tuple every derived resource name and tag is keyed on."""
    cohort: str
    first_name: str
    last_name: str


class ServiceConfig(TypedDict, total=False):
    """Service entry of a per-student configuration file."""
    type: ServiceType
    name: str
    configs: Dict[str, Union[str, bool, None]]
    environment: Dict[str, EnvironmentValue]
    secret_environment_variables: Set[str]
    random_secret_environment_variables: Set[str]


class RepositoryConfig(TypedDict, total=False):
    """GitHub repository the pipeline sources from."""
    github_owner: str
    repo_name: str
    branch: str
    invited_github_username: str


class SpicedlingConfigsDict(TypedDict):
    """Raw `configs` object exported by a per-student configuration module."""
    first_name: str
    last_name: str
    cohort: str
    sub_domain: str
    repository: RepositoryConfig
    services: List[ServiceConfig]


@dataclass(frozen=True)
class SpicedlingConfigs:
    """Validated per-student configuration."""
    identity: SpicedlingIdentity
    sub_domain: str
    github_owner: str
    repo_name: str
    branch: str
    invited_github_username: str
    services: List[ServiceConfig]
    file_name: Optional[str] = None

    @property
    def cohort(self) -> str:
        return self.identity.cohort

    @property
    def first_name(self) -> str:
        return self.identity.first_name

    @property
    def last_name(self) -> str:
        return self.identity.last_name

    @property
    def full_name(self) -> str:
        return f"{self.identity.first_name} {self.identity.last_name}"


class ImageDefinition(TypedDict):
    """Record of the imagedefinitions.json artifact read by the ECS deploy action."""
    name: str
    imageUri: str


class ValidationErrorDetail(TypedDict):
    """Single field-level validation error."""
    field: str
    message: str
