"""Shared utilities for the Spicedlings Final Projects deployments."""

from .types import (
    ServiceType,
    ServiceState,
    SpicedlingIdentity,
    SpicedlingConfigs,
    ServiceConfig,
    ImageDefinition,
)

from .errors import (
    SpicedlingsError,
    ConfigurationError,
    PriorityTableError,
    NotFoundError,
    ServiceStateError,
    DeployError,
)

from .services import (
    Service,
    ServiceRegistry,
    build_service,
)

from .priorities import TargetGroupPriorities

__all__ = [
    # Types
    'ServiceType',
    'ServiceState',
    'SpicedlingIdentity',
    'SpicedlingConfigs',
    'ServiceConfig',
    'ImageDefinition',
    # Errors
    'SpicedlingsError',
    'ConfigurationError',
    'PriorityTableError',
    'NotFoundError',
    'ServiceStateError',
    'DeployError',
    # Services
    'Service',
    'ServiceRegistry',
    'build_service',
    # Priorities
    'TargetGroupPriorities',
]
