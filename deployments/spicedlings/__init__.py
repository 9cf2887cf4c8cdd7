"""Spicedlings Final Projects CDK stacks."""

from .core_stack import CoreStack
from .services_stack import SpicedlingServicesStack, ServiceResources
from .fargate_service_stack import SpicedlingFargateServiceStack
from .pipeline_stack import SpicedlingPipelineStack

__all__ = [
    "CoreStack",
    "SpicedlingServicesStack",
    "ServiceResources",
    "SpicedlingFargateServiceStack",
    "SpicedlingPipelineStack",
]
