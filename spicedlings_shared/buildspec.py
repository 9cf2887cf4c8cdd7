"""
CodeBuild build spec assembly.

The Build stage of a project pipeline dockerizes every registered service and
pushes the images to ECR. The commands of all services are concatenated in
registration order into the three phases of a single build spec; the last
post-build step writes `imagedefinitions.json`, which the ECS deploy action
reads to roll out the new images:

    [{"name":"node-server","imageUri":"<repository uri>:latest"}, ...]
"""

import json
from typing import Any, Dict, List

from spicedlings_shared.services import ServiceRegistry
from spicedlings_shared.types import ImageDefinition

IMAGE_DEFINITIONS_FILE = 'imagedefinitions.json'


def pre_build_commands() -> List[str]:
    # `aws ecr get-login` is gone from AWS CLI v2
    return [
        'echo Logging in to Amazon ECR...',
        'aws --version',
        'aws ecr get-login-password --region $AWS_DEFAULT_REGION | docker login --username AWS '
        '--password-stdin $(aws sts get-caller-identity --query Account --output text)'
        '.dkr.ecr.$AWS_DEFAULT_REGION.amazonaws.com',
    ]


def build_commands(registry: ServiceRegistry) -> List[str]:
    return [command for service in registry for command in service.build_commands]


def image_definitions(registry: ServiceRegistry) -> List[ImageDefinition]:
    return [
        {'name': service.container_name, 'imageUri': service.image_uri}
        for service in registry
    ]


def image_definitions_command(registry: ServiceRegistry) -> str:
    """Shell command writing the image definitions of all services in one JSON array."""
    records = json.dumps(image_definitions(registry), separators=(',', ':'))
    return f"echo '{records}' > {IMAGE_DEFINITIONS_FILE}"


def post_build_commands(registry: ServiceRegistry) -> List[str]:
    return [
        *(command for service in registry for command in service.post_build_commands),
        'echo Writing image definitions file...',
        image_definitions_command(registry),
    ]


def build_spec(registry: ServiceRegistry, artifact_name: str) -> Dict[str, Any]:
    """
    Build spec object for `codebuild.BuildSpec.from_object`.

    Args:
        registry: Services of the project, in registration order
        artifact_name: Name of the output artifact

    Returns:
        Build spec version 0.2 with pre_build, build and post_build phases
    """
    return {
        'version': '0.2',
        'phases': {
            'pre_build': {'commands': pre_build_commands()},
            'build': {'commands': build_commands(registry)},
            'post_build': {'commands': post_build_commands(registry)},
        },
        'artifacts': {
            'files': '**/*',
            'name': artifact_name,
        },
    }
