"""
Unit tests for the CodeBuild build spec assembly.
"""

import json

import pytest

from spicedlings_shared.buildspec import (
    build_commands,
    build_spec,
    image_definitions,
    image_definitions_command,
    post_build_commands,
    pre_build_commands,
)
from spicedlings_shared.services import ServiceRegistry, build_service


@pytest.fixture
def registry(raw_configs):
    registry = ServiceRegistry()
    node_config, postgres_config = raw_configs['services']
    registry.register(build_service(node_config, 'node-repo', 'node-arn', 'pw'))
    registry.register(build_service(postgres_config, 'pg-repo', 'pg-arn', 'pw'))
    return registry


class TestBuildCommands:
    """Test the aggregation of per-service commands."""

    def test_build_commands_follow_registration_order(self, registry):
        node, database = list(registry)

        assert build_commands(registry) == node.build_commands + database.build_commands

    def test_image_definitions(self, registry):
        assert image_definitions(registry) == [
            {'name': 'node-server', 'imageUri': 'node-repo:latest'},
            {'name': 'postgres', 'imageUri': 'pg-repo:latest'},
        ]

    def test_image_definitions_command(self, registry):
        """Test the image definitions are written as one compact JSON array."""
        command = image_definitions_command(registry)

        assert command == (
            "echo '[{\"name\":\"node-server\",\"imageUri\":\"node-repo:latest\"},"
            "{\"name\":\"postgres\",\"imageUri\":\"pg-repo:latest\"}]' > imagedefinitions.json"
        )
        records = command[len("echo '"):command.index("' >")]
        assert json.loads(records) == image_definitions(registry)

    def test_image_definitions_written_once_and_last(self, registry):
        """Test the image definitions step closes the post build phase."""
        commands = post_build_commands(registry)
        node, database = list(registry)

        assert commands[:-2] == node.post_build_commands + database.post_build_commands
        assert commands[-2] == 'echo Writing image definitions file...'
        assert commands[-1] == image_definitions_command(registry)
        assert sum('imagedefinitions.json' in command for command in commands) == 1

    def test_empty_registry(self):
        """Test an empty registry still writes an (empty) image definitions file."""
        registry = ServiceRegistry()

        assert build_commands(registry) == []
        assert post_build_commands(registry)[-1] == "echo '[]' > imagedefinitions.json"


class TestBuildSpec:
    """Test the full build spec object."""

    def test_build_spec(self, registry):
        spec = build_spec(registry, 'spicedling-final-project-jasmine-daniel-streif/artifact')

        assert spec['version'] == '0.2'
        assert spec['phases']['pre_build']['commands'] == pre_build_commands()
        assert spec['phases']['build']['commands'] == build_commands(registry)
        assert spec['phases']['post_build']['commands'] == post_build_commands(registry)
        assert spec['artifacts'] == {
            'files': '**/*',
            'name': 'spicedling-final-project-jasmine-daniel-streif/artifact',
        }

    def test_pre_build_logs_in_to_ecr(self):
        commands = pre_build_commands()

        assert commands[0] == 'echo Logging in to Amazon ECR...'
        assert 'aws ecr get-login-password' in commands[-1]
        assert 'docker login --username AWS --password-stdin' in commands[-1]
