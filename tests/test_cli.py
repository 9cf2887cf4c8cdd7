"""
Tests for the deploy CLI.
Commands run through click's CliRunner; prompts and child processes are replaced.
"""

import subprocess

import pytest
from click.testing import CliRunner

from conftest import log_events
from spicedlings_cli import deploy as deploy_module
from spicedlings_cli.deploy import cli
from spicedlings_cli.service import DeployService
from spicedlings_shared.configs import load_spicedling_configs
from spicedlings_shared.errors import DeployError, NotFoundError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, projects_dir, logger):
    """Invoke the CLI on the test projects with the test logger."""
    def _invoke(*args):
        return runner.invoke(
            cli,
            ['--projects-dir', str(projects_dir), *args],
            obj={'logger': logger},
        )
    return _invoke


class _Runs(list):
    """Recorded runs, with the status the next run returns."""


@pytest.fixture
def completed_runs(monkeypatch):
    """Replace subprocess.run, recording the commands and returning a fixed status."""
    runs = _Runs()
    status = {'returncode': 0}

    def fake_run(command, **kwargs):
        runs.append({'command': command, **kwargs})
        return subprocess.CompletedProcess(command, status['returncode'])

    monkeypatch.setattr(subprocess, 'run', fake_run)
    runs.status = status
    return runs


@pytest.fixture
def answers(monkeypatch):
    """Answer the interactive prompts by choice title."""
    given = {}

    def fake_select(message, choices):
        for choice in choices:
            if choice.title == given[message]:
                return choice.value
        raise AssertionError(f"No choice titled {given[message]!r} for {message!r}")

    monkeypatch.setattr(deploy_module, '_select', fake_select)
    return given


class TestDeployCommand:
    """Test the deploy command."""

    @pytest.mark.parametrize('target,expected', [
        ('pipeline-step-1',
         'npx cdk deploy SpicedlingFinalProjectPipelineJasmineDanielStreif '
         '-c configsPath=jasmine/daniel_streif.py'),
        ('fargate-service',
         'npx cdk deploy SpicedlingFinalProjectFargateServiceJasmineDanielStreif '
         '-c configsPath=jasmine/daniel_streif.py'),
        ('pipeline-step-2',
         'npx cdk deploy SpicedlingFinalProjectPipelineJasmineDanielStreif '
         '-c fargateDeployStage=true -c configsPath=jasmine/daniel_streif.py'),
    ])
    def test_dry_run(self, invoke, target, expected):
        """Test each target prints the matching cdk command."""
        result = invoke('deploy', '--cohort', 'jasmine', '--student', 'daniel_streif', '--target', target, '--dry-run')

        assert result.exit_code == 0, result.output
        assert expected in result.output

    def test_student_accepts_file_name(self, invoke):
        result = invoke('deploy', '--cohort', 'jasmine', '--student', 'daniel_streif.py',
                        '--target', 'fargate-service', '--dry-run')

        assert result.exit_code == 0, result.output

    def test_interactive_prompts(self, invoke, answers):
        """Test cohort, student and stack can be picked from the prompts."""
        answers.update({
            'Which cohort would you like to deploy?': 'Jasmine',
            'Which student would you like to deploy?': 'Daniel Streif',
            'Which stack would you like to deploy?': 'Pipeline [Step II]',
        })

        result = invoke('deploy', '--dry-run')

        assert result.exit_code == 0, result.output
        assert 'SpicedlingFinalProjectPipelineJasmineDanielStreif -c fargateDeployStage=true' in result.output

    def test_runs_cdk_from_deployments(self, invoke, completed_runs, logger, log_stream):
        """Test the child runs in the deployments directory with the correlation id."""
        result = invoke('deploy', '--cohort', 'jasmine', '--student', 'daniel_streif', '--target', 'fargate-service')

        assert result.exit_code == 0, result.output
        [run] = completed_runs
        assert run['command'][:4] == ['npx', 'cdk', 'deploy', 'SpicedlingFinalProjectFargateServiceJasmineDanielStreif']
        assert run['cwd'].endswith('deployments')
        assert run['env']['SPICEDLINGS_CORRELATION_ID'] == logger.correlation_id

        events = [entry['event'] for entry in log_events(log_stream)]
        assert events == ['deploy_start', 'deploy_complete']

    def test_child_exit_status_is_propagated(self, invoke, completed_runs, log_stream):
        completed_runs.status['returncode'] = 4

        result = invoke('deploy', '--cohort', 'jasmine', '--student', 'daniel_streif', '--target', 'fargate-service')

        assert result.exit_code == 4
        assert log_events(log_stream)[-1]['errorCode'] == 'DEPLOY_ERROR'

    def test_unknown_cohort(self, invoke, log_stream):
        """Test an unknown cohort exits with the not found status."""
        result = invoke('deploy', '--cohort', 'rosemary', '--dry-run')

        assert result.exit_code == 3
        assert 'Unknown cohort rosemary' in result.output
        assert log_events(log_stream)[-1]['errorCode'] == 'NOT_FOUND'

    def test_unknown_student(self, invoke):
        result = invoke('deploy', '--cohort', 'jasmine', '--student', 'nobody', '--dry-run')

        assert result.exit_code == 3
        assert 'daniel_streif' in result.output

    def test_invalid_configuration(self, invoke, projects_dir, log_stream):
        """Test an invalid configuration file exits with the configuration status."""
        (projects_dir / 'jasmine' / 'broken.py').write_text("configs = {'first_name': 'Ada'}\n", encoding='utf-8')

        result = invoke('deploy', '--cohort', 'jasmine', '--student', 'broken', '--target', 'fargate-service')

        assert result.exit_code == 2
        entry = log_events(log_stream)[-1]
        assert entry['event'] == 'configuration_error'
        assert any(error['field'] == 'last_name' for error in entry['errors'])

    def test_prompt_cancelled(self, invoke, monkeypatch):
        """Test Ctrl-C in a prompt aborts without a deploy."""
        class CancelledQuestion:
            def ask(self):
                return None

        monkeypatch.setattr(deploy_module.questionary, 'select', lambda *args, **kwargs: CancelledQuestion())

        result = invoke('deploy')

        assert result.exit_code == 1
        assert 'Aborted' in result.output

    def test_unexpected_error(self, invoke, monkeypatch, log_stream):
        def broken_command(*args, **kwargs):
            raise KeyError('name')

        monkeypatch.setattr(DeployService, 'deploy_command', broken_command)

        result = invoke('deploy', '--cohort', 'jasmine', '--student', 'daniel_streif', '--target', 'fargate-service')

        assert result.exit_code == 1
        assert log_events(log_stream)[-1]['event'] == 'unexpected_error'


class TestDeployCoreCommand:
    """Test the deploy-core command."""

    def test_dry_run(self, invoke):
        result = invoke('deploy-core', '--dry-run')

        assert result.exit_code == 0
        assert 'npx cdk deploy SpicedlingsFinalProjectsCore' in result.output

    def test_runs_cdk(self, invoke, completed_runs):
        result = invoke('deploy-core')

        assert result.exit_code == 0
        assert completed_runs[0]['command'] == ['npx', 'cdk', 'deploy', 'SpicedlingsFinalProjectsCore']


class TestPrioritiesCommand:
    """Test the priorities command."""

    def test_prints_table_by_priority(self, invoke, priorities_file):
        priorities_file.write_text('{"StackB": 2, "StackA": 1}', encoding='utf-8')

        result = invoke('priorities', '--file', str(priorities_file))

        assert result.exit_code == 0
        assert result.output.index('StackA') < result.output.index('StackB')

    def test_empty_table(self, invoke, priorities_file):
        result = invoke('priorities', '--file', str(priorities_file))

        assert result.exit_code == 0
        assert 'No target group priorities allocated yet.' in result.output

    def test_malformed_table(self, invoke, priorities_file):
        priorities_file.write_text('{"StackA": 1, "StackB": 1}', encoding='utf-8')

        result = invoke('priorities', '--file', str(priorities_file))

        assert result.exit_code == 2


class TestDeployService:
    """Test the deploy service outside the CLI."""

    def test_failure_to_start(self, logger, configs_for_service):
        def missing_npx(command, **kwargs):
            raise FileNotFoundError(2, 'No such file or directory', 'npx')

        service = DeployService(logger, runner=missing_npx)

        with pytest.raises(DeployError) as exc_info:
            service.run(service.deploy_command(configs_for_service, 'fargate-service', 'jasmine'), stack='Stack')

        assert exc_info.value.return_code is None

    def test_unknown_target(self, logger, configs_for_service):
        with pytest.raises(NotFoundError) as exc_info:
            DeployService(logger).deploy_command(configs_for_service, 'pipeline-step-3', 'jasmine')

        assert exc_info.value.code == 'NOT_FOUND'


@pytest.fixture
def configs_for_service(projects_dir):
    return load_spicedling_configs('jasmine/daniel_streif.py', projects_dir)
