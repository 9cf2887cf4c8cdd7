"""
Interactive deploy CLI of the Spicedlings Final Projects.

Prompts for a cohort, a student and a stack, then shells out to the CDK
toolkit from the deployments directory:

    $ spicedlings-deploy deploy
    ? Which cohort would you like to deploy?  Jasmine
    ? Which student would you like to deploy?  Daniel Streif
    ? Which stack would you like to deploy?  Pipeline [Step I]

Every prompt can be answered up front through options, which makes the
commands scriptable:

    spicedlings-deploy deploy --cohort jasmine --student daniel_streif --target fargate-service

Exit codes:
    0: success
    1: deploy failure without exit status, or unexpected error
    2: configuration error
    3: unknown cohort, student or target
    n: exit status of a failed `cdk deploy`
"""

import functools
import shlex
from pathlib import Path
from typing import List, Optional

import click
import questionary
from questionary import Choice, Style

from spicedlings_shared.configs import list_cohorts, list_student_files, load_spicedling_configs
from spicedlings_shared.errors import ConfigurationError, DeployError, NotFoundError, SpicedlingsError
from spicedlings_shared.logger import create_logger
from spicedlings_shared.names import upper_first
from spicedlings_shared.paths import PROJECTS, TARGET_GROUPS_PRIORITIES
from spicedlings_shared.priorities import TargetGroupPriorities
from spicedlings_shared.types import SpicedlingConfigs

from spicedlings_cli.service import TARGETS, DeployService, SecretsService


custom_style = Style(
    [
        ("qmark", "fg:#e4572e bold"),
        ("question", "bold"),
        ("answer", "fg:#e4572e bold"),
        ("pointer", "fg:#e4572e bold"),
        ("highlighted", "fg:#e4572e bold"),
        ("selected", "fg:#e4572e"),
    ]
)

EXIT_CODE_MAP = {
    'CONFIGURATION_ERROR': 2,
    'PRIORITY_TABLE_ERROR': 2,
    'NOT_FOUND': 3,
}


def _select(message: str, choices: List[Choice]):
    answer = questionary.select(message, choices=choices, style=custom_style).ask()
    # Ctrl-C
    if answer is None:
        raise click.Abort()
    return answer


def handle_errors(command):
    """Map domain errors raised by a command to logged failures and exit codes."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        logger = ctx.obj['logger']
        try:
            return command(*args, **kwargs)
        except (click.exceptions.Exit, click.Abort, click.ClickException):
            raise
        except ConfigurationError as error:
            logger.log_configuration_error(
                errors=error.details.get('errors', error.details),
                errorCode=error.code,
                errorMessage=error.message,
            )
            click.echo(f"Error: {error.message}", err=True)
            for detail in error.details.get('errors', []):
                click.echo(f"  - {detail['field']}: {detail['message']}", err=True)
            ctx.exit(EXIT_CODE_MAP[error.code])
        except DeployError as error:
            logger.log_domain_error(error_code=error.code, error_message=error.message)
            click.echo(f"Error: {error.message}", err=True)
            ctx.exit(error.return_code or 1)
        except SpicedlingsError as error:
            logger.log_domain_error(error_code=error.code, error_message=error.message)
            click.echo(f"Error: {error.message}", err=True)
            ctx.exit(EXIT_CODE_MAP.get(error.code, 1))
        except Exception as error:
            logger.log_unexpected_error(error_type=type(error).__name__, error_message=str(error))
            click.echo(f"Unexpected error: {error}", err=True)
            ctx.exit(1)

    return wrapper


def resolve_cohort(cohort: Optional[str], projects_dir: Path) -> str:
    cohorts = list_cohorts(projects_dir)
    if cohort is None:
        return _select(
            'Which cohort would you like to deploy?',
            [Choice(title=upper_first(name), value=name) for name in cohorts],
        )
    if cohort not in cohorts:
        raise NotFoundError(f"Unknown cohort {cohort}, expected one of: {', '.join(cohorts)}")
    return cohort


def resolve_student(cohort: str, student: Optional[str], projects_dir: Path) -> SpicedlingConfigs:
    """
    Load the configuration of the selected student.

    `student` is a configuration file name, with or without the `.py` suffix.
    """
    file_names = list_student_files(cohort, projects_dir)

    if student is None:
        projects = [load_spicedling_configs(Path(cohort) / file_name, projects_dir) for file_name in file_names]
        return _select(
            'Which student would you like to deploy?',
            [Choice(title=project.full_name, value=project) for project in projects],
        )

    file_name = student if student.endswith('.py') else f"{student}.py"
    if file_name not in file_names:
        raise NotFoundError(
            f"Unknown student in cohort {cohort}, expected one of: "
            f"{', '.join(name[:-3] for name in file_names)}"
        )
    return load_spicedling_configs(Path(cohort) / file_name, projects_dir)


def resolve_target(target: Optional[str]) -> str:
    if target is None:
        return _select(
            'Which stack would you like to deploy?',
            [Choice(title=definition.label, value=key) for key, definition in TARGETS.items()],
        )
    return target


def _echo_command(command: List[str]) -> None:
    click.echo(' '.join(shlex.quote(part) for part in command))


@click.group()
@click.option(
    '--projects-dir',
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=PROJECTS,
    show_default=True,
    help='Directory holding the <cohort>/<student>.py configuration files',
)
@click.pass_context
def cli(ctx, projects_dir):
    """Deploy the Spicedlings Final Projects stacks"""
    ctx.ensure_object(dict)
    ctx.obj.setdefault('logger', create_logger(operation=ctx.invoked_subcommand or 'cli'))
    ctx.obj['projects_dir'] = projects_dir


@cli.command()
@click.option('--cohort', help='Cohort directory name, e.g. jasmine')
@click.option('--student', help='Configuration file name, e.g. daniel_streif')
@click.option('--target', type=click.Choice(list(TARGETS)), help='Stack to deploy')
@click.option('--dry-run', is_flag=True, help='Print the command without running it')
@click.pass_context
@handle_errors
def deploy(ctx, cohort, student, target, dry_run):
    """Deploy a stack of a student project"""
    projects_dir = ctx.obj['projects_dir']

    cohort = resolve_cohort(cohort, projects_dir)
    configs = resolve_student(cohort, student, projects_dir)
    target = resolve_target(target)

    service = DeployService(ctx.obj['logger'])
    command = service.deploy_command(configs, target, cohort)

    if dry_run:
        _echo_command(command)
        return

    service.run(command, stack=service.stack_name(configs, target))


@cli.command('deploy-core')
@click.option('--dry-run', is_flag=True, help='Print the command without running it')
@click.pass_context
@handle_errors
def deploy_core(ctx, dry_run):
    """Deploy the core stack (VPC, load balancer), once per account"""
    service = DeployService(ctx.obj['logger'])
    command = service.core_deploy_command()

    if dry_run:
        _echo_command(command)
        return

    service.run(command, stack=command[-1])


@cli.command()
@click.option(
    '--file',
    'priorities_file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=TARGET_GROUPS_PRIORITIES,
    show_default=True,
)
@click.pass_context
@handle_errors
def priorities(ctx, priorities_file):
    """Print the target group priority table"""
    table = TargetGroupPriorities(priorities_file).priorities()

    if not table:
        click.echo('No target group priorities allocated yet.')
        return

    width = max(len(name) for name in table)
    for name, priority in sorted(table.items(), key=lambda item: item[1]):
        click.echo(f"{priority:>4}  {name:<{width}}")


@cli.command('check-secrets')
@click.option('--cohort', help='Cohort directory name, e.g. jasmine')
@click.option('--student', help='Configuration file name, e.g. daniel_streif')
@click.pass_context
@handle_errors
def check_secrets(ctx, cohort, student):
    """List the secrets of a student project that still need a value"""
    projects_dir = ctx.obj['projects_dir']
    logger = ctx.obj['logger']

    cohort = resolve_cohort(cohort, projects_dir)
    configs = resolve_student(cohort, student, projects_dir)

    service = SecretsService(ctx.obj.get('secretsmanager_client'))

    unpopulated = service.unpopulated_secrets(configs)
    for entry in unpopulated:
        click.echo(f"[{entry['status']}] {entry['secretName']} ({entry['service']}: {entry['variable']})")
        logger.log_operator_warning(
            message='Secret needs a value',
            service=entry['service'],
            secretName=entry['secretName'],
            status=entry['status'],
        )
    if not unpopulated:
        click.echo('All manual secrets have been given a value.')

    username = configs.invited_github_username
    if service.github_token_present(username):
        click.echo(f"GitHub token for {username}: present")
    else:
        click.echo(f"GitHub token for {username}: missing")
        logger.log_operator_warning(message='GitHub token missing', githubUsername=username)


if __name__ == '__main__':
    cli()
