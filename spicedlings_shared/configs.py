"""
Loading of per-student configuration files.

Projects live under `projects/<cohort>/<student>.py`; each module exports a
module-level `configs` dict:

    configs = {
        'first_name': 'Daniel',
        'last_name': 'Streif',
        'cohort': 'Jasmine',
        'sub_domain': 'climbers-paradise',
        'repository': {'github_owner': 'danielstreif', 'repo_name': 'final-project', 'branch': 'main'},
        'services': [
            {'type': ServiceType.NODE_SERVER, 'name': 'Node Server', 'configs': {...}},
            {'type': ServiceType.POSTGRES, 'name': 'Postgres'},
        ],
    }

Loading fails fast: a missing file, a module without `configs`, or any
validation error raises before a single resource is synthesized.
"""

import importlib.util
from pathlib import Path
from typing import Any, List, Union

from spicedlings_shared.errors import ConfigurationError, NotFoundError
from spicedlings_shared.paths import PROJECTS
from spicedlings_shared.settings import DEFAULT_BRANCH, DEFAULT_INVITED_GITHUB_USERNAME
from spicedlings_shared.types import (
    RepositoryConfig,
    SpicedlingConfigs,
    SpicedlingConfigsDict,
    SpicedlingIdentity,
)
from spicedlings_shared.validation import validate_spicedling_configs


def _load_module_configs(path: Path) -> Any:
    module_name = f"spicedlings_projects.{path.parent.name}.{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot load configuration file: {path}", {'path': str(path)})

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    if not hasattr(module, 'configs'):
        raise ConfigurationError(
            f"Configuration file does not export `configs`: {path}",
            {'path': str(path)}
        )
    return module.configs


def load_spicedling_configs(configs_path: Union[str, Path], projects_dir: Path = PROJECTS) -> SpicedlingConfigs:
    """
    Load and validate a project configuration.

    Args:
        configs_path: Path relative to the projects directory (e.g. 'jasmine/daniel_streif.py'),
            or an absolute path
        projects_dir: Projects directory

    Returns:
        Validated configuration

    Raises:
        NotFoundError: If the file does not exist
        ConfigurationError: If the file does not export valid `configs`
    """
    path = Path(projects_dir) / configs_path
    if not path.is_file():
        raise NotFoundError(f"Configuration file not found: {path}")

    raw = _load_module_configs(path)

    errors = validate_spicedling_configs(raw)
    if errors:
        raise ConfigurationError(
            f"Invalid configuration in {path}",
            {'path': str(path), 'errors': errors}
        )

    return _from_validated(raw, path.name)


def _from_validated(raw: SpicedlingConfigsDict, file_name: str) -> SpicedlingConfigs:
    repository: RepositoryConfig = raw['repository']
    return SpicedlingConfigs(
        identity=SpicedlingIdentity(
            cohort=raw['cohort'],
            first_name=raw['first_name'],
            last_name=raw['last_name'],
        ),
        sub_domain=raw['sub_domain'],
        github_owner=repository['github_owner'],
        repo_name=repository['repo_name'],
        branch=repository.get('branch', DEFAULT_BRANCH),
        invited_github_username=repository.get('invited_github_username', DEFAULT_INVITED_GITHUB_USERNAME),
        services=list(raw['services']),
        file_name=file_name,
    )


def list_cohorts(projects_dir: Path = PROJECTS) -> List[str]:
    """Cohort directory names, sorted."""
    if not Path(projects_dir).is_dir():
        raise NotFoundError(f"Projects directory not found: {projects_dir}")
    return sorted(
        entry.name for entry in Path(projects_dir).iterdir()
        if entry.is_dir() and not entry.name.startswith(('_', '.'))
    )


def list_student_files(cohort: str, projects_dir: Path = PROJECTS) -> List[str]:
    """Configuration file names of a cohort, sorted."""
    cohort_dir = Path(projects_dir) / cohort
    if not cohort_dir.is_dir():
        raise NotFoundError(f"Cohort not found: {cohort}")
    return sorted(
        entry.name for entry in cohort_dir.glob('*.py')
        if not entry.name.startswith('_')
    )


def load_cohort(cohort: str, projects_dir: Path = PROJECTS) -> List[SpicedlingConfigs]:
    """Load every project configuration of a cohort."""
    return [
        load_spicedling_configs(Path(cohort) / file_name, projects_dir)
        for file_name in list_student_files(cohort, projects_dir)
    ]
