"""
Shared fixtures for the Spicedlings Final Projects tests.
"""

import copy
import io
import json

import pytest

from spicedlings_shared.logger import StructuredLogger
from spicedlings_shared.types import ServiceType, SpicedlingIdentity


DANIEL_CONFIGS = {
    'first_name': 'Daniel',
    'last_name': 'Streif',
    'cohort': 'Jasmine',
    'sub_domain': 'climbers-paradise',
    'repository': {
        'github_owner': 'danielstreif',
        'repo_name': 'final-project',
        'branch': 'main',
    },
    'services': [
        {
            'type': ServiceType.NODE_SERVER,
            'name': 'Node Server',
            'configs': {
                'database_url_environment_variable': 'DATABASE_URL',
                'port_environment_variable': 'PORT',
                'build_step': True,
            },
            'environment': {
                'MAX_AGE': 604800000,
                'SOCKET_URL': 'http://climbers-paradise.oliversieweke.com',
            },
            'secret_environment_variables': {'MAPBOX_KEY'},
            'random_secret_environment_variables': {'SESSION_SECRET'},
        },
        {
            'type': ServiceType.POSTGRES,
            'name': 'Postgres',
            'configs': {'db_setup_script_path': './setup.sql'},
        },
    ],
}


@pytest.fixture
def identity():
    return SpicedlingIdentity(cohort='Jasmine', first_name='Daniel', last_name='Streif')


@pytest.fixture
def raw_configs():
    """A valid `configs` object, safe to mutate."""
    return copy.deepcopy(DANIEL_CONFIGS)


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    return StructuredLogger('01TESTCORRELATIONID', 'test', stream=log_stream)


def log_events(stream):
    """Parse the JSON lines written to a log stream."""
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


@pytest.fixture
def priorities_file(tmp_path):
    path = tmp_path / 'target_groups_priorities.json'
    path.write_text('{}', encoding='utf-8')
    return path


@pytest.fixture
def projects_dir(tmp_path):
    """A projects directory with one cohort holding one student."""
    cohort_dir = tmp_path / 'projects' / 'jasmine'
    cohort_dir.mkdir(parents=True)
    (cohort_dir / 'daniel_streif.py').write_text(
        'from spicedlings_shared.types import ServiceType\n\n'
        'configs = ' + repr(_plain(DANIEL_CONFIGS)) + '\n',
        encoding='utf-8',
    )
    (cohort_dir / '_helpers.py').write_text('', encoding='utf-8')
    return tmp_path / 'projects'


def _plain(value):
    """Replace enum members by their values so the configs can be written with repr."""
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, set):
        return sorted(value)
    if isinstance(value, ServiceType):
        return value.value
    return value
