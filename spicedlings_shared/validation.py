"""
Per-student configuration validation.

This module implements validation of the `configs` object exported by a
project configuration file. Follows the "fail fast" principle: every error is
collected before anything is synthesized, and the loader raises once with all
of them.

Validates:
- identity fields and sub domain are present non-empty strings
- the sub domain is usable as a host label and a target group name
- the GitHub repository is fully specified
- services are a non-empty list of known service types
- variant specific configs (port variable of a node server, setup script path)
- environment values are scalars and secret names are strings
- at most one node server (single exposed port per project)
- no two services share a container name
"""

import re
from typing import Any, Dict, List

from spicedlings_shared.names import kebab_case
from spicedlings_shared.types import ServiceType, ValidationErrorDetail

# Host label that is also a valid target group name (max 32 characters)
SUB_DOMAIN_PATTERN = re.compile(r'^[a-z0-9]([a-z0-9-]{0,30}[a-z0-9])?$')
ENVIRONMENT_VARIABLE_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

CONFIGS_FIELDS = {'first_name', 'last_name', 'cohort', 'sub_domain', 'repository', 'services'}
REPOSITORY_FIELDS = {'github_owner', 'repo_name', 'branch', 'invited_github_username'}
SERVICE_FIELDS = {
    'type',
    'name',
    'configs',
    'environment',
    'secret_environment_variables',
    'random_secret_environment_variables',
}
SERVICE_CONFIGS_FIELDS = {
    ServiceType.NODE_SERVER: {'port_environment_variable', 'database_url_environment_variable', 'build_step'},
    ServiceType.POSTGRES: {'db_setup_script_path'},
}


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _require_string(container: Dict[str, Any], key: str, field: str, errors: List[ValidationErrorDetail]) -> None:
    if key not in container:
        errors.append({'field': field, 'message': 'Field is required'})
    elif not _is_non_empty_string(container[key]):
        errors.append({'field': field, 'message': 'Field must be a non-empty string'})


def _check_unexpected(container: Dict[str, Any], allowed: set, prefix: str, errors: List[ValidationErrorDetail]) -> None:
    for key in sorted(set(container) - allowed, key=str):
        errors.append({'field': f"{prefix}{key}", 'message': 'Unexpected field in configuration'})


def _validate_variable_names(value: Any, field: str, errors: List[ValidationErrorDetail]) -> None:
    if not isinstance(value, (set, frozenset, list, tuple)):
        errors.append({'field': field, 'message': 'Must be a set of environment variable names'})
        return
    for name in value:
        if not isinstance(name, str) or not ENVIRONMENT_VARIABLE_PATTERN.match(name):
            errors.append({'field': field, 'message': f"Invalid environment variable name: {name!r}"})


def _validate_service_configs(
    service_type: ServiceType,
    configs: Dict[str, Any],
    prefix: str,
    errors: List[ValidationErrorDetail],
) -> None:
    _check_unexpected(configs, SERVICE_CONFIGS_FIELDS[service_type], prefix, errors)

    if service_type is ServiceType.NODE_SERVER:
        if not isinstance(configs.get('port_environment_variable'), str) \
                or not ENVIRONMENT_VARIABLE_PATTERN.match(configs['port_environment_variable']):
            errors.append({
                'field': f"{prefix}port_environment_variable",
                'message': 'Node servers require a valid port environment variable name'
            })
        database_variable = configs.get('database_url_environment_variable')
        if database_variable is not None and (
                not isinstance(database_variable, str) or not ENVIRONMENT_VARIABLE_PATTERN.match(database_variable)):
            errors.append({
                'field': f"{prefix}database_url_environment_variable",
                'message': 'Must be a valid environment variable name'
            })
        if 'build_step' in configs and not isinstance(configs['build_step'], bool):
            errors.append({'field': f"{prefix}build_step", 'message': 'Must be a boolean'})

    elif service_type is ServiceType.POSTGRES:
        path = configs.get('db_setup_script_path')
        if path is not None and not _is_non_empty_string(path):
            errors.append({'field': f"{prefix}db_setup_script_path", 'message': 'Must be a non-empty string'})


def _validate_service(service: Any, index: int, errors: List[ValidationErrorDetail]) -> None:
    prefix = f"services[{index}]."

    if not isinstance(service, dict):
        errors.append({'field': f"services[{index}]", 'message': 'Service must be an object'})
        return

    _check_unexpected(service, SERVICE_FIELDS, prefix, errors)
    _require_string(service, 'name', f"{prefix}name", errors)
    if _is_non_empty_string(service.get('name')) and not kebab_case(service['name']):
        errors.append({'field': f"{prefix}name", 'message': 'Name must contain letters or digits'})

    service_type = None
    try:
        service_type = ServiceType(service.get('type'))
    except ValueError:
        errors.append({
            'field': f"{prefix}type",
            'message': f"Type must be one of: {', '.join(sorted(t.value for t in ServiceType))}"
        })

    configs = service.get('configs', {})
    if configs is None:
        configs = {}
    if not isinstance(configs, dict):
        errors.append({'field': f"{prefix}configs", 'message': 'Configs must be an object'})
    elif service_type is not None:
        _validate_service_configs(service_type, configs, f"{prefix}configs.", errors)

    environment = service.get('environment', {})
    if not isinstance(environment, dict):
        errors.append({'field': f"{prefix}environment", 'message': 'Environment must be an object'})
    else:
        for key, value in environment.items():
            if not isinstance(key, str) or not ENVIRONMENT_VARIABLE_PATTERN.match(key):
                errors.append({'field': f"{prefix}environment", 'message': f"Invalid environment variable name: {key!r}"})
            elif not isinstance(value, (str, int, float, bool)):
                errors.append({'field': f"{prefix}environment.{key}", 'message': 'Value must be a string, number or boolean'})

    secret_sets = {}
    for key in ('secret_environment_variables', 'random_secret_environment_variables'):
        if key in service:
            _validate_variable_names(service[key], f"{prefix}{key}", errors)
            if isinstance(service[key], (set, frozenset, list, tuple)):
                secret_sets[key] = set(service[key])

    overlap = secret_sets.get('secret_environment_variables', set()) \
        & secret_sets.get('random_secret_environment_variables', set())
    if overlap:
        errors.append({
            'field': f"{prefix}secret_environment_variables",
            'message': f"Variables declared both as secret and random secret: {', '.join(sorted(map(str, overlap)))}"
        })

    if isinstance(environment, dict):
        shadowed = set(environment) & set().union(*secret_sets.values())
        if shadowed:
            errors.append({
                'field': f"{prefix}environment",
                'message': f"Variables declared both as plain and secret: {', '.join(sorted(map(str, shadowed)))}"
            })


def validate_spicedling_configs(configs: Any) -> List[ValidationErrorDetail]:
    """
    Validate the `configs` object of a project configuration file.

    Args:
        configs: Raw configuration object

    Returns:
        List of validation errors. Empty list if validation passes.
        Each error is a dict with 'field' and 'message' keys.

    Examples:
        >>> validate_spicedling_configs({})[0]
        {'field': 'first_name', 'message': 'Field is required'}
    """
    errors: List[ValidationErrorDetail] = []

    if not isinstance(configs, dict):
        return [{'field': 'configs', 'message': 'Configs must be an object'}]

    for key in ('first_name', 'last_name', 'cohort', 'sub_domain'):
        _require_string(configs, key, key, errors)
    _check_unexpected(configs, CONFIGS_FIELDS, '', errors)

    if _is_non_empty_string(configs.get('sub_domain')) and not SUB_DOMAIN_PATTERN.match(configs['sub_domain']):
        errors.append({
            'field': 'sub_domain',
            'message': 'Sub domain must be 1-32 lower case letters, digits or hyphens'
        })

    repository = configs.get('repository')
    if not isinstance(repository, dict):
        errors.append({'field': 'repository', 'message': 'Repository must be an object'})
    else:
        _require_string(repository, 'github_owner', 'repository.github_owner', errors)
        _require_string(repository, 'repo_name', 'repository.repo_name', errors)
        for key in ('branch', 'invited_github_username'):
            if key in repository and not _is_non_empty_string(repository[key]):
                errors.append({'field': f"repository.{key}", 'message': 'Field must be a non-empty string'})
        _check_unexpected(repository, REPOSITORY_FIELDS, 'repository.', errors)

    services = configs.get('services')
    if not isinstance(services, (list, tuple)) or not services:
        errors.append({'field': 'services', 'message': 'At least one service is required'})
        return errors

    for index, service in enumerate(services):
        _validate_service(service, index, errors)

    node_servers = [
        service for service in services
        if isinstance(service, dict) and service.get('type') == ServiceType.NODE_SERVER
    ]
    if len(node_servers) > 1:
        errors.append({'field': 'services', 'message': 'At most one node server is supported per project'})

    container_names = [
        kebab_case(service['name']) for service in services
        if isinstance(service, dict) and _is_non_empty_string(service.get('name'))
    ]
    duplicates = sorted({name for name in container_names if container_names.count(name) > 1})
    if duplicates:
        errors.append({'field': 'services', 'message': f"Duplicate service names: {', '.join(duplicates)}"})

    return errors
