"""
Domain error classes for the Spicedlings Final Projects tooling.

These error classes provide explicit, typed exceptions that the CLI maps to
exit codes. All errors follow the principle of "fail fast": nothing here is
retried or recovered, infrastructure state is left for the operator to
reconcile.
"""

from typing import Dict, Any


class SpicedlingsError(Exception):
    """
    Base class for all domain errors.

    Carries a machine readable code, a human readable message and optional
    details for structured logging.
    """

    def __init__(self, code: str, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class ConfigurationError(SpicedlingsError):
    """
    Raised when a per-student configuration or a required setting is invalid.

    Details should contain field-level validation errors.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('CONFIGURATION_ERROR', message, details or {})


class PriorityTableError(ConfigurationError):
    """
    Raised when the target group priority file is missing or malformed.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, details)
        self.code = 'PRIORITY_TABLE_ERROR'


class NotFoundError(SpicedlingsError):
    """
    Raised when a cohort or student configuration does not exist.
    """

    def __init__(self, message: str):
        super().__init__('NOT_FOUND', message, {})


class ServiceStateError(SpicedlingsError):
    """
    Raised when a service is wired twice or wired without being registered.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('SERVICE_STATE_ERROR', message, details or {})


class DeployError(SpicedlingsError):
    """
    Raised when the CDK deploy child process fails or cannot be started.

    `return_code` is the child's exit status, or None if it never ran.
    """

    def __init__(self, message: str, return_code: int = None):
        super().__init__('DEPLOY_ERROR', message, {'returnCode': return_code})
        self.return_code = return_code
