"""
Structured logging utility for the deploy CLI and the CDK app.

This module provides a centralized logging utility that implements structured
logging with correlation IDs, latency tracking, and consistent JSON formatting
across the CLI commands and the stack synthesis.

One correlation ID (a ULID) is generated per process invocation, so the log
lines of a CLI run and of the `cdk` child process it spawns can be matched up
through the `SPICEDLINGS_CORRELATION_ID` environment variable.

Log lines are written to stderr; stdout belongs to the CDK toolkit.
"""

import json
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from ulid import ULID


CORRELATION_ID_ENVIRONMENT_VARIABLE = 'SPICEDLINGS_CORRELATION_ID'

# Sensitive field names that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'postgres_password',
    'token',
    'oauthtoken',
    'secret',
    'secretvalue',
    'secretstring',
    'authorization',
    'credentials',
    'database_url',
    'databaseurl',
}


class StructuredLogger:
    """
    Structured logger for deploy operations.

    Usage:
        logger = create_logger(operation='deploy')
        logger.log_deploy_start(stack='SpicedlingFinalProjectPipelineJasmineDanielStreif')
        # ... run the deploy ...
        logger.log_deploy_complete(stack=..., return_code=0)
    """

    def __init__(self, correlation_id: str, operation: str, stream: Optional[TextIO] = None):
        """
        Initialize the structured logger.

        Args:
            correlation_id: Unique identifier for tracing one invocation
            operation: Operation name (e.g., 'deploy', 'synth', 'check-secrets')
            stream: Output stream, stderr by default
        """
        self.correlation_id = correlation_id
        self.operation = operation
        self.start_time = time.time()
        self._stream = stream

    def _sanitize_data(self, data: Any) -> Any:
        """
        Replace sensitive fields in log data with a redaction marker.

        Recurses into nested dictionaries and lists of dictionaries.
        """
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            if str(key).lower() in SENSITIVE_FIELDS:
                sanitized[key] = '[REDACTED]'
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            elif isinstance(value, list):
                sanitized[key] = [
                    self._sanitize_data(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                sanitized[key] = value

        return sanitized

    def _latency_ms(self) -> int:
        return int((time.time() - self.start_time) * 1000)

    def _log(self, event: str, **kwargs: Any) -> None:
        """
        Write a structured log entry.

        Args:
            event: Event type/name
            **kwargs: Additional fields to include in log entry
        """
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'correlationId': self.correlation_id,
            'operation': self.operation,
            'event': event,
            **self._sanitize_data(kwargs)
        }

        print(json.dumps(log_entry, default=str), file=self._stream or sys.stderr)

    def log_deploy_start(self, stack: str, **additional_fields: Any) -> None:
        """Log the start of a stack deploy."""
        self._log('deploy_start', stack=stack, **additional_fields)

    def log_deploy_complete(self, stack: str, return_code: int, **additional_fields: Any) -> None:
        """
        Log deploy completion with latency.

        Also called for failed deploys; `returnCode` tells them apart.
        """
        self._log(
            'deploy_complete',
            stack=stack,
            returnCode=return_code,
            latencyMs=self._latency_ms(),
            **additional_fields
        )

    def log_configuration_error(self, errors: Any, **additional_fields: Any) -> None:
        """
        Log configuration error event.

        Args:
            errors: Validation error details
            **additional_fields: Additional fields to include in log
        """
        self._log(
            'configuration_error',
            errors=errors,
            latencyMs=self._latency_ms(),
            **additional_fields
        )

    def log_domain_error(self, error_code: str, error_message: str, **additional_fields: Any) -> None:
        """
        Log domain error event.

        Domain errors are expected failures (e.g., unknown student, failed deploy).
        """
        self._log(
            'domain_error',
            errorCode=error_code,
            errorMessage=error_message,
            latencyMs=self._latency_ms(),
            **additional_fields
        )

    def log_operator_warning(self, message: str, **additional_fields: Any) -> None:
        """
        Log a non-fatal advisory requiring manual operator action.

        Example:
            logger.log_operator_warning(
                message='Populate the secrets manually',
                service='Node Server',
                secrets=['MAPBOX_KEY']
            )
        """
        self._log('operator_warning', message=message, **additional_fields)

    def log_unexpected_error(self, error_type: str, error_message: str, **additional_fields: Any) -> None:
        """
        Log unexpected error event.

        Unexpected errors are bugs or environment failures that should not occur
        during normal operation.
        """
        self._log(
            'unexpected_error',
            errorType=error_type,
            errorMessage=error_message,
            latencyMs=self._latency_ms(),
            **additional_fields
        )

    def log_info(self, message: str, **additional_fields: Any) -> None:
        """Log informational event."""
        self._log('info', message=message, **additional_fields)


def create_logger(operation: str, stream: Optional[TextIO] = None) -> StructuredLogger:
    """
    Create a structured logger for the current process.

    Reuses the correlation ID handed down by a parent CLI process through the
    environment, otherwise generates a new ULID.

    Args:
        operation: Operation name (e.g., 'deploy')
        stream: Output stream, stderr by default

    Returns:
        StructuredLogger instance
    """
    correlation_id = os.environ.get(CORRELATION_ID_ENVIRONMENT_VARIABLE) or str(ULID())
    return StructuredLogger(correlation_id, operation, stream)

