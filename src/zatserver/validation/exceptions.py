"""
Exception types and error handling helpers.

This module defines the error taxonomy of the supervisor (configuration errors,
missing dependency files, spawn failures and illegal lifecycle transitions)
together with the logging helpers used to report them consistently.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    Exception raised when validation fails.

    This is the base type for every configuration problem, whether it comes
    from an options mapping or from the supervisor TOML file.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class OptionError(ValidationError, TypeError):
    """An option value has a type the worker command line cannot express."""

    def __init__(self, key: str, expected: str, value: Any):
        received = type(value).__name__
        super().__init__(
            f'ZAT server option "{key}" must be of type {expected}, got {received}.',
            field_name=key,
            value=value,
        )
        self.expected = expected
        self.received = received


class DependencyMissingError(FileNotFoundError):
    """A required dependency file could not be read when first watched."""

    def __init__(self, path: str, reason: Optional[BaseException] = None):
        message = f"Required dependency file cannot be read: {path}"
        if reason is not None:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path
        self.reason = reason


class WorkerSpawnError(RuntimeError):
    """The external worker process failed to launch."""

    def __init__(self, command: Any, reason: Optional[BaseException] = None):
        super().__init__(f"Failed to launch worker {command!r}: {reason}")
        self.command = command
        self.reason = reason


class LifecycleTransitionError(ValueError):
    """A lifecycle event was delivered in a state that does not accept it."""

    def __init__(self, state: Any, event: Any):
        super().__init__(f"Invalid lifecycle transition: {state} -> {event}")
        self.state = state
        self.event = event


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_file_error(error: Exception, context: str, **kwargs) -> None:
    """Handle file-related errors."""
    handle_error(error, f"file {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Handle subprocess-related errors."""
    handle_error(error, f"subprocess command '{command}'", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Handle CLI-related errors by logging and exiting with ``exit_code``."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)
    sys.exit(exit_code)
