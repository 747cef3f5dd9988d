"""
Validation and error handling for the zatserver package.

This module provides input validation and the exception taxonomy used
across the supervisor, with consistent error reporting.
"""

from .exceptions import (
    DependencyMissingError,
    ErrorSeverity,
    LifecycleTransitionError,
    OptionError,
    ValidationError,
    WorkerSpawnError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_file_error,
    handle_subprocess_error,
)
from .validators import (
    validate_command,
    validate_enum_choice,
    validate_non_empty_string,
    validate_positive_float,
)

__all__ = [
    # Exceptions
    "DependencyMissingError",
    "ErrorSeverity",
    "LifecycleTransitionError",
    "OptionError",
    "ValidationError",
    "WorkerSpawnError",
    # Handlers
    "handle_error",
    "handle_config_error",
    "handle_file_error",
    "handle_subprocess_error",
    "handle_cli_error",
    # Validators
    "validate_command",
    "validate_enum_choice",
    "validate_non_empty_string",
    "validate_positive_float",
]
