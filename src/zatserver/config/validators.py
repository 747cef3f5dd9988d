"""
Configuration validation utilities.

Turns the raw `[supervisor]` table and `[[targets]]` array into validated
configuration objects.
"""

import logging
from typing import Any, Dict, List

from ..models.config import SupervisorConfig, TargetConfig
from ..validation import (
    OptionError,
    ValidationError,
    validate_command,
    validate_enum_choice,
    validate_non_empty_string,
    validate_positive_float,
)
from .options import format_option_value, resolve_config_path, resolve_manifest_path

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def validate_target_config(target_data: Dict[str, Any], index: int = 0) -> TargetConfig:
    """
    Validate one `[[targets]]` entry.

    Option values are checked here so a bad type is reported while loading
    the file rather than when the build hook fires.

    Raises:
        ValidationError: If the entry is malformed
    """
    field_prefix = f"targets[{index}]"
    if not isinstance(target_data, dict):
        raise ValidationError(
            f"{field_prefix} must be a table, got {target_data!r}",
            field_name=field_prefix,
            value=target_data,
        )

    name = validate_non_empty_string(
        target_data.get("name", f"target-{index}"), field_name=f"{field_prefix}.name"
    )

    options = target_data.get("options", {})
    if not isinstance(options, dict):
        raise ValidationError(
            f"{field_prefix}.options must be a table, got {options!r}",
            field_name=f"{field_prefix}.options",
            value=options,
        )

    try:
        for key, value in options.items():
            if key in ("path", "config"):
                continue
            format_option_value(key, value)
        resolve_manifest_path(options)
        resolve_config_path(options)
    except OptionError as e:
        raise ValidationError(
            f"{field_prefix}.options: {e}", field_name=f"{field_prefix}.options.{e.field_name}", value=e.value
        ) from e

    return TargetConfig(name=name, options=dict(options))


def validate_targets_config(targets_data: List[Dict[str, Any]]) -> List[TargetConfig]:
    """Validate every target and reject duplicate names."""
    targets = [validate_target_config(entry, index) for index, entry in enumerate(targets_data)]

    seen = set()
    for target in targets:
        if target.name in seen:
            raise ValidationError(
                f"Duplicate target name: {target.name}", field_name="targets.name", value=target.name
            )
        seen.add(target.name)

    return targets


def validate_supervisor_config(config_data: Dict[str, Any]) -> SupervisorConfig:
    """
    Validate and create a SupervisorConfig from raw configuration data.

    Args:
        config_data: Parsed TOML document

    Returns:
        Validated SupervisorConfig instance

    Raises:
        ValidationError: If validation fails
    """
    settings = config_data.get("supervisor", {})
    defaults = SupervisorConfig()

    command = validate_command(settings.get("command", defaults.command), field_name="supervisor.command")
    stop_timeout = validate_positive_float(
        settings.get("stop_timeout", defaults.stop_timeout),
        min_value=0.1,
        max_value=300.0,
        field_name="supervisor.stop_timeout",
    )
    log_level = validate_enum_choice(
        settings.get("log_level", defaults.log_level),
        valid_choices=LOG_LEVELS,
        field_name="supervisor.log_level",
        case_sensitive=False,
    )

    build_command = settings.get("build_command")
    if build_command is not None:
        build_command = validate_non_empty_string(build_command, field_name="supervisor.build_command")

    targets = validate_targets_config(config_data.get("targets", []))

    return SupervisorConfig(
        command=command,
        stop_timeout=stop_timeout,
        log_level=log_level,
        build_command=build_command,
        targets=targets,
    )
