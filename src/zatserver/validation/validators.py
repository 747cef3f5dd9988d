"""
Simplified validation functions.

Small, reusable checks used when turning raw TOML data into configuration
objects.
"""

from typing import Any, List, Optional

from .exceptions import ValidationError


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a positive float.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a string with at least one non-blank character."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string, got {value!r}",
            field_name=field_name,
            value=value
        )
    return value.strip()


def validate_command(value: Any, field_name: str = "command") -> List[str]:
    """
    Validate a worker command given as a list of strings or a single string.

    A single string is treated as one executable name, not split on spaces.
    """
    if isinstance(value, str):
        return [validate_non_empty_string(value, field_name)]
    if not isinstance(value, list) or not value:
        raise ValidationError(
            f"{field_name} must be a non-empty list of strings, got {value!r}",
            field_name=field_name,
            value=value
        )
    return [
        validate_non_empty_string(part, f"{field_name}[{index}]")
        for index, part in enumerate(value)
    ]


def validate_enum_choice(
    value: Any,
    valid_choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Validate that a value is one of the allowed choices.

    Args:
        value: Value to validate
        valid_choices: List of allowed choices
        field_name: Name of the field being validated
        case_sensitive: Whether the comparison should be case-sensitive

    Returns:
        The matching choice as spelled in ``valid_choices``

    Raises:
        ValidationError: If value is not in choices
    """
    str_value = str(value)
    for choice in valid_choices:
        if choice == str_value or (not case_sensitive and choice.lower() == str_value.lower()):
            return choice

    raise ValidationError(
        f"{field_name} must be one of {valid_choices}, got {value!r}",
        field_name=field_name,
        value=value
    )
