"""
Configuration file loading utilities.

This module handles the low-level loading and parsing of the supervisor's
TOML configuration file.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List

from ..validation import ErrorSeverity, handle_config_error

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "supervisor.toml"


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the file is malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.exists():
        logger.error(f"{description} not found: {file_path}")
        raise FileNotFoundError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {description}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def load_supervisor_config(config_path: Path) -> Dict[str, Any]:
    """Load the supervisor configuration file (supervisor.toml)."""
    return load_toml_file(config_path, "supervisor configuration file")


def get_target_entries(config_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Extract the `[[targets]]` array from parsed configuration data.

    Raises:
        KeyError: If no targets are defined
    """
    targets = config_data.get("targets", [])
    if not targets:
        raise KeyError("Missing [[targets]] entries in supervisor configuration")
    return targets
