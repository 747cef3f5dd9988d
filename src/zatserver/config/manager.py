"""
Configuration management and singleton pattern.

This module provides the main configuration loading and management interface,
implementing a singleton pattern so the supervisor file is parsed only once.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import SupervisorConfig
from ..validation import ErrorSeverity, handle_config_error
from .loader import DEFAULT_CONFIG_FILENAME, get_target_entries, load_supervisor_config
from .validators import validate_supervisor_config

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

_CONFIG: Optional[SupervisorConfig] = None

# None means `<cwd>/supervisor.toml`, evaluated on first load.
_CONFIG_FILE_PATH: Optional[Path] = None


def set_config_path(config_path: Optional[Path]) -> None:
    """
    Set a custom configuration file path and drop any cached configuration.

    Args:
        config_path: Path to supervisor.toml, or None to restore the default
    """
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = config_path
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def get_config_path() -> Path:
    """Return the configuration path that the next load will read."""
    if _CONFIG_FILE_PATH is None:
        return Path.cwd() / DEFAULT_CONFIG_FILENAME
    return _CONFIG_FILE_PATH


def clear_config_cache() -> None:
    """Clear the cached configuration, forcing a reload on next access."""
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def _load_config(config_path: Path) -> SupervisorConfig:
    """
    Load and validate the supervisor configuration.

    Raises:
        FileNotFoundError: If the file is missing
        KeyError: If no targets are defined
        ValidationError: If validation fails
        tomllib.TOMLDecodeError: If the file is malformed
    """
    try:
        config_data = load_supervisor_config(config_path)
        get_target_entries(config_data)
        config = validate_supervisor_config(config_data)
        logger.info(f"Successfully loaded configuration with {len(config.targets)} targets")
        return config
    except FileNotFoundError as e:
        handle_config_error(
            error=e,
            context="loading configuration file",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise
    except Exception as e:
        handle_config_error(
            error=e,
            context="processing configuration",
            severity=ErrorSeverity.ERROR,
            reraise=True,
            logger=logger
        )
        raise


def get_config() -> SupervisorConfig:
    """
    Get the supervisor configuration, loading it on first access.

    Returns:
        The cached SupervisorConfig instance
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(get_config_path())
    return _CONFIG


def is_config_loaded() -> bool:
    """Check if configuration has been loaded and cached."""
    return _CONFIG is not None


def get_config_info() -> dict:
    """Get information about the current configuration state."""
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(get_config_path()),
        "targets_count": len(_CONFIG.targets) if _CONFIG else 0,
    }
