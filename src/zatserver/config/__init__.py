"""
Configuration management for the zatserver package.

Two layers live here: translation of a per-target options mapping into worker
arguments and dependency paths, and loading of the supervisor TOML file with
singleton caching.
"""

# Main configuration interface
from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    get_config_path,
    is_config_loaded,
    set_config_path,
)

# Option formatting
from .options import (
    build_server_options,
    format_option_value,
    format_options,
    option_flag,
    resolve_config_path,
    resolve_manifest_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import get_target_entries, load_supervisor_config, load_toml_file
from .validators import (
    validate_supervisor_config,
    validate_target_config,
    validate_targets_config,
)

__all__ = [
    # Main interface
    "get_config",
    "get_config_path",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Options
    "build_server_options",
    "format_option_value",
    "format_options",
    "option_flag",
    "resolve_config_path",
    "resolve_manifest_path",
    # Advanced interface
    "load_toml_file",
    "load_supervisor_config",
    "get_target_entries",
    "validate_supervisor_config",
    "validate_target_config",
    "validate_targets_config",
]
