"""
Worker option formatting and dependency path resolution.

An options mapping such as ``{"p": 4567, "logLevel": "debug", "verbose": None}``
becomes ``["-p", "4567", "--log-level", "debug", "--verbose"]``. The reserved
keys ``path`` and ``config`` are not emitted as flags; they locate the
manifest and settings files that gate the worker's lifecycle.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Mapping, Optional, Union

from ..models.config import OptionValue, ServerOptions
from ..validation import OptionError

logger = logging.getLogger(__name__)

RESERVED_KEYS = ("path", "config")
MANIFEST_FILENAME = "manifest.json"
DEFAULT_CONFIG_FILENAME = "settings.yml"

_UPPERCASE = re.compile(r"([A-Z])")


def option_flag(key: str) -> str:
    """Return ``-k`` for single-character keys and ``--kebab-case`` otherwise."""
    if len(key) == 1:
        return "-" + key
    return "--" + _UPPERCASE.sub(r"-\1", key).lower()


def format_option_value(key: str, value: OptionValue) -> Optional[str]:
    """
    Stringify one option value.

    Returns None for an absent value (the flag is emitted bare). Booleans are
    rejected even though they are ints in Python.

    Raises:
        OptionError: If the value is not a string, a number or None
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise OptionError(key, "string, number, or None", value)


def format_options(options: Mapping[str, OptionValue]) -> List[str]:
    """Translate an options mapping into worker arguments, preserving order."""
    args: List[str] = []
    for key, value in options.items():
        if key in RESERVED_KEYS:
            continue
        formatted = format_option_value(key, value)
        args.append(option_flag(key))
        if formatted is not None:
            args.append(formatted)
    return args


def _absolute(value: str, cwd: Path) -> Path:
    return Path(os.path.normpath(os.path.join(str(cwd), value)))


def _reserved_string(options: Mapping[str, OptionValue], key: str) -> Optional[str]:
    if key not in options:
        return None
    value = options[key]
    if not isinstance(value, str):
        raise OptionError(key, "string", value)
    return value


def resolve_manifest_path(
    options: Mapping[str, OptionValue], cwd: Optional[Union[str, Path]] = None
) -> Path:
    """Resolve `<path>/manifest.json`, defaulting `path` to the working directory."""
    base = Path(cwd) if cwd is not None else Path.cwd()
    path = _reserved_string(options, "path")
    if path is None:
        return base / MANIFEST_FILENAME
    return _absolute(path, base) / MANIFEST_FILENAME


def resolve_config_path(
    options: Mapping[str, OptionValue], cwd: Optional[Union[str, Path]] = None
) -> Path:
    """Resolve the settings file, defaulting to `<cwd>/settings.yml`."""
    base = Path(cwd) if cwd is not None else Path.cwd()
    config = _reserved_string(options, "config")
    if config is None:
        return base / DEFAULT_CONFIG_FILENAME
    return _absolute(config, base)


def build_server_options(
    options: Optional[Mapping[str, OptionValue]] = None,
    cwd: Optional[Union[str, Path]] = None,
) -> ServerOptions:
    """
    Validate an options mapping and resolve everything a worker needs.

    Args:
        options: Raw option mapping, in the order the flags should appear
        cwd: Directory that relative `path`/`config` values resolve against

    Returns:
        Immutable ServerOptions

    Raises:
        OptionError: On any value of an unsupported type
    """
    options = dict(options or {})
    server_options = ServerOptions(
        args=tuple(format_options(options)),
        manifest=resolve_manifest_path(options, cwd),
        config=resolve_config_path(options, cwd),
    )
    logger.debug(
        f"Resolved worker options: args={list(server_options.args)} "
        f"manifest={server_options.manifest} config={server_options.config}"
    )
    return server_options
