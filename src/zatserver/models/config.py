"""
Configuration data models.

This module contains the configuration-related data structures: the resolved
launch options of one worker, one build target, and the supervisor-wide
settings loaded from `supervisor.toml`.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

OptionValue = Optional[Union[str, int, float]]


@dataclass(frozen=True)
class ServerOptions:
    """
    Formatted launch arguments and dependency paths for one worker.

    Built once per target by `config.options.build_server_options` and never
    mutated afterwards.
    """

    # Command-line arguments appended after the worker command, in option order.
    args: Tuple[str, ...]
    # Absolute path of the required dependency file.
    manifest: Path
    # Absolute path of the optional dependency file.
    config: Path


@dataclass
class TargetConfig:
    """
    A single build target from `supervisor.toml`.
    """

    # A unique name for the target, used in log messages.
    name: str
    # Raw options mapping; reserved keys `path` and `config` locate dependency files.
    options: Dict[str, OptionValue] = field(default_factory=dict)


@dataclass
class SupervisorConfig:
    """
    Supervisor-wide settings, loaded from the `[supervisor]` table.
    """

    # Executable plus fixed leading arguments of the worker.
    command: List[str] = field(default_factory=lambda: ["zat", "server"])
    # Seconds to wait after SIGTERM before escalating to SIGKILL.
    stop_timeout: float = 5.0
    log_level: str = "INFO"
    # Optional shell command whose success counts as a completed build pass.
    build_command: Optional[str] = None
    targets: List[TargetConfig] = field(default_factory=list)
