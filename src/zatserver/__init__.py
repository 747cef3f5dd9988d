"""
zatserver: build-pipeline supervisor for a long-running ZAT server worker.

After each successful build pass the supervisor starts the worker, watches its
manifest and settings files, restarts the worker when their content changes and
shuts down when one of them is renamed or deleted. Several supervisor instances
can share one host process; the host exits once the last worker is gone.

The package is organized into specialized modules:
- config: Option formatting, path resolution and supervisor.toml loading
- models: Configuration data and the lifecycle state machine
- validation: Error taxonomy and validation helpers
- watching: Dependency file watchers
- orchestration: Worker supervision, exit coordination and signal routing
- cli: Command-line interface

Usage:
    From command line:
        zat-supervise -o path=apps/app -o port=4567 --build-command "make"

    Programmatically:
        from zatserver import BuildHook, LifecycleCoordinator
        hook = BuildHook()
        LifecycleCoordinator({"path": "apps/app"}).apply(hook)
        await hook.call()
"""

from .config import (
    build_server_options,
    clear_config_cache,
    format_options,
    get_config,
    set_config_path,
)
from .cli import main_cli
from .models import LifecycleEvent, LifecycleState, ServerOptions, SupervisorConfig, TargetConfig
from .orchestration import (
    BuildHook,
    HostExitChannel,
    InstanceRegistry,
    LifecycleCoordinator,
    SignalHandler,
    WorkerSupervisor,
)
from .validation import (
    DependencyMissingError,
    LifecycleTransitionError,
    OptionError,
    ValidationError,
    WorkerSpawnError,
)
from .watching import DependencyWatcher, FileWatcher

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "LifecycleCoordinator",
    "BuildHook",
    "InstanceRegistry",
    "HostExitChannel",
    "SignalHandler",
    "WorkerSupervisor",
    "DependencyWatcher",
    "FileWatcher",
    "main_cli",
    # Configuration
    "build_server_options",
    "format_options",
    "get_config",
    "set_config_path",
    "clear_config_cache",
    # Models
    "LifecycleEvent",
    "LifecycleState",
    "ServerOptions",
    "SupervisorConfig",
    "TargetConfig",
    # Errors
    "DependencyMissingError",
    "LifecycleTransitionError",
    "OptionError",
    "ValidationError",
    "WorkerSpawnError",
]
