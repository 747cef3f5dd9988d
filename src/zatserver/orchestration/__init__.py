"""
Orchestration module for worker supervision.

Components:
- LifecycleCoordinator: Per-target state machine (idle -> running -> exiting)
- WorkerSupervisor: Worker process lifecycle management
- InstanceRegistry / HostExitChannel: Shared exit coordination
- BuildHook: Build-pass-completed notification
- SignalHandler: Signal handling management
"""

from .coordinator import LifecycleCoordinator
from .hooks import BuildHook
from .process_manager import WorkerSupervisor, signal_process_tree
from .registry import (
    HostExitChannel,
    InstanceRegistry,
    get_default_exit_channel,
    get_default_registry,
)
from .shared_state import DEFAULT_WORKER_COMMAND, HOOK_TAP_NAME, TimeoutConstants
from .signal_handler import SignalHandler

__all__ = [
    "BuildHook",
    "DEFAULT_WORKER_COMMAND",
    "HOOK_TAP_NAME",
    "HostExitChannel",
    "InstanceRegistry",
    "LifecycleCoordinator",
    "SignalHandler",
    "TimeoutConstants",
    "WorkerSupervisor",
    "get_default_exit_channel",
    "get_default_registry",
    "signal_process_tree",
]
