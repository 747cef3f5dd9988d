"""
Data models for the supervisor.

Configuration Models:
- Resolved worker launch options
- Build targets and supervisor-wide settings

Runtime Models:
- Instance lifecycle states, events and the transition function
"""

from .config import OptionValue, ServerOptions, SupervisorConfig, TargetConfig
from .runtime import (
    LifecycleEvent,
    LifecycleState,
    accepts_event,
    transition_lifecycle_state,
)

__all__ = [
    # Configuration
    "OptionValue",
    "ServerOptions",
    "SupervisorConfig",
    "TargetConfig",
    # Runtime
    "LifecycleEvent",
    "LifecycleState",
    "accepts_event",
    "transition_lifecycle_state",
]
