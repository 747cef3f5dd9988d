"""
Runtime data models.

This module defines the lifecycle state machine of a supervisor instance.
States and events are plain enums; `transition_lifecycle_state` is the only
place where the legal transitions are spelled out.
"""

from enum import Enum

from ..validation import LifecycleTransitionError


class LifecycleState(str, Enum):
    """States of one supervisor instance."""

    IDLE = "idle"
    RUNNING = "running"
    EXITING = "exiting"


class LifecycleEvent(str, Enum):
    """Events that drive instance state transitions."""

    BUILD_COMPLETE = "build_complete"
    CONTENT_CHANGED = "content_changed"
    IDENTITY_CHANGED = "identity_changed"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    DEPENDENCY_FAILED = "dependency_failed"


def transition_lifecycle_state(current: LifecycleState, event: LifecycleEvent) -> LifecycleState:
    """Compute the next instance state for a given event.

    EXITING is terminal and accepts no event. A build completion while RUNNING
    keeps the instance RUNNING without restarting anything; callers check for
    that case before acting. Invalid transitions raise LifecycleTransitionError.
    """

    if current == LifecycleState.EXITING:
        raise LifecycleTransitionError(current, event)

    if event in {LifecycleEvent.IDENTITY_CHANGED, LifecycleEvent.SHUTDOWN_REQUESTED}:
        return LifecycleState.EXITING

    if current == LifecycleState.IDLE:
        if event == LifecycleEvent.BUILD_COMPLETE:
            return LifecycleState.RUNNING
        raise LifecycleTransitionError(current, event)

    if current == LifecycleState.RUNNING:
        if event in {LifecycleEvent.BUILD_COMPLETE, LifecycleEvent.CONTENT_CHANGED}:
            return LifecycleState.RUNNING
        if event == LifecycleEvent.DEPENDENCY_FAILED:
            return LifecycleState.EXITING
        raise LifecycleTransitionError(current, event)

    raise LifecycleTransitionError(current, event)


def accepts_event(current: LifecycleState, event: LifecycleEvent) -> bool:
    """Return True when `event` is legal in `current`."""
    try:
        transition_lifecycle_state(current, event)
    except LifecycleTransitionError:
        return False
    return True
