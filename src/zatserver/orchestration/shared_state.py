"""
Shared constants for the orchestration module.
"""

DEFAULT_WORKER_COMMAND = ("zat", "server")

# Name under which coordinators tap the build hook.
HOOK_TAP_NAME = "ZAT Server"


class TimeoutConstants:
    """
    Centralized timeout configuration.
    """
    # Seconds between SIGTERM and SIGKILL escalation when stopping a worker
    WORKER_STOP_TIMEOUT = 5.0
