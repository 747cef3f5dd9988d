"""
Process-wide bookkeeping of running workers.

`InstanceRegistry` maps each supervisor instance to its running worker and is
the single source of truth for whether the host may terminate.
`HostExitChannel` carries that termination intent to whoever owns the host
process (the CLI, or a test), instead of ending the interpreter directly.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Hashable, Iterator, Optional

logger = logging.getLogger(__name__)


class InstanceRegistry:
    """
    Mapping from supervisor instance to its currently running worker.

    An instance is present if and only if its worker is running. Only
    `WorkerSupervisor` mutates the registry, from inside start/stop.
    """

    def __init__(self) -> None:
        self._workers: Dict[Hashable, Any] = {}

    def register(self, key: Hashable, process: Any) -> None:
        self._workers[key] = process
        logger.debug(f"Registered worker for {key!r} ({len(self._workers)} running)")

    def unregister(self, key: Hashable) -> bool:
        """Remove an instance; returns False if it was not registered."""
        if key not in self._workers:
            return False
        del self._workers[key]
        logger.debug(f"Unregistered worker for {key!r} ({len(self._workers)} running)")
        return True

    def get(self, key: Hashable) -> Optional[Any]:
        return self._workers.get(key)

    def is_ready_for_exit(self) -> bool:
        """True when no instance in this registry owns a running worker."""
        return not self._workers

    def __len__(self) -> int:
        return len(self._workers)

    def __contains__(self, key: object) -> bool:
        return key in self._workers

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._workers))


class HostExitChannel:
    """
    One-shot request to terminate the host process.

    The first `request_exit` records the exit code, wakes `wait()` and runs the
    optional action; later requests are ignored, so many instances finishing
    their shutdown together still produce a single termination.
    """

    def __init__(self, action: Optional[Callable[[int], None]] = None) -> None:
        self._action = action
        self._event = asyncio.Event()
        self.requested = False
        self.exit_code: Optional[int] = None

    def request_exit(self, code: int = 0) -> bool:
        """Request host termination; returns True only for the first request."""
        if self.requested:
            logger.debug(f"Host exit already requested with code {self.exit_code}, ignoring code {code}")
            return False

        self.requested = True
        self.exit_code = code
        self._event.set()
        logger.info(f"Host exit requested with code {code}")
        if self._action is not None:
            self._action(code)
        return True

    async def wait(self) -> int:
        """Wait until exit is requested and return the exit code."""
        await self._event.wait()
        return self.exit_code if self.exit_code is not None else 0


# Shared defaults for callers that do not inject their own.
_DEFAULT_REGISTRY = InstanceRegistry()
_DEFAULT_EXIT_CHANNEL: Optional[HostExitChannel] = None


def get_default_registry() -> InstanceRegistry:
    return _DEFAULT_REGISTRY


def get_default_exit_channel() -> HostExitChannel:
    global _DEFAULT_EXIT_CHANNEL
    if _DEFAULT_EXIT_CHANNEL is None:
        _DEFAULT_EXIT_CHANNEL = HostExitChannel()
    return _DEFAULT_EXIT_CHANNEL
