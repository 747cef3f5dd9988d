"""
Build-pass notification hook.

The host build tool exposes a single "build pass completed" notification.
Supervisor instances tap it by name; the host calls it once per successful
build pass.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, List, Tuple, Union

from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)

HookCallback = Callable[[], Union[Awaitable[Any], Any]]


class BuildHook:
    """
    Ordered list of callbacks invoked after each successful build pass.

    A failing callback is logged and reported back to the caller; it does not
    prevent the remaining callbacks from running.
    """

    def __init__(self, name: str = "afterEmit"):
        self.name = name
        self._taps: List[Tuple[str, HookCallback]] = []

    @property
    def taps(self) -> List[Tuple[str, HookCallback]]:
        return list(self._taps)

    def tap(self, name: str, callback: HookCallback) -> None:
        """Subscribe `callback` under `name`."""
        self._taps.append((name, callback))
        logger.debug(f"Tapped {self.name} hook: {name}")

    async def call(self) -> List[Tuple[str, Exception]]:
        """
        Invoke every tapped callback in order, awaiting coroutine results.

        Returns:
            The (tap name, exception) pairs of callbacks that failed
        """
        failures: List[Tuple[str, Exception]] = []
        for name, callback in self._taps:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                handle_error(
                    error=e,
                    context=f"{self.name} hook tap '{name}'",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger
                )
                failures.append((name, e))
        return failures
