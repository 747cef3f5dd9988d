"""
Signal handling for the orchestration module.

An interrupt or termination signal delivered to the host is turned into a
shutdown request for every registered coordinator. Handlers are installed on
the asyncio loop, so shutdown runs as ordinary tasks on the loop thread.
"""

import asyncio
import logging
import signal
from typing import TYPE_CHECKING, Dict, Optional, Sequence

if TYPE_CHECKING:
    from .coordinator import LifecycleCoordinator

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalHandler:
    """
    Routes host signals to the `exit()` of every registered coordinator.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None,
                 signals: Sequence[int] = DEFAULT_SIGNALS):
        self.loop = loop or asyncio.get_running_loop()
        self.signals = tuple(signals)
        self.shutdown_requested = False
        self._coordinators: Dict[int, "LifecycleCoordinator"] = {}
        self._signal_handlers_set = False
        self._shutdown_task: Optional[asyncio.Future] = None
        self._signal_task: Optional[asyncio.Task] = None

    def setup_signal_handlers(self) -> None:
        """Install loop signal handlers for the configured signals."""
        try:
            for sig in self.signals:
                self.loop.add_signal_handler(sig, self._handle_signal, sig)
            self._signal_handlers_set = True
            logger.debug("Signal handlers set up for supervisor")
        except (NotImplementedError, RuntimeError) as e:
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Remove the loop signal handlers installed by this instance."""
        if not self._signal_handlers_set:
            return

        try:
            for sig in self.signals:
                self.loop.remove_signal_handler(sig)
            logger.debug("Signal handlers removed for supervisor")
        except (NotImplementedError, RuntimeError) as e:
            logger.warning(f"Failed to remove signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    def register(self, coordinator: "LifecycleCoordinator") -> None:
        self._coordinators[id(coordinator)] = coordinator
        logger.debug(f"Registered {coordinator.name} for signal handling")

    def unregister(self, coordinator: "LifecycleCoordinator") -> None:
        if self._coordinators.pop(id(coordinator), None) is not None:
            logger.debug(f"Unregistered {coordinator.name} from signal handling")

    async def request_shutdown(self) -> None:
        """Ask every registered coordinator to exit and wait for all of them."""
        if self._shutdown_task is None:
            self.shutdown_requested = True
            coordinators = list(self._coordinators.values())
            logger.info(f"Requesting shutdown for {len(coordinators)} supervisor instance(s)")
            self._shutdown_task = asyncio.ensure_future(
                asyncio.gather(*(c.exit() for c in coordinators), return_exceptions=True)
            )
        results = await asyncio.shield(self._shutdown_task)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Error during supervisor shutdown: {result}")

    def _handle_signal(self, signum: int) -> None:
        if self.shutdown_requested:
            logger.warning("Shutdown already in progress. Please be patient.")
            return

        logger.warning(f"Signal {signal.strsignal(signum)} received. Initiating graceful shutdown...")
        self.shutdown_requested = True
        self._signal_task = self.loop.create_task(self.request_shutdown())
