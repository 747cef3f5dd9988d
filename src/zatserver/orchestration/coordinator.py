"""
Lifecycle coordination for one supervisor instance.

A `LifecycleCoordinator` is created per build target. It starts the worker on
the first completed build pass, watches the manifest and settings files, restarts
the worker when their content changes and shuts the instance down when one of
them is renamed or deleted. Host termination is requested only once no
instance sharing the registry has a running worker.
"""

import asyncio
import atexit
import itertools
import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple, Union

from ..config.options import build_server_options
from ..models.config import OptionValue, ServerOptions
from ..models.runtime import (
    LifecycleEvent,
    LifecycleState,
    accepts_event,
    transition_lifecycle_state,
)
from ..validation import (
    DependencyMissingError,
    ErrorSeverity,
    WorkerSpawnError,
    handle_error,
    handle_file_error,
)
from ..watching import DependencyWatcher, FileWatcher
from .hooks import BuildHook
from .process_manager import WorkerSupervisor
from .registry import (
    HostExitChannel,
    InstanceRegistry,
    get_default_exit_channel,
    get_default_registry,
)
from .shared_state import DEFAULT_WORKER_COMMAND, HOOK_TAP_NAME, TimeoutConstants

logger = logging.getLogger(__name__)

_instance_ids = itertools.count(1)


class LifecycleCoordinator:
    """
    State machine driving one worker and its dependency watchers.

    States: IDLE (no worker, no watchers) -> RUNNING (worker active, files
    watched) -> EXITING (terminal). Every transition method is a coroutine,
    so callers can sequence them deterministically.
    """

    def __init__(
        self,
        options: Optional[Mapping[str, OptionValue]] = None,
        *,
        name: Optional[str] = None,
        command: Sequence[str] = DEFAULT_WORKER_COMMAND,
        cwd: Optional[Union[str, Path]] = None,
        registry: Optional[InstanceRegistry] = None,
        exit_channel: Optional[HostExitChannel] = None,
        stop_timeout: float = TimeoutConstants.WORKER_STOP_TIMEOUT,
        dependency_watcher: Optional[DependencyWatcher] = None,
    ):
        """
        Args:
            options: Worker options; `path` and `config` locate the dependency files
            name: Label used in log messages
            command: Worker executable and fixed leading arguments
            cwd: Directory relative dependency paths resolve against
            registry: Shared registry of running workers
            exit_channel: Where host termination is requested
            stop_timeout: Seconds before a stopping worker is killed
            dependency_watcher: Pre-built watcher set, mainly for tests

        Raises:
            OptionError: If an option has an unsupported type
        """
        self.server_options: ServerOptions = build_server_options(options, cwd)
        self.name = name or f"zat-server-{next(_instance_ids)}"
        self.registry = registry if registry is not None else get_default_registry()
        self.exit_channel = exit_channel if exit_channel is not None else get_default_exit_channel()

        self.supervisor = WorkerSupervisor(
            key=self,
            args=self.server_options.args,
            registry=self.registry,
            command=command,
            stop_timeout=stop_timeout,
            name=f"{self.name} worker",
        )
        self.dependencies = dependency_watcher or DependencyWatcher(
            on_change=self._on_dependency_changed,
            on_identity_change=self._on_dependency_moved,
        )

        self.state = LifecycleState.IDLE
        self._build_lock = asyncio.Lock()
        self._exit_task: Optional[asyncio.Future] = None

        # Kill a worker left running if the interpreter exits without exit().
        atexit.register(self.supervisor.kill)

    def __repr__(self) -> str:
        return f"<LifecycleCoordinator {self.name} state={self.state.value}>"

    @property
    def args(self) -> Tuple[str, ...]:
        return self.server_options.args

    @property
    def manifest(self) -> Path:
        return self.server_options.manifest

    @property
    def config(self) -> Path:
        return self.server_options.config

    @property
    def watchers(self):
        return self.dependencies.watchers

    def apply(self, hook: BuildHook) -> None:
        """Subscribe to the host's build-completed hook."""
        hook.tap(HOOK_TAP_NAME, self.on_build_complete)

    async def on_build_complete(self) -> None:
        """
        Start the worker and watch its dependency files, once.

        Only acts while IDLE; a build pass completing while RUNNING does not
        restart the worker.

        Raises:
            WorkerSpawnError: If the worker cannot be launched (instance stays IDLE)
            DependencyMissingError: If the manifest cannot be read (instance exits)
        """
        async with self._build_lock:
            if self.state != LifecycleState.IDLE:
                logger.debug(f"{self.name}: build completed while {self.state.value}, nothing to do")
                return

            await self.start()
            if self.state == LifecycleState.EXITING:
                # exit() arrived during the launch; its stop() takes care of the worker.
                return
            self.state = transition_lifecycle_state(self.state, LifecycleEvent.BUILD_COMPLETE)

            try:
                await self.watch_file(self.manifest, required=True)
                await self.watch_file(self.config, required=False)
            except DependencyMissingError as e:
                if accepts_event(self.state, LifecycleEvent.DEPENDENCY_FAILED):
                    self.state = transition_lifecycle_state(self.state, LifecycleEvent.DEPENDENCY_FAILED)
                self.dependencies.close_all()
                await self.supervisor.stop()
                handle_file_error(
                    error=e,
                    context=f"{self.name} watching required manifest",
                    severity=ErrorSeverity.ERROR,
                    reraise=True,
                    logger=logger
                )

            if self.state != LifecycleState.RUNNING:
                logger.debug(f"{self.name}: exit requested while watching dependencies")
                return
            logger.info(f"{self.name}: running with {len(self.dependencies)} watched dependency file(s)")

    async def start(self) -> None:
        """(Re)start the worker; any running worker is stopped first."""
        await self.supervisor.start()

    async def stop(self) -> None:
        """Stop the worker without leaving the current state."""
        await self.supervisor.stop()

    async def watch_file(self, path: Path, required: bool) -> Optional[FileWatcher]:
        """Watch one dependency file, unless the instance is already exiting."""
        watcher = await self.dependencies.watch(path, required)
        if watcher is not None and self.state == LifecycleState.EXITING:
            self.dependencies.unwatch(path)
            return None
        return watcher

    async def restart(self) -> bool:
        """
        Restart the worker after a dependency content change.

        Returns:
            True if a new worker was started
        """
        if not accepts_event(self.state, LifecycleEvent.CONTENT_CHANGED):
            logger.debug(f"{self.name}: ignoring restart request while {self.state.value}")
            return False

        self.state = transition_lifecycle_state(self.state, LifecycleEvent.CONTENT_CHANGED)
        try:
            await self.start()
        except WorkerSpawnError as e:
            handle_error(
                error=e,
                context=f"{self.name} restarting worker",
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger
            )
            return False
        return True

    async def exit(self) -> None:
        """
        Shut the instance down: close watchers, stop the worker, and request
        host exit if no worker is left running anywhere in the registry.

        Repeated or concurrent calls wait for the same shutdown.
        """
        if self._exit_task is None:
            if self.state != LifecycleState.EXITING:
                self.state = transition_lifecycle_state(self.state, LifecycleEvent.SHUTDOWN_REQUESTED)
            self._exit_task = asyncio.ensure_future(self._shutdown())
        await asyncio.shield(self._exit_task)

    async def _shutdown(self) -> None:
        logger.info(f"{self.name}: shutting down")
        self.dependencies.close_all()
        await self.supervisor.stop()
        atexit.unregister(self.supervisor.kill)

        if self.registry.is_ready_for_exit():
            logger.info(f"{self.name}: no workers left running, requesting host exit")
            self.exit_channel.request_exit(0)
        else:
            logger.info(f"{self.name}: {len(self.registry)} worker(s) still running, host stays up")

    async def _on_dependency_changed(self, path: Path) -> None:
        logger.info(f"{self.name}: dependency file changed: {path}, restarting worker")
        await self.restart()

    async def _on_dependency_moved(self, path: Path) -> None:
        logger.warning(
            f"{self.name}: dependency file path changed: {path}, host restart required"
        )
        await self.exit()
