"""
Worker process management for the orchestration module.

This module owns the external worker of one supervisor instance: launching it
with the instance's arguments, forwarding its output to the host streams,
and stopping it with a wait-for-exit discipline so a new worker never starts
while the previous one still holds its resources.
"""

import asyncio
import logging
import signal
from typing import Hashable, List, Optional, Sequence

import psutil

from ..validation import ErrorSeverity, WorkerSpawnError, handle_subprocess_error
from .registry import InstanceRegistry
from .shared_state import DEFAULT_WORKER_COMMAND, TimeoutConstants

logger = logging.getLogger(__name__)


def _get_process_children(pid: int) -> List[psutil.Process]:
    """Safely get all descendants of a process, handling race conditions."""
    try:
        return psutil.Process(pid).children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []


def signal_process_tree(pid: int, sig: int, name: str = "worker") -> None:
    """
    Send `sig` to a process and every descendant it has spawned.

    Descendants are collected before the parent is signalled, since they get
    re-parented once the parent dies.
    """
    children = _get_process_children(pid)

    for child in children:
        try:
            child.send_signal(sig)
            logger.debug(f"Sent signal {sig} to child PID {child.pid} of {name}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending signal {sig} to PID {child.pid}")

    try:
        psutil.Process(pid).send_signal(sig)
        logger.debug(f"Sent signal {sig} to {name} (PID: {pid})")
    except psutil.NoSuchProcess:
        logger.debug(f"Process {name} (PID: {pid}) already terminated")
    except psutil.AccessDenied:
        logger.warning(f"Access denied sending signal {sig} to {name} (PID: {pid})")


class WorkerSupervisor:
    """
    Owns at most one running worker process for a supervisor instance.

    `start()` always stops the current worker (and waits for its exit) before
    launching a new one; start and stop are serialized by a lock, so
    overlapping calls from watcher events never interleave.
    """

    def __init__(
        self,
        key: Hashable,
        args: Sequence[str],
        registry: InstanceRegistry,
        command: Sequence[str] = DEFAULT_WORKER_COMMAND,
        stop_timeout: float = TimeoutConstants.WORKER_STOP_TIMEOUT,
        name: str = "worker",
    ):
        self.key = key
        self.args = tuple(args)
        self.command = tuple(command)
        self.registry = registry
        self.stop_timeout = stop_timeout
        self.name = name

        self.process: Optional[asyncio.subprocess.Process] = None
        self.start_count = 0
        self._lock = asyncio.Lock()
        self._exit_watchers: set = set()

    @property
    def argv(self) -> List[str]:
        return [*self.command, *self.args]

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    async def start(self) -> asyncio.subprocess.Process:
        """
        Stop any running worker, then launch a new one.

        Returns:
            The started process

        Raises:
            WorkerSpawnError: If the executable cannot be launched
        """
        async with self._lock:
            await self._stop_locked()

            logger.info(f"Starting {self.name}: {' '.join(self.argv)}")
            try:
                # stdout/stderr are inherited, so worker output lands on the host streams
                process = await asyncio.create_subprocess_exec(*self.argv)
            except OSError as e:
                spawn_error = WorkerSpawnError(self.argv, e)
                handle_subprocess_error(
                    error=spawn_error,
                    command=" ".join(self.argv),
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger
                )
                raise spawn_error from e

            self.process = process
            self.start_count += 1
            self.registry.register(self.key, process)
            self._watch_exit(process)
            logger.info(f"{self.name} started with PID: {process.pid}")
            return process

    async def stop(self) -> Optional[int]:
        """
        Terminate the running worker and wait for it to exit.

        Returns:
            The worker's exit code, or None when no worker was running
        """
        async with self._lock:
            return await self._stop_locked()

    async def _stop_locked(self) -> Optional[int]:
        process = self.process
        if process is None:
            return None

        if process.returncode is None:
            logger.info(f"Stopping {self.name} (PID: {process.pid})")
            signal_process_tree(process.pid, signal.SIGTERM, self.name)
            try:
                return_code = await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"{self.name} (PID: {process.pid}) did not exit within "
                    f"{self.stop_timeout}s, sending SIGKILL"
                )
                signal_process_tree(process.pid, signal.SIGKILL, self.name)
                return_code = await process.wait()
        else:
            return_code = process.returncode

        self.process = None
        self.registry.unregister(self.key)
        logger.info(f"{self.name} exited with code: {return_code}")
        return return_code

    def _watch_exit(self, process: asyncio.subprocess.Process) -> None:
        task = asyncio.ensure_future(self._on_process_exit(process))
        self._exit_watchers.add(task)
        task.add_done_callback(self._exit_watchers.discard)

    async def _on_process_exit(self, process: asyncio.subprocess.Process) -> None:
        return_code = await process.wait()
        # A held lock means start/stop is already handling this process.
        if self.process is process and not self._lock.locked():
            logger.warning(f"{self.name} (PID: {process.pid}) exited unexpectedly with code: {return_code}")
            self.process = None
            self.registry.unregister(self.key)

    def kill(self) -> None:
        """Synchronously kill a still-running worker; used when the host exits abruptly."""
        if self.is_running:
            logger.warning(f"Killing {self.name} (PID: {self.process.pid}) on host exit")
            signal_process_tree(self.process.pid, signal.SIGKILL, self.name)
