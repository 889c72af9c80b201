"""Reference process supervisor for emitted supervision tables."""

import asyncio
import logging
import signal
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from vmimage.builder.loader import load_supervision_table
from vmimage.errors import SupervisionStartupFailure
from vmimage.models.command import SupervisionMode
from vmimage.models.supervision import SupervisionEntry, SupervisionTable
from vmimage.utils.process import command_argv, run_command, spawn, terminate_process


logger = logging.getLogger(__name__)

# Shell convention for a command that could not be executed
SPAWN_FAILED = 127


class Supervisor:
    """Runs a supervision table until shutdown.

    Each entry waits for the gates listed in its ``after`` field. A
    ``sysinit`` gate exiting non-zero aborts startup. ``respawn`` entries
    are restarted according to the table policy. On shutdown every running
    process group is stopped before the shutdown hook runs, exactly once.
    """

    def __init__(self, table: SupervisionTable):
        """Initialize the supervisor."""
        self.table = table
        self.policy = table.policy
        self.shutdown_event = asyncio.Event()
        self.processes: Dict[str, asyncio.subprocess.Process] = {}
        self.started: List[str] = []
        self.exit_codes: Dict[str, int] = {}
        self.restart_counts: Dict[str, int] = {}
        self.hook_runs = 0
        self._completed: Dict[str, asyncio.Event] = {
            entry.name: asyncio.Event() for entry in table.gates()
        }
        self._failed = asyncio.Event()
        self._failure: Optional[SupervisionStartupFailure] = None
        self._tasks: Dict[str, asyncio.Task] = {}
        self._stopped = False

    async def run(self, install_signal_handlers: bool = True):
        """Start all entries and block until shutdown is requested."""
        loop = asyncio.get_running_loop()
        if install_signal_handlers:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, self.request_shutdown)

        try:
            for entry in self.table.entries:
                self._tasks[entry.name] = asyncio.create_task(
                    self._run_entry(entry), name=f"supervise-{entry.name}"
                )

            logger.info(f"Supervising {len(self.table.entries)} entries")
            waiters = [
                asyncio.create_task(self.shutdown_event.wait()),
                asyncio.create_task(self._failed.wait()),
            ]
            try:
                await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for waiter in waiters:
                    waiter.cancel()
                await asyncio.gather(*waiters, return_exceptions=True)

        finally:
            await self.shutdown()
            if install_signal_handlers:
                for sig in (signal.SIGTERM, signal.SIGINT):
                    loop.remove_signal_handler(sig)

        if self._failure:
            raise self._failure

    def request_shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self.shutdown_event.set()

    async def _run_entry(self, entry: SupervisionEntry):
        for gate in entry.after:
            await self._completed[gate].wait()
        if self.shutdown_event.is_set():
            return

        if entry.mode == SupervisionMode.RESPAWN:
            await self._respawn(entry)
        elif entry.mode == SupervisionMode.ONCE:
            await self._run_once(entry)
        else:
            await self._run_gate(entry)

    async def _start(self, entry: SupervisionEntry) -> Optional[asyncio.subprocess.Process]:
        try:
            process = await spawn(command_argv(entry.user, entry.shell))
        except OSError as e:
            logger.error(f"Failed to start {entry.name}: {e}")
            return None
        self.processes[entry.name] = process
        self.started.append(entry.name)
        logger.info(f"Started {entry.name} ({entry.mode.value}, pid {process.pid})")
        return process

    async def _execute(self, entry: SupervisionEntry) -> int:
        """Run one process of ``entry`` to exit; a failed spawn counts as exit 127."""
        process = await self._start(entry)
        if process is None:
            self.exit_codes[entry.name] = SPAWN_FAILED
            return SPAWN_FAILED
        returncode = await process.wait()
        if self.processes.get(entry.name) is process:
            del self.processes[entry.name]
        self.exit_codes[entry.name] = returncode
        return returncode

    async def _run_gate(self, entry: SupervisionEntry):
        returncode = await self._execute(entry)

        if returncode != 0:
            if entry.mode == SupervisionMode.SYSINIT:
                logger.error(f"sysinit command {entry.name} exited with {returncode}")
                self._failure = SupervisionStartupFailure(
                    f"sysinit command {entry.name} exited with status {returncode}",
                    field=entry.name,
                    context={"shell": entry.shell},
                )
                self._failed.set()
                return
            logger.warning(f"wait command {entry.name} exited with {returncode}")
        else:
            logger.info(f"{entry.name} completed")

        self._completed[entry.name].set()

    async def _run_once(self, entry: SupervisionEntry):
        returncode = await self._execute(entry)
        logger.info(f"{entry.name} exited with {returncode}")

    async def _respawn(self, entry: SupervisionEntry):
        restarts = 0
        while not self.shutdown_event.is_set():
            returncode = await self._execute(entry)
            if self.shutdown_event.is_set():
                break

            max_restarts = self.policy.max_restarts
            if max_restarts is not None and restarts >= max_restarts:
                logger.error(
                    f"{entry.name} exited with {returncode}; "
                    f"giving up after {restarts} restarts"
                )
                break

            restarts += 1
            self.restart_counts[entry.name] = restarts
            logger.warning(f"{entry.name} exited with {returncode}, respawning")

            try:
                await asyncio.wait_for(
                    self.shutdown_event.wait(),
                    timeout=self.policy.restart_delay
                )
            except asyncio.TimeoutError:
                continue

    async def shutdown(self):
        """Stop every running process, then run the shutdown hook once."""
        if self._stopped:
            return
        self._stopped = True
        self.shutdown_event.set()
        logger.info("Stopping supervised processes")

        # Cancel entry tasks so nothing respawns or starts behind our back
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

        running = list(self.processes.items())
        results = await asyncio.gather(
            *(terminate_process(process, self.policy.stop_timeout) for _, process in running),
            return_exceptions=True,
        )
        for (name, _), result in zip(running, results):
            if isinstance(result, BaseException):
                logger.error(f"Failed to stop {name}: {result}")
            else:
                self.exit_codes[name] = result
                logger.info(f"Stopped {name} (exit {result})")
        self.processes.clear()

        await self._run_shutdown_hook()
        logger.info("Supervisor shutdown completed")

    async def _run_shutdown_hook(self):
        hook = self.table.shutdown_hook
        if not hook:
            return

        self.hook_runs += 1
        logger.info("Running shutdown hook")
        try:
            result = await run_command(
                ["/bin/sh", "-c", hook],
                check=False,
                capture_output=False,
                timeout=self.policy.shutdown_timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(
                f"Shutdown hook timed out after {self.policy.shutdown_timeout}s, "
                f"continuing shutdown"
            )
            return

        if result.returncode != 0:
            logger.error(f"Shutdown hook exited with {result.returncode}")


async def run_supervisor(table_path: Union[str, Path]):
    """Load a supervision table and supervise it until shutdown."""
    table = load_supervision_table(table_path)
    supervisor = Supervisor(table)
    await supervisor.run()
