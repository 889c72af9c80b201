"""Subprocess helpers for the supervisor."""

import asyncio
import logging
import os
import pwd
import signal
import subprocess
from typing import List, Optional
from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result from running a command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""


def current_user() -> str:
    """Name of the effective user of this process."""
    return pwd.getpwuid(os.geteuid()).pw_name


def command_argv(user: str, shell: str) -> List[str]:
    """Build the argv that runs ``shell`` as ``user``."""
    if user == current_user():
        return ["/bin/sh", "-c", shell]
    return ["su", "-p", user, "-c", shell]


def signal_process_group(process: asyncio.subprocess.Process, sig: int):
    """Signal the process group led by ``process``."""
    if process.returncode is not None:
        return
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        pass


async def spawn(argv: List[str], capture_output: bool = False) -> asyncio.subprocess.Process:
    """Start a process as the leader of a new session."""
    logger.debug(f"Spawning: {' '.join(argv)}")
    return await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE if capture_output else None,
        stderr=asyncio.subprocess.PIPE if capture_output else None,
        start_new_session=True,
    )


async def terminate_process(process: asyncio.subprocess.Process, timeout: float) -> int:
    """SIGTERM the process group, then SIGKILL it after ``timeout`` seconds."""
    if process.returncode is not None:
        return process.returncode

    signal_process_group(process, signal.SIGTERM)
    try:
        return await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Process {process.pid} ignored SIGTERM, killing")
        signal_process_group(process, signal.SIGKILL)
        return await process.wait()


async def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    timeout: Optional[float] = None,
) -> CommandResult:
    """Run a command asynchronously, killing its process group on timeout."""
    logger.debug(f"Running command: {' '.join(cmd)}")

    process = await spawn(cmd, capture_output=capture_output)

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        signal_process_group(process, signal.SIGKILL)
        await process.wait()
        raise subprocess.TimeoutExpired(cmd, timeout)

    result = CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode() if stdout else "",
        stderr=stderr.decode() if stderr else "",
    )

    if check and process.returncode != 0:
        error = subprocess.CalledProcessError(
            process.returncode, cmd
        )
        error.stdout = result.stdout
        error.stderr = result.stderr
        raise error

    return result
