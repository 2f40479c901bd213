"""
Bounded external command execution
Every helper process (osascript, xdotool, open) runs with a timeout and is killed when it expires
"""

import asyncio
from typing import List

from keepalive_backend.core.logger import get_logger

logger = get_logger(__name__)


class CommandFailed(Exception):
    """External command could not start, exited non-zero, or timed out"""

    def __init__(self, argv: List[str], reason: str, timed_out: bool = False):
        self.argv = argv
        self.reason = reason
        self.timed_out = timed_out
        super().__init__(f"{argv[0]}: {reason}")


async def run_command(argv: List[str], timeout: float) -> str:
    """Run a command and return its stripped stdout

    Raises:
        CommandFailed: on start failure, non-zero exit code or timeout
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CommandFailed(argv, str(e)) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        logger.warning(f"Command timed out after {timeout}s: {argv[0]}")
        raise CommandFailed(argv, f"timed out after {timeout}s", timed_out=True) from e

    if process.returncode != 0:
        message = stderr.decode(errors="replace").strip()
        raise CommandFailed(argv, message or f"exit code {process.returncode}")

    return stdout.decode(errors="replace").strip()
