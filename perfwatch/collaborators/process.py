"""Async subprocess execution."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured output of a finished command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def execute(
    *args: str,
    cwd: Path | str | None = None,
    timeout: float | None = None,
    message: str | None = None,
) -> CommandResult:
    """Run a command and capture its output.

    Raises:
        OSError: If the executable cannot be started
        asyncio.TimeoutError: If the command does not finish in time
    """
    if message:
        logger.info(message)
    logger.debug("Running %s", " ".join(args))

    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    result = CommandResult(
        args=tuple(args),
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    if result.stdout.strip():
        logger.debug(result.stdout.strip())
    if result.stderr.strip():
        logger.debug(result.stderr.strip())

    return result
