from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from .errors import ExternalToolError

logger = logging.getLogger(__name__)


async def run_process(
    args: Sequence[str],
    timeout: float,
    name: str,
) -> str:
    """Run a command to completion and return its stdout.

    The process is killed on timeout or cancellation.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ExternalToolError(f"Failed to start {name}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ExternalToolError(f"{name} process timeout") from exc
    finally:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()

    if proc.returncode != 0:
        message = stderr.decode(errors="replace").strip()
        logger.error("%s exited with code %s: %s", name, proc.returncode, message)
        raise ExternalToolError(f"{name} process exited with code {proc.returncode}: {message}")
    return stdout.decode(errors="replace")
