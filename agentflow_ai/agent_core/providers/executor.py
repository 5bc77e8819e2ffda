from __future__ import annotations

"""Local subprocess command executor.

This executor runs commands directly on the host with no sandbox. It exists
for development and trusted deployments and is only wired when
``AGENTFLOW_ENABLE_LOCAL_EXECUTOR`` is set.
"""

import asyncio
import logging
import os
import signal
import time
from typing import Optional

from ..errors import ToolTimeoutError
from ..schemas.domain import ToolName
from ..schemas.tools import OperatorExecOutput

logger = logging.getLogger(__name__)

_POSIX = os.name == "posix"


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it spawned, then reap it."""
    try:
        if _POSIX:
            # The shell may be gone while its children still hold the pipes.
            os.killpg(process.pid, signal.SIGKILL)
        elif process.returncode is None:
            process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


class LocalCommandExecutor:
    def __init__(self, *, cwd: Optional[str] = None, default_timeout: float = 30.0) -> None:
        self.cwd = cwd
        self.default_timeout = default_timeout

    async def run(self, cmd: str, *, timeout: Optional[float] = None) -> OperatorExecOutput:
        limit = timeout or self.default_timeout
        logger.info(f"Executing command: {cmd} (cwd={self.cwd})")
        start_time = time.time()

        process = await asyncio.create_subprocess_shell(
            cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
            start_new_session=_POSIX,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            await _terminate(process)
            logger.warning(f"Command timed out after {limit}s: {cmd}")
            raise ToolTimeoutError(ToolName.operator_exec, limit) from None
        except BaseException:
            # Cancelled from outside (e.g. by a step timeout): the child must not outlive the call.
            await _terminate(process)
            raise

        stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""
        returncode = process.returncode if process.returncode is not None else -1

        logger.info(
            f"Command completed with exit code {returncode} "
            f"(duration: {time.time() - start_time:.2f}s, stdout: {len(stdout)} chars, stderr: {len(stderr)} chars)"
        )
        return OperatorExecOutput(stdout=stdout, stderr=stderr, returncode=returncode)
