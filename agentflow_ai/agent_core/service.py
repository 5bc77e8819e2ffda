from __future__ import annotations

"""High-level service for executing runs.

``RunService`` provides an application-friendly API on top of ``RunEngine``:

- ``execute`` runs a request inline and returns its ``RunResult``.
- ``submit`` schedules the run as an asyncio task and returns a ``RunHandle``.
- ``cancel`` asks a submitted run to stop at its next step boundary; a tool
  call already in flight is never interrupted.

The service is intentionally thin: execution semantics live in the engine.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .runtime import CancellationToken, RunEngine, RunResult
from .schemas.domain import RunRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunHandle:
    """Reference to a run executing in the background."""

    run_id: str
    task: "asyncio.Task[RunResult]"
    cancel_token: CancellationToken

    def cancel(self) -> None:
        self.cancel_token.cancel()

    @property
    def done(self) -> bool:
        return self.task.done()

    async def result(self) -> RunResult:
        return await self.task


class RunService:
    """Execute runs inline or in the background."""

    def __init__(self, *, engine: RunEngine) -> None:
        self._engine = engine
        self._active: Dict[str, RunHandle] = {}

    @property
    def engine(self) -> RunEngine:
        return self._engine

    async def execute(self, request: RunRequest, *, cancel_token: Optional[CancellationToken] = None) -> RunResult:
        """Execute ``request`` and wait for the result."""
        return await self._engine.execute(request, cancel_token=cancel_token)

    def submit(self, request: RunRequest) -> RunHandle:
        """
        Start ``request`` as a background task.

        Raises:
            ValueError: If a run with the same id is still active.
        """
        if request.run_id in self._active:
            raise ValueError(f"Run '{request.run_id}' is already active")
        token = CancellationToken()
        task = asyncio.create_task(self._engine.execute(request, cancel_token=token), name=f"run-{request.run_id}")
        handle = RunHandle(run_id=request.run_id, task=task, cancel_token=token)
        self._active[request.run_id] = handle
        task.add_done_callback(lambda _t: self._active.pop(request.run_id, None))
        logger.debug(f"Run {request.run_id} submitted")
        return handle

    def cancel(self, run_id: str) -> bool:
        """Request cancellation of an active run; returns False if it is not active."""
        handle = self._active.get(run_id)
        if handle is None:
            return False
        handle.cancel()
        logger.info(f"Run {run_id} cancellation requested")
        return True

    def get_handle(self, run_id: str) -> Optional[RunHandle]:
        return self._active.get(run_id)

    def active_run_ids(self) -> list[str]:
        return list(self._active)
