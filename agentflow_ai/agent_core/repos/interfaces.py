from __future__ import annotations

"""Repository interface contracts.

The run engine depends on these Protocols instead of concrete persistence
implementations.

Contract guidelines
-------------------

- All methods are async.
- From the engine's side persistence is write-only: it creates and updates
  runs, persists steps and appends usage and events, and never reads them
  back. The read methods exist for callers inspecting runs afterwards.
- ``StepRepository.persist`` is called at least twice per step (``running``
  then ``done``/``error``) and must upsert on ``(run_id, index)``.
- Usage and event repositories are append-only.
"""

from typing import Optional, Protocol

from ..schemas.domain import Run, RunEvent, RunStep, UsageLedgerEntry


class RunRepository(Protocol):
    """Persist and query the lifecycle of a run."""

    async def create(self, run: Run) -> None:
        """
        Create a new run record.

        Args:
            run: The initial (``pending``) run state to persist.
        """
        ...

    async def update(self, run: Run) -> None:
        """
        Overwrite the stored state of an existing run.

        Args:
            run: The current run state.
        """
        ...

    async def get(self, run_id: str) -> Optional[Run]:
        """
        Retrieve a run by its ID.

        Returns:
            The Run if found, else None.
        """
        ...


class StepRepository(Protocol):
    """Persist per-step execution records."""

    async def persist(self, step: RunStep) -> None:
        """
        Insert or replace the record for ``(step.run_id, step.index)``.

        Args:
            step: The step in its current status.
        """
        ...

    async def list(self, run_id: str) -> list[RunStep]:
        """
        List the steps of a run ordered by index.
        """
        ...


class UsageRepository(Protocol):
    """Append-only credit and token accounting."""

    async def append(self, entry: UsageLedgerEntry) -> None: ...

    async def list(self, run_id: str) -> list[UsageLedgerEntry]: ...


class EventRepository(Protocol):
    """Append-only audit trail of run events."""

    async def append(self, event: RunEvent) -> None:
        """
        Append a new event to the store.

        Args:
            event: The event to record.
        """
        ...

    async def list(self, run_id: str, limit: int = 1000) -> list[RunEvent]:
        """
        List events for a run in creation order.
        """
        ...
