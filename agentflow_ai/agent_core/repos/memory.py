from __future__ import annotations

"""In-memory repository implementations.

Used by default when no database is configured, and by tests. Stored
objects are deep copies, so later changes to a run or step held by the
caller never leak into the store.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..schemas.domain import Run, RunEvent, RunStep, UsageLedgerEntry
from .interfaces import EventRepository, RunRepository, StepRepository, UsageRepository


@dataclass
class InMemoryRunRepository(RunRepository):
    runs: Dict[str, Run] = field(default_factory=dict)

    async def create(self, run: Run) -> None:
        self.runs[run.id] = run.model_copy(deep=True)

    async def update(self, run: Run) -> None:
        self.runs[run.id] = run.model_copy(deep=True)

    async def get(self, run_id: str) -> Optional[Run]:
        run = self.runs.get(run_id)
        return run.model_copy(deep=True) if run is not None else None


@dataclass
class InMemoryStepRepository(StepRepository):
    steps: Dict[Tuple[str, int], RunStep] = field(default_factory=dict)
    history: List[RunStep] = field(default_factory=list)

    async def persist(self, step: RunStep) -> None:
        stored = step.model_copy(deep=True)
        self.steps[(step.run_id, step.index)] = stored
        self.history.append(stored)

    async def list(self, run_id: str) -> list[RunStep]:
        rows = [s for (rid, _), s in self.steps.items() if rid == run_id]
        return [s.model_copy(deep=True) for s in sorted(rows, key=lambda s: s.index)]


@dataclass
class InMemoryUsageRepository(UsageRepository):
    entries: List[UsageLedgerEntry] = field(default_factory=list)

    async def append(self, entry: UsageLedgerEntry) -> None:
        self.entries.append(entry.model_copy(deep=True))

    async def list(self, run_id: str) -> list[UsageLedgerEntry]:
        return [e.model_copy(deep=True) for e in self.entries if e.run_id == run_id]


@dataclass
class InMemoryEventRepository(EventRepository):
    events: List[RunEvent] = field(default_factory=list)

    async def append(self, event: RunEvent) -> None:
        self.events.append(event.model_copy(deep=True))

    async def list(self, run_id: str, limit: int = 1000) -> list[RunEvent]:
        return [e.model_copy(deep=True) for e in self.events if e.run_id == run_id][:limit]
