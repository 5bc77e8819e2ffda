from __future__ import annotations

"""Runtime dependency bundle, run results and LangGraph state types.

- ``EngineDeps`` collects the repositories, registry and ledger the engine needs.
- ``CancellationToken`` lets a caller stop a run at the next step boundary.
- ``RunResult`` is what ``RunEngine.execute`` returns for every run.
- ``_GraphState`` is the state passed between LangGraph nodes.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, NotRequired, Optional, Required, TypedDict

from ..billing.ledger import CreditLedger
from ..graph.outputs import OutputsBag
from ..pricing import PlanLimits
from ..providers.base import ToolDeps
from ..repos import EventRepository, RunRepository, StepRepository, UsageRepository
from ..schemas.domain import Run, RunStatus, RunStep
from ..tools.registry import ToolRegistry


@dataclass(frozen=True)
class EngineDeps:
    """Dependency bundle for ``RunEngine``.

    Usage and event repositories are optional; without them usage entries
    and audit events are simply not persisted.
    """

    runs: RunRepository
    steps: StepRepository
    tools: ToolRegistry
    ledger: CreditLedger
    tool_deps: ToolDeps = field(default_factory=ToolDeps)

    usage: Optional[UsageRepository] = None
    events: Optional[EventRepository] = None


class CancellationToken:
    """One-shot cancellation flag checked by the engine between steps."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class RunResult:
    """Outcome of one run.

    ``exception`` holds the error that ended a failed or cancelled run;
    ``raise_for_status`` re-raises it.
    """

    run: Run
    steps: List[RunStep]
    outputs: OutputsBag
    exception: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.run.status == RunStatus.succeeded

    def raise_for_status(self) -> "RunResult":
        if self.exception is not None:
            raise self.exception
        return self


@dataclass
class _RunScope:
    """Mutable per-run bookkeeping shared by the graph nodes of one execution."""

    run: Run
    token: CancellationToken
    limits: PlanLimits
    records: List[RunStep] = field(default_factory=list)
    exception: Optional[BaseException] = None
    last_output: Any = None


class _GraphState(TypedDict):
    """LangGraph state for a single engine run.

    Required keys:

    - ``run_id``: current run identifier.
    - ``steps``: pending step dicts (``node_id``, ``tool``, ``input``).
    - ``idx``: position of the next step in ``steps``.
    - ``outputs``: the outputs bag of completed steps.
    - ``scope``: per-run bookkeeping.

    Optional keys:

    - ``_finished``: set to route to the finish node.
    - ``_terminal_status``: status chosen by the finish node.
    """

    run_id: Required[str]
    steps: Required[List[Dict[str, Any]]]
    idx: Required[int]
    outputs: Required[OutputsBag]
    scope: Required[_RunScope]
    _finished: NotRequired[bool]
    _terminal_status: NotRequired[str]
