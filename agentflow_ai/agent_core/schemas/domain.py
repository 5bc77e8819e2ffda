from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema, PayloadSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class ToolName(str, Enum):
    plan = "plan"
    llm = "llm"
    web_search = "web_search"
    operator_exec = "operator_exec"
    rag_search = "rag_search"
    data_analysis = "data_analysis"


class RunStatus(str, Enum):
    pending = "pending"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"
    cancelled = "cancelled"


class RunMode(str, Enum):
    graph = "graph"
    linear = "linear"


class StepStatus(str, Enum):
    running = "running"
    done = "done"
    error = "error"


class RunEventType(str, Enum):
    run_created = "run.created"
    run_started = "run.started"
    plan_created = "plan.created"
    step_started = "step.started"
    step_completed = "step.completed"
    step_failed = "step.failed"
    template_unresolved = "template.unresolved"
    usage_recorded = "usage.recorded"
    run_completed = "run.completed"
    run_failed = "run.failed"
    run_cancelled = "run.cancelled"


# ---------------------------------------------------------------------------
# Workflow graph payloads
# ---------------------------------------------------------------------------


class NodeData(PayloadSchema):
    tool: Optional[str] = None
    label: Optional[str] = None
    input: Any = None


class GraphNode(PayloadSchema):
    id: str
    data: NodeData = Field(default_factory=NodeData)


class GraphEdge(PayloadSchema):
    """Directed dependency: ``target`` consumes ``source``'s output."""

    id: Optional[str] = None
    source: str
    target: str


class WorkflowGraph(PayloadSchema):
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)


class CompiledStep(BaseSchema):
    node_id: str
    tool: ToolName
    input: Any = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Runs, steps and the audit trail
# ---------------------------------------------------------------------------


class Run(BaseSchema):
    id: str = Field(default_factory=_new_id)
    user_id: str
    project_id: Optional[str] = None

    mode: RunMode
    goal: Optional[str] = None
    graph: Optional[WorkflowGraph] = None
    model: str
    plan_tier: str

    status: RunStatus = RunStatus.pending
    tokens_in: int = 0
    tokens_out: int = 0
    credits: int = 0

    created_at: datetime = Field(default_factory=_utc_now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    output: Any = None
    error: Optional[str] = None
    summary: Optional[str] = None


class RunStep(BaseSchema):
    run_id: str
    index: int
    node_id: Optional[str] = None
    tool: ToolName

    status: StepStatus = StepStatus.running
    request: Any = None
    response: Any = None
    error: Optional[str] = None

    credits: int = 0
    tokens_in: int = 0
    tokens_out: int = 0

    started_at: datetime = Field(default_factory=_utc_now)
    finished_at: Optional[datetime] = None


class UsageLedgerEntry(BaseSchema):
    id: str = Field(default_factory=_new_id)
    run_id: str
    user_id: str
    project_id: Optional[str] = None
    step_index: int

    label: str
    model: str
    tokens_in: int
    tokens_out: int
    credits: int
    meta: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=_utc_now)


class RunEvent(BaseSchema):
    id: str = Field(default_factory=_new_id)
    run_id: str

    type: RunEventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utc_now)


class RunRequest(BaseSchema):
    """
    Input of one run.

    A run executes ``graph`` when it carries at least one node, otherwise it
    plans and executes ``goal``. ``plan_tier`` and ``model`` fall back to the
    engine defaults when unset.
    """

    run_id: str = Field(default_factory=_new_id)
    user_id: str
    project_id: Optional[str] = None
    plan_tier: Optional[str] = None
    model: Optional[str] = None
    goal: Optional[str] = None
    graph: Optional[WorkflowGraph] = None
