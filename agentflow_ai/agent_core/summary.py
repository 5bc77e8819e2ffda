"""Run summary composer.

Builds a read-only report of a finished (or failed) run from its recorded
steps: a header, a ledger table with step totals, per-step request/response
detail, Mermaid diagrams of the originating graph and of the executed step
chain, and the final output. Rendering never raises, whatever state the run
ended in.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

from .schemas.domain import Run, RunStep, StepStatus, WorkflowGraph

GRAPH_MODE_GOAL = "(graph-based execution)"

_MERMAID_ID = re.compile(r"[^\w]")

_STATUS_MARKERS = {StepStatus.done: "\u2713", StepStatus.error: "\u2717", StepStatus.running: "\u25cf"}


@dataclass(frozen=True)
class LedgerRow:
    index: int
    tool: str
    node_id: Optional[str]
    status: str
    credits: int
    tokens_in: int
    tokens_out: int


@dataclass(frozen=True)
class StepDetail:
    index: int
    tool: str
    status: str
    request: Any
    response: Any
    error: Optional[str]


@dataclass(frozen=True)
class RunSummary:
    run_id: str
    mode: str
    goal: str
    status: str
    credits: int
    tokens_in: int
    tokens_out: int
    started_at: Optional[datetime]
    finished_at: Optional[datetime]
    error: Optional[str]
    rows: list[LedgerRow] = field(default_factory=list)
    details: list[StepDetail] = field(default_factory=list)
    diagram: Optional[str] = None
    flow: Optional[str] = None
    output: Any = None

    @property
    def total_steps(self) -> int:
        return len(self.rows)

    @property
    def succeeded_steps(self) -> int:
        return sum(1 for row in self.rows if row.status == StepStatus.done.value)

    @property
    def failed_steps(self) -> int:
        return self.total_steps - self.succeeded_steps

    def to_markdown(self) -> str:
        lines = [
            "# Agent Run Summary",
            "",
            f"- **Run ID:** {self.run_id}",
            f"- **Mode:** {self.mode}",
            f"- **Status:** {self.status}",
            f"- **Goal:** {self.goal}",
            f"- **Credits Used:** {self.credits}",
            f"- **Tokens:** {self.tokens_in} in • {self.tokens_out} out",
            f"- **Started:** {_timestamp(self.started_at)}",
            f"- **Finished:** {_timestamp(self.finished_at)}",
        ]
        if self.error:
            lines.append(f"- **Error:** {self.error}")

        lines += ["", "## Steps", ""]
        if self.rows:
            lines.append("| # | Tool | Node | Status | Credits | Tokens In | Tokens Out |")
            lines.append("|---|---|---|---|---:|---:|---:|")
            for row in self.rows:
                lines.append(
                    f"| {row.index} | {row.tool} | {row.node_id or ''} | {row.status} "
                    f"| {row.credits} | {row.tokens_in} | {row.tokens_out} |"
                )
        else:
            lines.append("_No steps were executed._")

        lines += [
            "",
            "## Totals",
            "",
            f"- **Total Steps:** {self.total_steps}",
            f"- **Successful:** {self.succeeded_steps}",
            f"- **Failed:** {self.failed_steps}",
        ]

        for detail in self.details:
            lines += ["", f"### Step {detail.index}: {detail.tool} ({detail.status})", ""]
            lines += ["**Request**", "", "```json", _json_block(detail.request), "```"]
            if detail.response is not None:
                lines += ["", "**Response**", "", "```json", _json_block(detail.response), "```"]
            if detail.error:
                lines += ["", "**Error**", "", "```text", detail.error, "```"]

        if self.diagram:
            lines += ["", "## Graph", "", "```mermaid", self.diagram, "```"]
        if self.flow:
            lines += ["", "## Execution Flow", "", "```mermaid", self.flow, "```"]

        lines += ["", "## Final Output", "", "```json", _json_block(self.output), "```", ""]
        return "\n".join(lines)


def _timestamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else "-"


def _json_block(value: Any) -> str:
    try:
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return json.dumps(repr(value))


def _mermaid_label(text: str) -> str:
    return text.replace('"', "#quot;").replace("\n", " ")


def mermaid_diagram(graph: Optional[WorkflowGraph]) -> Optional[str]:
    """``graph TD`` diagram of ``graph``; ``None`` unless it has both nodes and edges."""
    if graph is None or not graph.nodes or not graph.edges:
        return None
    ids = {node.id: _MERMAID_ID.sub("_", node.id) for node in graph.nodes}
    lines = ["graph TD"]
    for node in graph.nodes:
        label = node.data.label or node.data.tool or node.id
        lines.append(f'  {ids[node.id]}["{_mermaid_label(label)}"]')
    for edge in graph.edges:
        if edge.source in ids and edge.target in ids:
            lines.append(f"  {ids[edge.source]} --> {ids[edge.target]}")
    return "\n".join(lines)


def step_chain_diagram(steps: Sequence[RunStep]) -> Optional[str]:
    """``graph TD`` chain of the executed steps in order, marked by outcome."""
    if not steps:
        return None
    lines = ["graph TD"]
    for step in steps:
        marker = _STATUS_MARKERS.get(step.status, "?")
        label = _mermaid_label(step.node_id or f"step {step.index}")
        lines.append(f'  s{step.index}["{marker} {step.tool.value}<br/>{label}"]')
    for prev, step in zip(steps, steps[1:]):
        lines.append(f"  s{prev.index} --> s{step.index}")
    return "\n".join(lines)


def compose_run_summary(run: Run, steps: Sequence[RunStep], graph: Optional[WorkflowGraph] = None) -> RunSummary:
    """Build the report for ``run``; ``graph`` defaults to the run's own graph."""
    ordered = sorted(steps, key=lambda s: s.index)
    return RunSummary(
        run_id=run.id,
        mode=run.mode.value,
        goal=run.goal or GRAPH_MODE_GOAL,
        status=run.status.value,
        credits=run.credits,
        tokens_in=run.tokens_in,
        tokens_out=run.tokens_out,
        started_at=run.started_at,
        finished_at=run.finished_at,
        error=run.error,
        rows=[
            LedgerRow(
                index=s.index,
                tool=s.tool.value,
                node_id=s.node_id,
                status=s.status.value,
                credits=s.credits,
                tokens_in=s.tokens_in,
                tokens_out=s.tokens_out,
            )
            for s in ordered
        ],
        details=[
            StepDetail(
                index=s.index,
                tool=s.tool.value,
                status=s.status.value,
                request=s.request,
                response=s.response,
                error=s.error,
            )
            for s in ordered
        ],
        diagram=mermaid_diagram(graph if graph is not None else run.graph),
        flow=step_chain_diagram(ordered),
        output=run.output,
    )
