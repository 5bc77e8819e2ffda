"""Error types for the workflow engine.

Defines the exception hierarchy the engine raises and records on runs:

- ``StructuralError`` and its subclasses fail a run before any tool runs
  (invalid or cyclic graphs, unknown tools, exhausted quotas).
- ``ToolExecutionError`` marks the current step ``error`` and aborts the run.
- ``RunCancelledError`` ends a run ``cancelled`` at a step boundary.
"""

from __future__ import annotations

from typing import Any, Optional


class AgentFlowError(Exception):
    """Base error for all engine exceptions."""


class StructuralError(AgentFlowError):
    """Raised when a run cannot start or continue for reasons unrelated to a tool call."""


class GraphValidationError(StructuralError):
    """Raised for malformed workflow graphs (for example duplicate node ids)."""


class GraphCycleError(GraphValidationError):
    """Raised when a workflow graph has no valid topological order.

    Args:
        unordered: Node ids that could not be ordered.
    """

    def __init__(self, unordered: Optional[list[str]] = None) -> None:
        self.unordered = list(unordered or [])
        detail = f" (unordered nodes: {', '.join(self.unordered)})" if self.unordered else ""
        super().__init__(f"Workflow graph contains a cycle; the graph must be a DAG{detail}")


class UnknownToolError(StructuralError):
    """Raised when a node or planned step names a tool that is not registered."""

    def __init__(self, tool: Any, *, node_id: Optional[str] = None) -> None:
        self.tool = str(getattr(tool, "value", tool))
        self.node_id = node_id
        where = f" on node '{node_id}'" if node_id else ""
        super().__init__(f"Unknown tool '{self.tool}'{where}")


class QuotaExceededError(StructuralError):
    """Raised when a plan-tier quota would be exceeded.

    Args:
        quota: Name of the quota (``max_steps_per_run``, ``max_concurrent_runs``, ``daily_credits``).
        limit: The plan-tier limit.
        actual: The value that would exceed it.
    """

    def __init__(self, quota: str, *, limit: int, actual: int, plan_tier: Optional[str] = None) -> None:
        self.quota = quota
        self.limit = limit
        self.actual = actual
        self.plan_tier = plan_tier
        tier = f" for plan '{plan_tier}'" if plan_tier else ""
        super().__init__(f"Quota '{quota}' exceeded{tier}: limit {limit}, requested {actual}")


class ToolExecutionError(AgentFlowError):
    """Raised when a tool invocation fails."""

    def __init__(self, tool: Any, message: str) -> None:
        self.tool = str(getattr(tool, "value", tool))
        super().__init__(f"{self.tool} execution failed: {message}")


class ToolTimeoutError(ToolExecutionError):
    """Raised when a tool invocation exceeds the configured timeout."""

    def __init__(self, tool: Any, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(tool, f"timed out after {timeout:g}s")


class RunCancelledError(AgentFlowError):
    """Raised when a run is cancelled at a step boundary."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Run '{run_id}' was cancelled")
