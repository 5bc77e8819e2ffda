"""Workflow execution engine: graph compilation, tool dispatch, billing and run orchestration."""

from .errors import (
    AgentFlowError,
    GraphCycleError,
    GraphValidationError,
    QuotaExceededError,
    RunCancelledError,
    StructuralError,
    ToolExecutionError,
    ToolTimeoutError,
    UnknownToolError,
)
from .factory import build_default_registry, build_engine, build_service, build_tool_deps
from .graph import OutputsBag, compile_graph, resolve_templates
from .runtime import CancellationToken, EngineDeps, RunEngine, RunResult
from .schemas.domain import Run, RunRequest, RunStatus, RunStep, ToolName, WorkflowGraph
from .service import RunHandle, RunService
from .summary import RunSummary, compose_run_summary

__all__ = [
    "AgentFlowError",
    "CancellationToken",
    "EngineDeps",
    "GraphCycleError",
    "GraphValidationError",
    "OutputsBag",
    "QuotaExceededError",
    "Run",
    "RunCancelledError",
    "RunEngine",
    "RunHandle",
    "RunRequest",
    "RunResult",
    "RunService",
    "RunStatus",
    "RunStep",
    "RunSummary",
    "StructuralError",
    "ToolExecutionError",
    "ToolName",
    "ToolTimeoutError",
    "UnknownToolError",
    "WorkflowGraph",
    "build_default_registry",
    "build_engine",
    "build_service",
    "build_tool_deps",
    "compile_graph",
    "compose_run_summary",
    "resolve_templates",
]
