from .base import BaseSchema, PayloadSchema
from .domain import (
    CompiledStep,
    GraphEdge,
    GraphNode,
    NodeData,
    Run,
    RunEvent,
    RunEventType,
    RunMode,
    RunRequest,
    RunStatus,
    RunStep,
    StepStatus,
    ToolName,
    UsageLedgerEntry,
    WorkflowGraph,
)

__all__ = [
    "BaseSchema",
    "CompiledStep",
    "GraphEdge",
    "GraphNode",
    "NodeData",
    "PayloadSchema",
    "Run",
    "RunEvent",
    "RunEventType",
    "RunMode",
    "RunRequest",
    "RunStatus",
    "RunStep",
    "StepStatus",
    "ToolName",
    "UsageLedgerEntry",
    "WorkflowGraph",
]
