from .base import Tool, ToolContext
from .builtin import DataAnalysisTool, LlmTool, OperatorExecTool, PlanTool, RagSearchTool, WebSearchTool
from .registry import ToolRegistry

__all__ = [
    "DataAnalysisTool",
    "LlmTool",
    "OperatorExecTool",
    "PlanTool",
    "RagSearchTool",
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "WebSearchTool",
]
