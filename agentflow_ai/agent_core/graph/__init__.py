"""Workflow graph compilation and placeholder resolution."""

from .compiler import compile_graph, resolve_tool_name
from .outputs import OutputsBag
from .templates import PLACEHOLDER_PATTERN, resolve_templates

__all__ = [
    "OutputsBag",
    "PLACEHOLDER_PATTERN",
    "compile_graph",
    "resolve_templates",
    "resolve_tool_name",
]
