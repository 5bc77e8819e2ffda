from __future__ import annotations

"""Tool registry.

The registry maps a ``ToolName`` to an executable tool implementation and is
the single dispatch point the run engine uses.
"""

import logging
from typing import Any, Dict, Union

from pydantic import ValidationError

from ..errors import ToolExecutionError, UnknownToolError
from ..schemas.domain import ToolName
from .base import Tool, ToolContext

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    In-memory mapping of tool names to implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the tool name.
        - ``get`` raises ``UnknownToolError`` if the tool is missing.
    """

    def __init__(self) -> None:
        self._tools: Dict[ToolName, Tool] = {}

    def register(self, tool: Tool) -> None:
        """
        Register a tool implementation.

        Args:
            tool: The tool instance to register. It must expose a ``name`` attribute.
        """
        self._tools[ToolName(tool.name)] = tool

    def get(self, name: Union[ToolName, str]) -> Tool:
        """
        Retrieve a registered tool by name.

        Raises:
            UnknownToolError: If the name is not a known tool or is not registered.
        """
        try:
            return self._tools[ToolName(name)]
        except (KeyError, ValueError):
            raise UnknownToolError(name) from None

    def has(self, name: Union[ToolName, str]) -> bool:
        try:
            return ToolName(name) in self._tools
        except ValueError:
            return False

    def names(self) -> list[ToolName]:
        return list(self._tools)

    def _coerce_input(self, tool: Tool, raw_input: Any) -> Any:
        if isinstance(raw_input, str) and tool.text_field:
            return {tool.text_field: raw_input}
        if raw_input is None:
            return {}
        return raw_input

    async def invoke(self, name: Union[ToolName, str], ctx: ToolContext, raw_input: Any) -> Dict[str, Any]:
        """
        Validate ``raw_input``, execute the tool and return its JSON-ready output.

        Raises:
            UnknownToolError: If the tool is not registered.
            ToolExecutionError: If the input does not validate or the tool fails.
        """
        tool = self.get(name)
        try:
            payload = tool.input_model.model_validate(self._coerce_input(tool, raw_input))
        except ValidationError as e:
            raise ToolExecutionError(tool.name, f"invalid input: {e.errors(include_url=False)}") from e

        logger.debug(f"Invoking tool {tool.name.value} for run={ctx.run_id} step={ctx.step_index}")
        output = await tool.execute(ctx, payload)
        return output.model_dump(mode="json")
