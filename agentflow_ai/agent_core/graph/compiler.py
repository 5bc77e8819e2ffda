"""Graph compiler.

Turns an editor-authored :class:`WorkflowGraph` into the ordered list of
:class:`CompiledStep` the run engine executes.

Ordering uses Kahn's algorithm. Only edges whose endpoints both exist are
counted, so stale edges left behind by graph edits are ignored. The ready
queue is seeded in node declaration order and successors are released in edge
declaration order, which makes the result deterministic for a given graph.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Any, Iterable, Mapping, Optional, Union

from ..errors import GraphCycleError, GraphValidationError, UnknownToolError
from ..schemas.domain import CompiledStep, NodeData, ToolName, WorkflowGraph

logger = logging.getLogger(__name__)

DEFAULT_TOOL = ToolName.llm

_LABEL_SEPARATORS = re.compile(r"[\s\-]+")


def resolve_tool_name(data: NodeData) -> str:
    """Pick the tool name for a node: explicit ``tool``, else its normalized label, else ``llm``."""
    if data.tool and data.tool.strip():
        return data.tool.strip()
    if data.label and data.label.strip():
        return _LABEL_SEPARATORS.sub("_", data.label.strip().lower())
    return DEFAULT_TOOL.value


def compile_graph(
    graph: Union[WorkflowGraph, Mapping[str, Any]],
    *,
    known_tools: Optional[Iterable[ToolName]] = None,
) -> list[CompiledStep]:
    """
    Compile a workflow graph into an execution order.

    Args:
        graph: The graph, as a model or as its JSON-like mapping.
        known_tools: Restrict accepted tools further, e.g. to those registered
            in a ``ToolRegistry``. Defaults to every ``ToolName``.

    Returns:
        One ``CompiledStep`` per node, ordered so that every edge's source
        precedes its target. An empty graph compiles to an empty list.

    Raises:
        GraphValidationError: If two nodes share an id.
        GraphCycleError: If the valid edges do not form a DAG.
        UnknownToolError: If a node resolves to a tool that is not known.
    """
    if not isinstance(graph, WorkflowGraph):
        graph = WorkflowGraph.model_validate(graph)

    nodes = graph.nodes
    if not nodes:
        return []

    index_of: dict[str, int] = {}
    for position, node in enumerate(nodes):
        if node.id in index_of:
            raise GraphValidationError(f"Duplicate node id '{node.id}' in workflow graph")
        index_of[node.id] = position

    allowed = set(known_tools) if known_tools is not None else set(ToolName)
    tools: list[ToolName] = []
    for node in nodes:
        name = resolve_tool_name(node.data)
        try:
            tool = ToolName(name)
        except ValueError:
            raise UnknownToolError(name, node_id=node.id) from None
        if tool not in allowed:
            raise UnknownToolError(tool, node_id=node.id)
        tools.append(tool)

    in_degree = [0] * len(nodes)
    successors: list[list[int]] = [[] for _ in nodes]
    dropped = 0
    for edge in graph.edges:
        src = index_of.get(edge.source)
        dst = index_of.get(edge.target)
        if src is None or dst is None:
            dropped += 1
            continue
        successors[src].append(dst)
        in_degree[dst] += 1
    if dropped:
        logger.debug(f"Ignored {dropped} edge(s) referencing unknown nodes")

    queue = deque(i for i, degree in enumerate(in_degree) if degree == 0)
    order: list[int] = []
    while queue:
        current = queue.popleft()
        order.append(current)
        for nxt in successors[current]:
            in_degree[nxt] -= 1
            if in_degree[nxt] == 0:
                queue.append(nxt)

    if len(order) != len(nodes):
        ordered = set(order)
        raise GraphCycleError([node.id for i, node in enumerate(nodes) if i not in ordered])

    steps = [
        CompiledStep(
            node_id=nodes[i].id,
            tool=tools[i],
            input=nodes[i].data.input if nodes[i].data.input is not None else {},
        )
        for i in order
    ]
    logger.debug(f"Compiled graph into {len(steps)} step(s): {[s.node_id for s in steps]}")
    return steps
