from __future__ import annotations

import itertools
import random
from typing import Any, Dict, List

import pytest

from agentflow_ai.agent_core.errors import GraphCycleError, GraphValidationError, UnknownToolError
from agentflow_ai.agent_core.graph.compiler import compile_graph, resolve_tool_name
from agentflow_ai.agent_core.schemas.domain import NodeData, ToolName, WorkflowGraph


def _graph(nodes: List[Dict[str, Any]], edges: List[tuple[str, str]]) -> Dict[str, Any]:
    return {
        "nodes": nodes,
        "edges": [{"id": f"e{i}", "source": s, "target": t} for i, (s, t) in enumerate(edges)],
    }


def _node(node_id: str, **data: Any) -> Dict[str, Any]:
    return {"id": node_id, "data": data, "position": {"x": 0, "y": 0}, "type": "default"}


def _assert_topological(order: List[str], edges: List[tuple[str, str]]) -> None:
    pos = {node_id: i for i, node_id in enumerate(order)}
    for src, dst in edges:
        if src in pos and dst in pos:
            assert pos[src] < pos[dst], f"{src} must precede {dst} in {order}"


def test_empty_graph_compiles_to_empty_list() -> None:
    assert compile_graph(WorkflowGraph()) == []
    assert compile_graph({"nodes": [], "edges": [{"source": "a", "target": "b"}]}) == []


def test_linear_chain_preserves_dependency_order() -> None:
    edges = [("a", "b"), ("b", "c")]
    graph = _graph([_node("c"), _node("b"), _node("a")], edges)

    steps = compile_graph(graph)

    assert [s.node_id for s in steps] == ["a", "b", "c"]


def test_independent_nodes_keep_declaration_order() -> None:
    graph = _graph([_node("x"), _node("y"), _node("z")], [])

    assert [s.node_id for s in compile_graph(graph)] == ["x", "y", "z"]


def test_diamond_releases_successors_in_edge_order() -> None:
    edges = [("root", "right"), ("root", "left"), ("left", "join"), ("right", "join")]
    graph = _graph([_node("root"), _node("left"), _node("right"), _node("join")], edges)

    order = [s.node_id for s in compile_graph(graph)]

    assert order == ["root", "right", "left", "join"]


@pytest.mark.parametrize("seed", range(20))
def test_random_dags_compile_to_permutation_honouring_every_edge(seed: int) -> None:
    rng = random.Random(seed)
    ids = [f"n{i}" for i in range(rng.randint(1, 12))]
    rank = {node_id: i for i, node_id in enumerate(ids)}
    edges = [(a, b) for a, b in itertools.combinations(ids, 2) if rng.random() < 0.3]
    shuffled = ids[:]
    rng.shuffle(shuffled)
    rng.shuffle(edges)
    assert all(rank[a] < rank[b] for a, b in edges)

    order = [s.node_id for s in compile_graph(_graph([_node(i) for i in shuffled], edges))]

    assert sorted(order) == sorted(ids)
    _assert_topological(order, edges)


@pytest.mark.parametrize(
    "edges",
    [
        [("a", "b"), ("b", "a")],
        [("a", "a")],
        [("a", "b"), ("b", "c"), ("c", "a")],
        [("start", "a"), ("a", "b"), ("b", "a")],
    ],
)
def test_cycles_raise_without_partial_result(edges) -> None:
    nodes = sorted({n for edge in edges for n in edge})
    with pytest.raises(GraphCycleError) as exc_info:
        compile_graph(_graph([_node(n) for n in nodes], edges))

    assert "DAG" in str(exc_info.value)
    assert exc_info.value.unordered


def test_edges_to_unknown_nodes_do_not_affect_compilation() -> None:
    nodes = [_node("a"), _node("b"), _node("c")]
    valid = [("a", "b"), ("b", "c")]

    baseline = compile_graph(_graph(nodes, valid))
    with_stale = compile_graph(_graph(nodes, valid + [("ghost", "a"), ("c", "ghost"), ("ghost", "phantom")]))

    assert with_stale == baseline


def test_duplicate_node_ids_are_rejected() -> None:
    with pytest.raises(GraphValidationError, match="Duplicate node id 'a'"):
        compile_graph(_graph([_node("a"), _node("a")], []))


def test_tool_and_input_extraction() -> None:
    graph = _graph(
        [
            _node("s", tool="web_search", label="Ignored label", input={"query": "q"}),
            _node("l", label="Web Search"),
            _node("h", label="rag-search"),
            _node("d"),
        ],
        [],
    )

    steps = {s.node_id: s for s in compile_graph(graph)}

    assert steps["s"].tool is ToolName.web_search
    assert steps["s"].input == {"query": "q"}
    assert steps["l"].tool is ToolName.web_search
    assert steps["h"].tool is ToolName.rag_search
    assert steps["d"].tool is ToolName.llm
    assert steps["d"].input == {}


def test_unknown_tool_is_rejected_at_compile_time() -> None:
    with pytest.raises(UnknownToolError) as exc_info:
        compile_graph(_graph([_node("a", tool="teleport")], []))

    assert exc_info.value.node_id == "a"
    assert exc_info.value.tool == "teleport"


def test_known_tools_restricts_accepted_tools() -> None:
    graph = _graph([_node("a", tool="operator_exec")], [])

    with pytest.raises(UnknownToolError):
        compile_graph(graph, known_tools=[ToolName.llm])


@pytest.mark.parametrize(
    "data,expected",
    [
        (NodeData(tool="llm", label="Web Search"), "llm"),
        (NodeData(label="  Operator Exec "), "operator_exec"),
        (NodeData(label="LLM"), "llm"),
        (NodeData(tool="  ", label=None), "llm"),
        (NodeData(), "llm"),
    ],
)
def test_resolve_tool_name(data: NodeData, expected: str) -> None:
    assert resolve_tool_name(data) == expected
