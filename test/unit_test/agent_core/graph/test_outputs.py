from __future__ import annotations

import pytest

from agentflow_ai.agent_core.graph.outputs import OutputsBag


def test_with_output_returns_new_bag() -> None:
    empty = OutputsBag()
    one = empty.with_output("a", {"prompt": "p"}, {"text": "t"})

    assert len(empty) == 0
    assert "a" not in empty
    assert one["a"] == {"request": {"prompt": "p"}, "response": {"text": "t"}}


def test_rejects_duplicate_node_id() -> None:
    bag = OutputsBag().with_output("a", {}, {})
    with pytest.raises(ValueError, match="already recorded"):
        bag.with_output("a", {}, {})


def test_entries_are_isolated_from_caller_mutation() -> None:
    response = {"items": [1]}
    bag = OutputsBag().with_output("a", {}, response)

    response["items"].append(2)

    assert bag["a"]["response"] == {"items": [1]}
    with pytest.raises(TypeError):
        bag["a"]["response"] = {}  # type: ignore[index]


def test_preserves_insertion_order() -> None:
    bag = OutputsBag().with_output("b", {}, 1).with_output("a", {}, 2)
    assert list(bag) == ["b", "a"]
    assert bag.to_dict() == {"b": {"request": {}, "response": 1}, "a": {"request": {}, "response": 2}}
