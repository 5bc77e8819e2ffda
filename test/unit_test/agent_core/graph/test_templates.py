from __future__ import annotations

import logging
from typing import Any, List

import pytest

from agentflow_ai.agent_core.graph.outputs import OutputsBag
from agentflow_ai.agent_core.graph.templates import render_value, resolve_templates


@pytest.fixture
def bag() -> OutputsBag:
    return (
        OutputsBag()
        .with_output("A", {"prompt": "p"}, {"val": 42})
        .with_output(
            "search-1",
            {"query": "cats"},
            {"results": [{"title": "T0", "snippet": "first"}, {"title": "T1", "snippet": "second"}], "query": "cats"},
        )
        .with_output("raw", {"x": 1}, None)
    )


def test_resolves_value_from_response(bag: OutputsBag) -> None:
    assert resolve_templates("{{step:A.val}}", bag) == "42"


def test_missing_path_resolves_to_empty_string(bag: OutputsBag) -> None:
    assert resolve_templates("{{step:A.missing.path}}", bag) == ""


def test_missing_node_resolves_to_empty_string(bag: OutputsBag) -> None:
    assert resolve_templates("x={{step:nobody.text}};", bag) == "x=;"


def test_missing_path_is_reported(bag: OutputsBag, caplog: pytest.LogCaptureFixture) -> None:
    missing: List[tuple[str, str, str]] = []

    with caplog.at_level(logging.WARNING, logger="agentflow_ai.agent_core.graph.templates"):
        out = resolve_templates(
            {"a": "{{step:A.val}}", "b": "{{ step:A.nope }}"},
            bag,
            on_missing=lambda *args: missing.append(args),
        )

    assert out == {"a": "42", "b": ""}
    assert missing == [("A", "nope", "{{ step:A.nope }}")]
    assert any("Unresolved placeholder" in r.getMessage() for r in caplog.records)


def test_indexed_path_segments(bag: OutputsBag) -> None:
    assert resolve_templates("{{step:search-1.results[1].snippet}}", bag) == "second"
    assert resolve_templates("{{step:search-1.results.0.title}}", bag) == "T0"
    assert resolve_templates("{{step:search-1.results[5].title}}", bag) == ""


def test_non_ascii_digits_are_not_list_indices(bag: OutputsBag) -> None:
    assert resolve_templates("{{step:search-1.results.\u00b2}}", bag) == ""
    assert resolve_templates("{{step:search-1.results.\u0661.title}}", bag) == ""
    assert resolve_templates("{{step:search-1.results[\u0661].title}}", bag) == ""


def test_non_string_values_render_as_compact_json(bag: OutputsBag) -> None:
    assert resolve_templates("{{step:search-1.results[0]}}", bag) == '{"title":"T0","snippet":"first"}'


def test_entry_without_response_falls_back_to_entry(bag: OutputsBag) -> None:
    assert resolve_templates("{{step:raw.request.x}}", bag) == "1"


def test_embedded_placeholders_and_whitespace(bag: OutputsBag) -> None:
    text = "Summarize {{ step:search-1.query }} ({{step:A.val}} hits)"
    assert resolve_templates(text, bag) == "Summarize cats (42 hits)"


def test_recurses_through_containers(bag: OutputsBag) -> None:
    value = {"prompt": ["{{step:A.val}}", ("{{step:search-1.query}}", 3)], "n": 7, "flag": True, "none": None}

    out = resolve_templates(value, bag)

    assert out == {"prompt": ["42", ("cats", 3)], "n": 7, "flag": True, "none": None}


@pytest.mark.parametrize(
    "value",
    [
        "plain text",
        "braces {not a placeholder}",
        "{{step:}}",
        {"nested": {"list": [1, 2.5, None, "x"]}},
        [],
        42,
        None,
    ],
)
def test_identity_on_placeholder_free_input(value: Any, bag: OutputsBag) -> None:
    assert resolve_templates(value, bag) == value


def test_does_not_mutate_input(bag: OutputsBag) -> None:
    value = {"p": ["{{step:A.val}}"]}
    resolve_templates(value, bag)
    assert value == {"p": ["{{step:A.val}}"]}


@pytest.mark.parametrize(
    "value,expected",
    [(None, ""), ("s", "s"), (True, "true"), (1.5, "1.5"), ({"é": [1]}, '{"é":[1]}')],
)
def test_render_value(value: Any, expected: str) -> None:
    assert render_value(value) == expected
