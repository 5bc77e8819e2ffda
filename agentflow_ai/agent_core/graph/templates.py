"""Placeholder substitution for step inputs.

A placeholder has the form ``{{step:<node_id>.<path>}}``. The node's entry in
the outputs bag is looked up (its ``response``, or the entry itself when the
response is missing) and ``<path>`` is walked segment by segment; a segment may
carry one ``[n]`` list index, e.g. ``results[0].snippet``.

A placeholder whose path cannot be resolved becomes an empty string. This
is logged at WARNING and reported through ``on_missing`` so a misconfigured
graph does not go unnoticed.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*step:([\w-]+)\.([\w.\[\]]+)\s*\}\}")

_INDEXED_SEGMENT = re.compile(r"^(.+)\[(\d+)\]$", re.ASCII)

MissingCallback = Callable[[str, str, str], None]
"""Called with ``(node_id, path, placeholder)`` for every unresolved placeholder."""

_MISSING = object()


def _child(value: Any, key: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(key, _MISSING)
    if isinstance(value, (list, tuple)) and key.isascii() and key.isdecimal():
        index = int(key)
        return value[index] if index < len(value) else _MISSING
    return _MISSING


def _item(value: Any, index: int) -> Any:
    if isinstance(value, (list, tuple)) and index < len(value):
        return value[index]
    return _MISSING


def lookup_path(root: Any, path: str) -> Any:
    """Walk ``path`` from ``root``; returns the module-private missing sentinel on failure."""
    current = root
    for segment in path.split("."):
        if not segment:
            return _MISSING
        match = _INDEXED_SEGMENT.match(segment)
        if match:
            current = _child(current, match.group(1))
            if current is _MISSING:
                return _MISSING
            current = _item(current, int(match.group(2)))
        else:
            current = _child(current, segment)
        if current is _MISSING:
            return _MISSING
    return current


def render_value(value: Any) -> str:
    """Textual form of a substituted value: strings verbatim, ``None`` empty, anything else compact JSON."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _entry_root(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        response = entry.get("response")
        if response is not None:
            return response
    return entry


def _resolve_string(text: str, outputs: Mapping[str, Any], on_missing: Optional[MissingCallback]) -> str:
    def substitute(match: re.Match[str]) -> str:
        node_id, path = match.group(1), match.group(2)
        entry = outputs.get(node_id, _MISSING)
        value = _MISSING if entry is _MISSING or entry is None else lookup_path(_entry_root(entry), path)
        if value is _MISSING:
            logger.warning(f"Unresolved placeholder {match.group(0)!r}: no value at '{node_id}.{path}'")
            if on_missing is not None:
                on_missing(node_id, path, match.group(0))
            return ""
        return render_value(value)

    return PLACEHOLDER_PATTERN.sub(substitute, text)


def resolve_templates(
    value: Any,
    outputs: Mapping[str, Any],
    on_missing: Optional[MissingCallback] = None,
) -> Any:
    """
    Return ``value`` with every placeholder string substituted from ``outputs``.

    Lists, tuples and dicts are rebuilt recursively with the same shape;
    other non-string scalars are returned untouched.
    """
    if isinstance(value, str):
        if "{{" not in value:
            return value
        return _resolve_string(value, outputs, on_missing)
    if isinstance(value, list):
        return [resolve_templates(item, outputs, on_missing) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve_templates(item, outputs, on_missing) for item in value)
    if isinstance(value, dict):
        return {key: resolve_templates(item, outputs, on_missing) for key, item in value.items()}
    return value
