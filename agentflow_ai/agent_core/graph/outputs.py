"""Immutable accumulator of completed step outputs."""

from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional


class OutputsBag(Mapping[str, Mapping[str, Any]]):
    """
    Mapping of ``node_id -> {"request": ..., "response": ...}`` for completed steps.

    The bag is never mutated: :meth:`with_output` returns a new bag holding
    one more entry, so a step can only ever see outputs of steps that finished
    before it. Entries are deep-copied on insert.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._entries: Mapping[str, Mapping[str, Any]] = MappingProxyType(
            {key: MappingProxyType(dict(value)) for key, value in (entries or {}).items()}
        )

    def with_output(self, node_id: str, request: Any, response: Any) -> "OutputsBag":
        """Return a new bag that also holds ``node_id``; a node id can be added only once."""
        if node_id in self._entries:
            raise ValueError(f"Output for node '{node_id}' is already recorded")
        entries = dict(self._entries)
        entries[node_id] = {"request": copy.deepcopy(request), "response": copy.deepcopy(response)}
        return OutputsBag(entries)

    def __getitem__(self, node_id: str) -> Mapping[str, Any]:
        return self._entries[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {key: dict(value) for key, value in self._entries.items()}

    def __repr__(self) -> str:
        return f"OutputsBag({list(self._entries)})"
