from __future__ import annotations

"""External collaborator contracts used by the built-in tools.

Tools never talk to a model API, search engine, shell or document store
directly; they go through these Protocols so deployments (and tests) can
plug in their own implementations.

All methods are async and may raise. Each tool decides whether a provider
failure is degraded into a fallback output or surfaced as a step error.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from ..schemas.tools import OperatorExecOutput, Passage, SearchResult


class CompletionProvider(Protocol):
    """Single-turn text completion."""

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str: ...


class SearchProvider(Protocol):
    """Web search returning ranked results."""

    async def search(self, query: str, *, provider: Optional[str] = None, limit: int = 5) -> list[SearchResult]: ...


class CommandExecutor(Protocol):
    """Command execution; sandboxing is the implementation's responsibility."""

    async def run(self, cmd: str, *, timeout: Optional[float] = None) -> OperatorExecOutput: ...


class PassageRetriever(Protocol):
    """Passage retrieval for retrieval-augmented answers."""

    async def retrieve(self, question: str, *, limit: int = 5) -> list[Passage]: ...


@dataclass(frozen=True)
class ToolDeps:
    """Provider bundle handed to tools through ``ToolContext.deps``.

    Every provider is optional; each tool documents what it does without one.
    """

    completion: Optional[CompletionProvider] = None
    search: Optional[SearchProvider] = None
    executor: Optional[CommandExecutor] = None
    retriever: Optional[PassageRetriever] = None
