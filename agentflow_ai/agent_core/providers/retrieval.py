from __future__ import annotations

"""In-memory passage retriever."""

import re
from typing import Iterable, Optional

from ..schemas.tools import Passage

_WORD = re.compile(r"\w+")


def _terms(text: str) -> set[str]:
    return {w.lower() for w in _WORD.findall(text) if len(w) > 2}


class InMemoryRetriever:
    """
    Keyword-overlap retriever over a fixed set of documents.

    Each document is scored by the fraction of question terms it contains;
    documents sharing no term with the question are not returned.
    """

    def __init__(self, documents: Iterable[tuple[str, Optional[str]]] = ()) -> None:
        self._documents: list[tuple[str, Optional[str], set[str]]] = []
        for text, source in documents:
            self.add(text, source=source)

    def add(self, text: str, *, source: Optional[str] = None) -> None:
        self._documents.append((text, source, _terms(text)))

    async def retrieve(self, question: str, *, limit: int = 5) -> list[Passage]:
        wanted = _terms(question)
        if not wanted:
            return []
        scored = []
        for text, source, terms in self._documents:
            overlap = len(wanted & terms)
            if overlap:
                scored.append(Passage(text=text, source=source, score=round(overlap / len(wanted), 4)))
        scored.sort(key=lambda p: p.score or 0.0, reverse=True)
        return scored[:limit]
