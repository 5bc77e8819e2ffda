from __future__ import annotations

"""httpx backed web search provider."""

import logging
from typing import Any, Optional

import httpx

from ..schemas.tools import SearchResult

logger = logging.getLogger(__name__)


class SearchProviderError(Exception):
    """Raised when the search endpoint fails or returns an unexpected payload.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code associated with the failure.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HttpSearchProvider:
    """
    Thin client for a JSON search endpoint.

    Issues ``GET {base_url}/search?q=...&limit=...[&provider=...]`` and expects
    ``{"results": [{"title", "snippet"|"description", "url"|"link", "source"?}]}``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def search(self, query: str, *, provider: Optional[str] = None, limit: int = 5) -> list[SearchResult]:
        params: dict[str, str] = {"q": query, "limit": str(limit)}
        if provider:
            params["provider"] = provider
        logger.debug("HttpSearchProvider.search: GET %s/search params=%s", self.base_url, params)
        try:
            r = await self._client.get(f"{self.base_url}/search", headers=self._headers(), params=params)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SearchProviderError(
                f"search failed: {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise SearchProviderError(f"search request failed: {e}") from e

        try:
            data = r.json()
        except ValueError as e:
            raise SearchProviderError("search response is not valid JSON") from e
        items = data.get("results") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise SearchProviderError("search response has no 'results' list")
        results = [self._parse_result(item) for item in items if isinstance(item, dict)]
        logger.debug("HttpSearchProvider.search: got %d results", len(results))
        return results[:limit]

    @staticmethod
    def _parse_result(item: dict[str, Any]) -> SearchResult:
        return SearchResult(
            title=str(item.get("title") or ""),
            snippet=str(item.get("snippet") or item.get("description") or ""),
            url=str(item.get("url") or item.get("link") or ""),
            source=item.get("source"),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
