"""Tavily web search integration used as a generator tool."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from app.config import settings
from app.core.exceptions import APIKeyMissingError, ExternalAPIError, RateLimitExceededError

logger = logging.getLogger(__name__)


class TavilySearchClient:
    """Client for the Tavily search API."""

    BASE_URL = "https://api.tavily.com"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_results: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.tavily_api_key
        self.timeout = timeout
        self.max_results = max_results
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError("Tavily")

    async def __aenter__(self) -> "TavilySearchClient":
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=self.timeout,
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be used as async context manager")
        return self._client

    async def search(self, query: str) -> dict[str, Any]:
        """Run one search, dated to today so results stay current."""
        today = datetime.now(timezone.utc).strftime("%B %d, %Y")
        payload = {
            "api_key": self.api_key,
            "query": f"{query} {today}",
            "search_depth": "basic",
            "include_answer": True,
            "include_raw_content": False,
            "max_results": self.max_results,
        }
        logger.info("Tavily search", extra={"query": query})

        try:
            response = await self.client.post("/search", json=payload)
            if response.status_code == 429:
                raise RateLimitExceededError("Tavily")
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.warning("Tavily HTTP error", extra={"query": query, "error": str(e)})
            raise ExternalAPIError("Tavily", str(e)) from e

    async def search_text(self, query: str) -> str:
        """Search and flatten the answer into text for a model.

        Failures are returned as text rather than raised.
        """
        try:
            data = await self.search(query)
        except ExternalAPIError as e:
            return f"Unable to fetch data: {e.message}"

        answer = data.get("answer")
        if answer:
            return str(answer)

        results = data.get("results") or []
        if not results:
            return f"No results found for: {query}"
        return "\n\n".join(
            f"{item.get('title', '')}\n{item.get('content', '')}\nSource: {item.get('url', '')}"
            for item in results[:3]
        )
