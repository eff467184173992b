"""Newsdata.io integration used as the lead source."""

import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel

from app.config import settings
from app.core.exceptions import APIKeyMissingError, ExternalAPIError, RateLimitExceededError

logger = logging.getLogger(__name__)

# Newsdata caps page size on the free plan
MAX_PAGE_SIZE = 10


class LeadCandidate(BaseModel):
    """A news item as returned by a lead source, before it is stored."""

    topic: str
    title: str
    url: str
    content: str
    image_url: str | None = None


def placeholder_image_url(title: str) -> str:
    seed = re.sub(r"[^a-zA-Z0-9]", "", title)[:20] or "default"
    return f"https://picsum.photos/seed/{seed}/400/300"


class NewsdataClient:
    """Client for the Newsdata.io ``/news`` endpoint."""

    LEAD_TOPIC = "top"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.newsdata_api_key
        self.base_url = base_url or settings.newsdata_base_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError("Newsdata")

    async def __aenter__(self) -> "NewsdataClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
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

    async def _fetch_topic(self, topic: str, size: int) -> list[dict[str, Any]]:
        params = {
            "apikey": self.api_key,
            "language": "en",
            "category": topic.lower(),
            "size": size,
            "prioritydomain": "top",
        }
        try:
            response = await self.client.get("/news", params=params)
            if response.status_code == 429:
                raise RateLimitExceededError("Newsdata")
            response.raise_for_status()
            return response.json().get("results") or []
        except httpx.HTTPError as e:
            raise ExternalAPIError("Newsdata", str(e)) from e

    async def fetch(self, topics: list[str], limit_per_topic: int) -> list[LeadCandidate]:
        """Fetch leads for ``top`` plus every topic, de-duplicated by URL.

        A failing topic is logged and contributes no leads.
        """
        size = max(1, min(limit_per_topic, MAX_PAGE_SIZE))
        topics_to_search = [self.LEAD_TOPIC, *(t for t in topics if t != self.LEAD_TOPIC)]

        leads: dict[str, LeadCandidate] = {}
        for topic in topics_to_search:
            try:
                results = await self._fetch_topic(topic, size)
            except ExternalAPIError as e:
                logger.warning("Newsdata topic failed", extra={"topic": topic, "error": e.message})
                continue

            kept = 0
            for story in results:
                candidate = self._to_candidate(story, topic)
                if candidate is None or candidate.url in leads:
                    continue
                leads[candidate.url] = candidate
                kept += 1
            logger.info(
                "Newsdata topic fetched",
                extra={"topic": topic, "returned": len(results), "kept": kept},
            )

        return list(leads.values())

    @staticmethod
    def _to_candidate(story: dict[str, Any], topic: str) -> LeadCandidate | None:
        title = (story.get("title") or "").strip()
        url = (story.get("link") or "").strip()
        content = (story.get("description") or story.get("content") or "").strip()
        if not title or not url or not content:
            return None

        categories = story.get("category") or []
        image_url = (story.get("image_url") or "").strip() or placeholder_image_url(title)
        return LeadCandidate(
            topic=categories[0] if categories else topic,
            title=title,
            url=url,
            content=content,
            image_url=image_url,
        )
