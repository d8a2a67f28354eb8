"""Web search through the Google Custom Search JSON API."""
import logging
from typing import Any, Dict, List
from urllib.parse import urlparse

import httpx

from answer_engine.config import Settings
from answer_engine.schemas.answer import SearchResult

logger = logging.getLogger(__name__)

FAVICON_URL = "https://www.google.com/s2/favicons?domain={domain}&sz=32"


def favicon_for(url: str) -> str:
    hostname = urlparse(url).hostname
    if not hostname:
        raise ValueError(f"URL has no hostname: {url!r}")
    return FAVICON_URL.format(domain=hostname)


def _normalize(items: List[Dict[str, Any]], limit: int) -> List[SearchResult]:
    return [
        SearchResult(
            title=item["title"],
            url=item["link"],
            description=item.get("snippet", ""),
            favicon=favicon_for(item["link"]),
            index=rank,
        )
        for rank, item in enumerate(items[:limit], start=1)
    ]


class SearchService:
    """Fetches the top web results for a query.

    ``search`` never raises: missing credentials, HTTP errors, empty result
    sets and malformed payloads all come back as an empty list.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def search(self, query: str) -> List[SearchResult]:
        api_key = self.settings.GOOGLE_CSE_API_KEY
        cx = self.settings.GOOGLE_CSE_CX
        if not api_key or not cx:
            logger.error("Missing Google CSE credentials")
            return []

        limit = self.settings.SEARCH_RESULT_LIMIT
        try:
            response = await self.client.get(
                self.settings.SEARCH_API_URL,
                params={"key": api_key, "cx": cx, "q": query, "num": str(limit)},
                headers={"Accept": "application/json"},
            )
            if response.is_error:
                logger.error(
                    "Google CSE API error: %s %s", response.status_code, response.reason_phrase
                )
                return []

            items = response.json().get("items") or []
            if not items:
                logger.warning("No search results found for query: %s", query)
                return []

            return _normalize(items, limit)
        except Exception as e:
            logger.error("Google CSE search error: %s", e)
            return []
