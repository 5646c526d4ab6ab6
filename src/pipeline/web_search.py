"""
Collectibles Appraiser — Generic Web Signal Search

Turns an ItemQuery into category-tailored search strings, runs them against
the configured general web-search providers (Tavily, Serper), and returns a
host-deduplicated, capped list of WebSnippets.

Queries run sequentially; for each query string the providers run
concurrently. Both providers are optional: with neither configured this
component contributes an empty list. A failing provider call contributes
nothing for that query and never aborts the search.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, Protocol

import httpx
import structlog
from pydantic import ValidationError

from src.config import Category, settings
from src.models.item import ItemQuery
from src.models.web import WebSnippet

logger = structlog.get_logger(__name__)

TAVILY_URL = "https://api.tavily.com/search"
SERPER_URL = "https://google.serper.dev/search"

QueryTemplate = Callable[[str], str]


def suffixed(suffix: str) -> QueryTemplate:
    """Template that appends a fixed phrase to the item description."""
    def template(base: str) -> str:
        return f"{base} {suffix}"
    return template


# ---------------------------------------------------------------------------
# Category -> ordered query templates
# ---------------------------------------------------------------------------

_CARD_TEMPLATES: tuple[QueryTemplate, ...] = (
    suffixed("price"),
    suffixed("tcgplayer price"),
    suffixed("ebay sold"),
    suffixed("graded psa price"),
    suffixed("sold listings"),
)

QUERY_TEMPLATES: dict[Category, tuple[QueryTemplate, ...]] = {
    Category.POKEMON: _CARD_TEMPLATES,
    Category.MTG: _CARD_TEMPLATES,
    Category.YUGIOH: _CARD_TEMPLATES,
    Category.RETRO_VIDEO_GAME: (
        suffixed("pricecharting"),
        suffixed("ebay sold"),
        suffixed("cib price"),
        suffixed("sealed price"),
        suffixed("loose price"),
    ),
    Category.POSTAGE_STAMP: (
        suffixed("Scott value"),
        suffixed("StampWorld"),
        suffixed("ebay sold"),
        suffixed("auction price"),
    ),
    Category.TOY_OR_FIGURINE: (
        suffixed("action figure price"),
        suffixed("ebay sold"),
        suffixed("sealed"),
        suffixed("loose"),
    ),
    Category.COMIC_BOOK: (
        suffixed("cgc 9.8 price"),
        suffixed("heritage auctions"),
        suffixed("ebay sold"),
        suffixed("gocollect"),
    ),
    Category.POGS: (
        suffixed("pogs price"),
        suffixed("slammer price"),
        suffixed("ebay sold"),
        suffixed("value"),
    ),
}

DEFAULT_TEMPLATES: tuple[QueryTemplate, ...] = (
    suffixed("price"),
    suffixed("ebay sold"),
    suffixed("value"),
    suffixed("auction sold price"),
)


def build_queries(query: ItemQuery) -> list[str]:
    """Category-tailored search strings; empty if the item has no description."""
    base = query.description()
    if not base:
        return []
    templates = QUERY_TEMPLATES.get(query.category, DEFAULT_TEMPLATES)
    return [template(base) for template in templates]


def dedupe_by_host(results: Iterable[WebSnippet], cap: int | None = None) -> list[WebSnippet]:
    """
    Keep the first result per normalized host, in discovery order, up to `cap`.

    Results whose URL has no parsable host are dropped.
    """
    limit = settings.WEB_RESULT_CAP if cap is None else cap
    seen: set[str] = set()
    unique: list[WebSnippet] = []
    for result in results:
        host = result.host
        if host is None or host in seen:
            continue
        seen.add(host)
        unique.append(result)
        if len(unique) >= limit:
            break
    return unique


def _list_field(data: Any, key: str) -> list[Any]:
    """A list-valued key of a provider response body; anything else reads as empty."""
    if not isinstance(data, dict):
        return []
    value = data.get(key)
    return value if isinstance(value, list) else []


def _to_snippets(items: Iterable[dict[str, Any]], provider: str) -> list[WebSnippet]:
    snippets: list[WebSnippet] = []
    for item in items:
        try:
            snippets.append(WebSnippet.model_validate(item))
        except ValidationError:
            logger.debug("web_search_skip_invalid_item", provider=provider)
    return snippets


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class SearchProvider(Protocol):
    name: str

    def is_available(self) -> bool: ...

    async def search(self, query: str) -> list[WebSnippet]: ...


class TavilyProvider:
    """Tavily search API (advanced depth, no answer/images/raw content)."""

    name = "tavily"

    def __init__(self, http: httpx.AsyncClient, api_key: str | None = None):
        self._http = http
        self._api_key = api_key if api_key is not None else settings.TAVILY_API_KEY

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def search(self, query: str) -> list[WebSnippet]:
        response = await self._http.post(
            TAVILY_URL,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "query": query,
                "search_depth": "advanced",
                "include_answer": False,
                "include_images": False,
                "include_raw_content": False,
                "max_results": settings.TAVILY_MAX_RESULTS,
            },
        )
        if not response.is_success:
            logger.warning("tavily_non_success_status", status_code=response.status_code)
            return []

        data = response.json()
        return _to_snippets(
            (
                {
                    "title": r.get("title") or "",
                    "url": r.get("url"),
                    "snippet": r.get("content") or r.get("snippet") or "",
                }
                for r in _list_field(data, "results")
                if isinstance(r, dict)
            ),
            self.name,
        )


class SerperProvider:
    """Serper (Google) search API; organic results first, then shopping."""

    name = "serper"

    def __init__(self, http: httpx.AsyncClient, api_key: str | None = None):
        self._http = http
        self._api_key = api_key if api_key is not None else settings.SERPER_API_KEY

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def search(self, query: str) -> list[WebSnippet]:
        response = await self._http.post(
            SERPER_URL,
            headers={"X-API-KEY": self._api_key},
            json={
                "q": query,
                "gl": settings.SERPER_COUNTRY,
                "num": settings.SERPER_NUM_RESULTS,
            },
        )
        if not response.is_success:
            logger.warning("serper_non_success_status", status_code=response.status_code)
            return []

        data = response.json()
        items = [*_list_field(data, "organic"), *_list_field(data, "shopping")]
        return _to_snippets(
            (
                {
                    "title": it.get("title") or "",
                    "url": it.get("link"),
                    "snippet": it.get("snippet") or str(it.get("price") or ""),
                }
                for it in items
                if isinstance(it, dict)
            ),
            self.name,
        )


def build_providers(http: httpx.AsyncClient) -> list[SearchProvider]:
    """Providers in result-concatenation order."""
    return [TavilyProvider(http), SerperProvider(http)]


async def _safe_search(provider: SearchProvider, query: str) -> list[WebSnippet]:
    try:
        return await provider.search(query)
    except Exception as e:
        logger.warning(
            "web_search_provider_failed",
            provider=provider.name,
            error=str(e),
            error_type=type(e).__name__,
        )
        return []


async def search_web_signals(
    query: ItemQuery,
    providers: list[SearchProvider],
) -> list[WebSnippet]:
    """
    Run every category query against every available provider.

    Returns:
        At most WEB_RESULT_CAP snippets, one per host, in discovery order.
    """
    active = [p for p in providers if p.is_available()]
    if not active:
        logger.info("web_search_no_providers")
        return []

    queries = build_queries(query)
    collected: list[WebSnippet] = []
    for search_query in queries:
        batches = await asyncio.gather(*(_safe_search(p, search_query) for p in active))
        for batch in batches:
            collected.extend(batch)

    results = dedupe_by_host(collected)
    logger.info(
        "web_search_complete",
        providers=[p.name for p in active],
        queries=len(queries),
        raw_results=len(collected),
        unique_results=len(results),
    )
    return results
