"""
Collectibles Appraiser — Specialized Catalog Lookups

Dispatch layer over the per-ecosystem price adapters (pokemontcg.io,
Scryfall, YGOPRODeck). Each adapter implements the same one-method
interface and emits a PriceSignal; the adapter for a request is selected by
detected category, never by inheritance.

Degradation rules:
- Missing credential / no match / non-success HTTP status -> None.
- Transport failure propagates out of the adapter and is converted to None
  here, so one broken catalog never affects the others.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol, Sequence, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from src.config import Category
from src.models.item import ItemQuery
from src.models.pricing import PriceSignal

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PriceAdapter(Protocol):
    """One specialized catalog."""

    source: str

    def is_available(self) -> bool:
        """Capability check: are the adapter's credentials (if any) present?"""
        ...

    async def lookup(self, name: str, set_hint: str = "") -> PriceSignal | None:
        ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def select_best_candidate(
    candidates: Sequence[T],
    has_price: Callable[[T], bool],
) -> T | None:
    """
    Pick the first candidate with at least one known price, else the first.

    Returns None only for an empty candidate list.
    """
    if not candidates:
        return None
    for candidate in candidates:
        if has_price(candidate):
            return candidate
    return candidates[0]


def select_best_signal(signals: Sequence[PriceSignal]) -> PriceSignal | None:
    return select_best_candidate(signals, lambda s: s.has_any_price)


async def fetch_catalog_json(
    http: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any] | None:
    """
    GET a catalog endpoint exactly once.

    Returns the decoded JSON object, or None for any non-success status or
    non-object body. httpx.RequestError is deliberately not caught.
    """
    response = await http.get(url, params=params, headers=headers)

    if not response.is_success:
        logger.info(
            "catalog_non_success_status",
            source=source,
            status_code=response.status_code,
        )
        return None

    try:
        data = response.json()
    except ValueError:
        logger.warning("catalog_invalid_json", source=source)
        return None

    if not isinstance(data, dict):
        logger.warning("catalog_unexpected_body", source=source, body_type=type(data).__name__)
        return None
    return data


# ---------------------------------------------------------------------------
# Category dispatch
# ---------------------------------------------------------------------------

# Payload key used for each adapter in `apiPricing`, keyed by category
PRICING_KEYS: dict[Category, str] = {
    Category.MTG: "mtg",
    Category.YUGIOH: "ygo",
    Category.POKEMON: "pokemon",
}


def build_adapters(http: httpx.AsyncClient) -> dict[Category, PriceAdapter]:
    """Instantiate every specialized adapter against a shared request-scoped client."""
    from src.pipeline.pokemontcg import PokemonTCGAdapter
    from src.pipeline.scryfall import ScryfallAdapter
    from src.pipeline.ygoprodeck import YGOProDeckAdapter

    return {
        Category.MTG: ScryfallAdapter(http),
        Category.YUGIOH: YGOProDeckAdapter(http),
        Category.POKEMON: PokemonTCGAdapter(http),
    }


def empty_pricing(query: ItemQuery) -> dict[str, PriceSignal | None]:
    """The `apiPricing` shape for a category with every source absent."""
    if not query.is_card:
        return {}
    return {key: None for key in PRICING_KEYS.values()}


async def _guarded_lookup(adapter: PriceAdapter, query: ItemQuery) -> PriceSignal | None:
    """Run one adapter with the capability check and transport-failure recovery."""
    if not adapter.is_available():
        logger.info("catalog_adapter_unavailable", source=adapter.source)
        return None
    if not query.name:
        logger.info("catalog_skip_no_name", source=adapter.source)
        return None

    try:
        signal = await adapter.lookup(query.name, query.set)
    except (httpx.HTTPError, ValidationError) as e:
        logger.warning(
            "catalog_lookup_failed",
            source=adapter.source,
            error=str(e),
            error_type=type(e).__name__,
        )
        return None

    logger.info(
        "catalog_lookup_complete",
        source=adapter.source,
        matched=signal is not None,
        has_price=bool(signal and signal.has_any_price),
    )
    return signal


async def lookup_specialized(
    query: ItemQuery,
    adapters: dict[Category, PriceAdapter],
) -> dict[str, PriceSignal | None]:
    """
    Run the catalog lookups gated by the detected category.

    Returns:
        `{"mtg": ..., "ygo": ..., "pokemon": ...}` for card categories (only
        the matching key can be non-null), `{}` for every other category.
    """
    if not query.is_card:
        return {}

    selected = [
        (PRICING_KEYS[category], adapter)
        for category, adapter in adapters.items()
        if category == query.category
    ]
    results = await asyncio.gather(
        *(_guarded_lookup(adapter, query) for _, adapter in selected)
    )

    pricing = empty_pricing(query)
    for (key, _), signal in zip(selected, results):
        pricing[key] = signal
    return pricing
