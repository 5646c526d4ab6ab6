"""
Collectibles Appraiser — Scryfall Price Adapter (Magic: The Gathering)

Exact-name search across every printing. No credential needed.
Base URL: https://api.scryfall.com/
"""

from __future__ import annotations

import re
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, Field

from src.models.pricing import PricePoint, PriceSignal
from src.pipeline.catalog import fetch_catalog_json, select_best_signal

logger = structlog.get_logger(__name__)

BASE_URL = "https://api.scryfall.com"
SEARCH_PAGE_URL = "https://scryfall.com/search?q="
SOURCE = "scryfall"

# Scryfall price column -> currency
PRICE_COLUMNS = {
    "usd": "USD",
    "usd_foil": "USD",
    "eur": "EUR",
    "eur_foil": "EUR",
}

# The `set:` keyword only accepts set codes, not names
_SET_CODE_RE = re.compile(r"^[A-Za-z0-9]{2,6}$")


class ScryfallCard(BaseModel):
    name: str = ""
    set_name: str | None = None
    collector_number: str | None = None
    rarity: str | None = None
    released_at: str | None = None
    scryfall_uri: str | None = None
    prices: dict[str, str | None] = Field(default_factory=dict)


class ScryfallSearchResponse(BaseModel):
    data: list[ScryfallCard] = Field(default_factory=list)


def build_search_query(name: str, set_hint: str = "") -> str:
    query = f'!"{name.replace(chr(34), "")}" unique:prints'
    hint = set_hint.strip()
    if hint and _SET_CODE_RE.match(hint):
        query += f" set:{hint.lower()}"
    return query


def to_price_signal(card: ScryfallCard, search_query: str) -> PriceSignal:
    return PriceSignal(
        source=SOURCE,
        url=card.scryfall_uri or f"{SEARCH_PAGE_URL}{quote(search_query)}",
        card_name=card.name or None,
        set_name=card.set_name,
        collector_number=card.collector_number,
        rarity=card.rarity,
        released_at=card.released_at,
        prices={
            column: PricePoint(amount=card.prices.get(column), currency=currency)
            for column, currency in PRICE_COLUMNS.items()
        },
    )


class ScryfallAdapter:
    """Price adapter for the Scryfall card search API."""

    source = SOURCE

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    def is_available(self) -> bool:
        return True

    async def lookup(self, name: str, set_hint: str = "") -> PriceSignal | None:
        if not name:
            return None

        search_query = build_search_query(name, set_hint)
        logger.info("scryfall_lookup", card_name=name, query=search_query)

        # Scryfall answers 404 when nothing matches; that is "no result"
        data = await fetch_catalog_json(
            self._http,
            f"{BASE_URL}/cards/search",
            source=SOURCE,
            params={"q": search_query},
        )
        if data is None:
            return None

        response = ScryfallSearchResponse.model_validate(data)
        signals = [to_price_signal(card, search_query) for card in response.data]
        best = select_best_signal(signals)

        logger.info(
            "scryfall_lookup_complete",
            card_name=name,
            candidates=len(signals),
            selected_set=best.set_name if best else None,
        )
        return best
