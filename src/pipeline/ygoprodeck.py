"""
Collectibles Appraiser — YGOPRODeck Price Adapter (Yu-Gi-Oh!)

Fuzzy (substring) name search; the API has no exact-print search.
Base URL: https://db.ygoprodeck.com/api/v7/
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, Field

from src.models.pricing import PricePoint, PriceSignal
from src.pipeline.catalog import fetch_catalog_json, select_best_signal

logger = structlog.get_logger(__name__)

BASE_URL = "https://db.ygoprodeck.com/api/v7"
CARD_PAGE_URL = "https://db.ygoprodeck.com/card/?search="
SOURCE = "ygoprodeck"

# Output name -> (card_prices column, currency)
PRICE_COLUMNS = {
    "tcgplayer": ("tcgplayer_price", "USD"),
    "ebay": ("ebay_price", "USD"),
    "amazon": ("amazon_price", "USD"),
    "coolstuffinc": ("coolstuffinc_price", "USD"),
    "cardmarket": ("cardmarket_price", "EUR"),
}


class CardSet(BaseModel):
    set_name: str | None = None
    set_code: str | None = None
    set_rarity: str | None = None


class YGOCard(BaseModel):
    name: str = ""
    ygoprodeck_url: str | None = None
    card_sets: list[CardSet] = Field(default_factory=list)
    card_prices: list[dict[str, Any]] = Field(default_factory=list)

    def pick_set(self, set_hint: str = "") -> CardSet | None:
        """The printing matching the hint (by name or code), else the first listed."""
        if not self.card_sets:
            return None
        hint = set_hint.strip().lower()
        if hint:
            for card_set in self.card_sets:
                if hint in (card_set.set_name or "").lower() or hint == (card_set.set_code or "").lower():
                    return card_set
        return self.card_sets[0]


class YGOSearchResponse(BaseModel):
    data: list[YGOCard] = Field(default_factory=list)


def to_price_signal(card: YGOCard, name: str, set_hint: str = "") -> PriceSignal:
    price_row = card.card_prices[0] if card.card_prices else {}
    card_set = card.pick_set(set_hint)
    return PriceSignal(
        source=SOURCE,
        url=card.ygoprodeck_url or f"{CARD_PAGE_URL}{quote(name)}",
        card_name=card.name or None,
        set_name=card_set.set_name if card_set else None,
        collector_number=card_set.set_code if card_set else None,
        rarity=card_set.set_rarity if card_set else None,
        prices={
            key: PricePoint(amount=price_row.get(column), currency=currency)
            for key, (column, currency) in PRICE_COLUMNS.items()
        },
    )


class YGOProDeckAdapter:
    """Price adapter for the YGOPRODeck card database."""

    source = SOURCE

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    def is_available(self) -> bool:
        return True

    async def lookup(self, name: str, set_hint: str = "") -> PriceSignal | None:
        if not name:
            return None

        logger.info("ygoprodeck_lookup", card_name=name, set_hint=set_hint)

        # A fuzzy search with no match comes back as HTTP 400
        data = await fetch_catalog_json(
            self._http,
            f"{BASE_URL}/cardinfo.php",
            source=SOURCE,
            params={"fname": name},
        )
        if data is None:
            return None

        response = YGOSearchResponse.model_validate(data)
        signals = [to_price_signal(card, name, set_hint) for card in response.data]
        best = select_best_signal(signals)

        logger.info(
            "ygoprodeck_lookup_complete",
            card_name=name,
            candidates=len(signals),
            selected=best.card_name if best else None,
        )
        return best
