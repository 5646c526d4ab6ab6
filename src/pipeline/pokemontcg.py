"""
Collectibles Appraiser — pokemontcg.io Price Adapter

Looks up a Pokémon card on the pokemontcg.io v2 API and normalizes the
TCGplayer (USD) and Cardmarket (EUR) price blocks into a fixed grid of named
price points.

Base URL: https://api.pokemontcg.io/v2/
Requires POKEMONTCG_API_KEY. Without it the adapter reports unavailable and
the pipeline proceeds without Pokémon catalog prices.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, Field

from src.config import settings
from src.models.pricing import PricePoint, PriceSignal
from src.pipeline.catalog import fetch_catalog_json, select_best_signal

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# API Configuration
# ---------------------------------------------------------------------------
BASE_URL = "https://api.pokemontcg.io/v2"
SOURCE = "pokemontcg"

# TCGplayer variant blocks x price columns, all USD
TCGPLAYER_VARIANTS = (
    "normal",
    "1stEditionNormal",
    "holofoil",
    "reverseHolofoil",
    "1stEditionHolofoil",
    "unlimitedHolofoil",
)
TCGPLAYER_COLUMNS = ("low", "mid", "high", "market")

# Cardmarket aggregate columns, all EUR
CARDMARKET_COLUMNS = ("averageSellPrice", "lowPrice", "trendPrice")

# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class SetInfo(BaseModel):
    """Set metadata from pokemontcg.io."""
    id: str | None = None
    name: str | None = None
    releaseDate: str | None = Field(default=None, description="Release date YYYY/MM/DD")


class TCGPlayerData(BaseModel):
    """TCGPlayer block: product URL plus per-variant price columns."""
    url: str | None = None
    prices: dict[str, dict[str, Any]] = Field(default_factory=dict)


class CardmarketData(BaseModel):
    """Cardmarket block: product URL plus aggregate price columns."""
    url: str | None = None
    prices: dict[str, Any] = Field(default_factory=dict)


class CardData(BaseModel):
    """One card entry from the /cards search endpoint."""
    id: str = ""
    name: str = ""
    number: str | None = None
    rarity: str | None = None
    set: SetInfo | None = None
    tcgplayer: TCGPlayerData | None = None
    cardmarket: CardmarketData | None = None
    images: dict[str, str] | None = None

    @property
    def image_url(self) -> str | None:
        """Get the best available image URL."""
        if self.images:
            return self.images.get("large") or self.images.get("small")
        return None


class CardListResponse(BaseModel):
    """Search response from pokemontcg.io cards endpoint."""
    data: list[CardData] = Field(default_factory=list)
    totalCount: int = Field(default=0)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def build_search_query(name: str, set_hint: str = "") -> str:
    """Exact-phrase Lucene query on card name, narrowed by set name if given."""
    parts = [f'name:"{name.replace(chr(34), "")}"']
    if set_hint:
        parts.append(f'set.name:"{set_hint.replace(chr(34), "")}"')
    return " ".join(parts)


def normalize_prices(card: CardData) -> dict[str, PricePoint]:
    """Flatten both price blocks into the fixed named grid (unknown -> None)."""
    tcg_prices = card.tcgplayer.prices if card.tcgplayer else {}
    cm_prices = card.cardmarket.prices if card.cardmarket else {}

    prices: dict[str, PricePoint] = {}
    for variant in TCGPLAYER_VARIANTS:
        block = tcg_prices.get(variant) or {}
        for column in TCGPLAYER_COLUMNS:
            prices[f"tcgplayer_{variant}_{column}"] = PricePoint(
                amount=block.get(column), currency="USD"
            )
    for column in CARDMARKET_COLUMNS:
        prices[f"cardmarket_{column}"] = PricePoint(
            amount=cm_prices.get(column), currency="EUR"
        )
    return prices


def to_price_signal(card: CardData, search_query: str) -> PriceSignal:
    url = (
        (card.tcgplayer.url if card.tcgplayer else None)
        or (card.cardmarket.url if card.cardmarket else None)
        or card.image_url
        or f"{BASE_URL}/cards?q={quote(search_query)}"
    )
    return PriceSignal(
        source=SOURCE,
        url=url,
        card_name=card.name or None,
        set_name=card.set.name if card.set else None,
        collector_number=card.number,
        rarity=card.rarity,
        released_at=card.set.releaseDate if card.set else None,
        prices=normalize_prices(card),
    )


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class PokemonTCGAdapter:
    """
    Price adapter for the pokemontcg.io v2 API.

    Usage:
        async with httpx.AsyncClient() as http:
            signal = await PokemonTCGAdapter(http).lookup("Charizard", "Base")
    """

    source = SOURCE

    def __init__(self, http: httpx.AsyncClient, api_key: str | None = None):
        self._http = http
        self._api_key = api_key if api_key is not None else settings.POKEMONTCG_API_KEY

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def lookup(self, name: str, set_hint: str = "") -> PriceSignal | None:
        """
        Search for a card by exact name (and set name) and return its prices.

        Args:
            name: Card name (e.g., "Charizard").
            set_hint: Set name for disambiguation (e.g., "Base").

        Returns:
            PriceSignal for the best candidate, or None on missing key / no match.
        """
        if not self._api_key or not name:
            return None

        search_query = build_search_query(name, set_hint)
        logger.info("pokemontcg_lookup", card_name=name, set_hint=set_hint)

        data = await fetch_catalog_json(
            self._http,
            f"{BASE_URL}/cards",
            source=SOURCE,
            params={"q": search_query, "pageSize": settings.POKEMONTCG_PAGE_SIZE},
            headers={"X-Api-Key": self._api_key},
        )
        if data is None:
            return None

        response = CardListResponse.model_validate(data)
        if not response.data:
            logger.info("pokemontcg_no_match", card_name=name, set_hint=set_hint)
            return None

        signals = [to_price_signal(card, search_query) for card in response.data]
        best = select_best_signal(signals)

        logger.info(
            "pokemontcg_lookup_complete",
            card_name=name,
            candidates=len(signals),
            selected_set=best.set_name if best else None,
        )
        return best
