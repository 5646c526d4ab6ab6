"""Tests for the YGOPRODeck (Yu-Gi-Oh!) price adapter."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
import respx

from src.pipeline.ygoprodeck import BASE_URL, YGOCard, YGOProDeckAdapter

CARDINFO_URL = f"{BASE_URL}/cardinfo.php"

BLUE_EYES = {
    "name": "Blue-Eyes White Dragon",
    "ygoprodeck_url": "https://ygoprodeck.com/card/blue-eyes-white-dragon-7485",
    "card_sets": [
        {"set_name": "Legend of Blue Eyes White Dragon", "set_code": "LOB-001", "set_rarity": "Ultra Rare"},
        {"set_name": "Starter Deck: Kaiba", "set_code": "SDK-001", "set_rarity": "Ultra Rare"},
    ],
    "card_prices": [
        {
            "cardmarket_price": "0.29",
            "tcgplayer_price": "0.35",
            "ebay_price": "2.00",
            "amazon_price": "1.99",
            "coolstuffinc_price": "0.99",
        }
    ],
}


class TestPickSet:
    def test_hint_matches_set_name_substring(self) -> None:
        card = YGOCard.model_validate(BLUE_EYES)
        assert card.pick_set("starter deck").set_code == "SDK-001"

    def test_hint_matches_set_code(self) -> None:
        card = YGOCard.model_validate(BLUE_EYES)
        assert card.pick_set("sdk-001").set_name == "Starter Deck: Kaiba"

    def test_no_hint_uses_first(self) -> None:
        card = YGOCard.model_validate(BLUE_EYES)
        assert card.pick_set().set_code == "LOB-001"

    def test_no_sets(self) -> None:
        assert YGOCard(name="Token").pick_set("LOB") is None


class TestYGOProDeckAdapter:
    @pytest.mark.asyncio
    async def test_happy_path(self, http_client: httpx.AsyncClient) -> None:
        with respx.mock:
            route = respx.get(CARDINFO_URL).mock(
                return_value=httpx.Response(200, json={"data": [BLUE_EYES]})
            )
            result = await YGOProDeckAdapter(http_client).lookup("Blue-Eyes", "Legend of Blue Eyes")

        assert route.calls.last.request.url.params["fname"] == "Blue-Eyes"
        assert result is not None
        assert result.source == "ygoprodeck"
        assert result.url == "https://ygoprodeck.com/card/blue-eyes-white-dragon-7485"
        assert result.set_name == "Legend of Blue Eyes White Dragon"
        assert result.collector_number == "LOB-001"
        assert result.prices["tcgplayer"].amount == Decimal("0.35")
        assert result.prices["cardmarket"].amount == Decimal("0.29")
        assert result.prices["cardmarket"].currency == "EUR"
        assert result.prices["ebay"].currency == "USD"

    @pytest.mark.asyncio
    async def test_prefers_priced_entry(self, http_client: httpx.AsyncClient) -> None:
        unpriced = {"name": "Blue-Eyes Alternative White Dragon", "card_prices": []}

        with respx.mock:
            respx.get(CARDINFO_URL).mock(
                return_value=httpx.Response(200, json={"data": [unpriced, BLUE_EYES]})
            )
            result = await YGOProDeckAdapter(http_client).lookup("Blue-Eyes")

        assert result.card_name == "Blue-Eyes White Dragon"

    @pytest.mark.asyncio
    async def test_card_page_fallback_url(self, http_client: httpx.AsyncClient) -> None:
        bare = {"name": "Kuriboh", "card_prices": [{"tcgplayer_price": "0.10"}]}

        with respx.mock:
            respx.get(CARDINFO_URL).mock(return_value=httpx.Response(200, json={"data": [bare]}))
            result = await YGOProDeckAdapter(http_client).lookup("Kuriboh")

        assert result.url == "https://db.ygoprodeck.com/card/?search=Kuriboh"
        assert result.prices["amazon"].amount is None

    @pytest.mark.asyncio
    async def test_no_match_400_returns_none(self, http_client: httpx.AsyncClient) -> None:
        with respx.mock:
            respx.get(CARDINFO_URL).mock(
                return_value=httpx.Response(400, json={"error": "No card matching your query was found."})
            )
            result = await YGOProDeckAdapter(http_client).lookup("zzzz")

        assert result is None

    @pytest.mark.asyncio
    async def test_non_json_body_returns_none(self, http_client: httpx.AsyncClient) -> None:
        with respx.mock:
            respx.get(CARDINFO_URL).mock(return_value=httpx.Response(200, text="<html>maintenance</html>"))
            result = await YGOProDeckAdapter(http_client).lookup("Kuriboh")

        assert result is None
