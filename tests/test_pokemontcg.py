"""Tests for the pokemontcg.io price adapter."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
import respx

from conftest import pokemon_card
from src.pipeline.pokemontcg import (
    BASE_URL,
    CardData,
    PokemonTCGAdapter,
    build_search_query,
    normalize_prices,
    to_price_signal,
)

CARDS_URL = f"{BASE_URL}/cards"


# ---------------------------------------------------------------------------
# Query building & normalization
# ---------------------------------------------------------------------------


class TestBuildSearchQuery:
    def test_name_only(self) -> None:
        assert build_search_query("Charizard") == 'name:"Charizard"'

    def test_name_and_set(self) -> None:
        assert build_search_query("Charizard", "Base") == 'name:"Charizard" set.name:"Base"'

    def test_quotes_are_stripped(self) -> None:
        assert build_search_query('Farfetch"d') == 'name:"Farfetchd"'


class TestNormalizePrices:
    def test_grid_is_complete_even_without_price_blocks(self) -> None:
        prices = normalize_prices(CardData(id="base1-4", name="Charizard"))

        # 6 TCGplayer variants x 4 columns + 3 Cardmarket columns
        assert len(prices) == 27
        assert prices["tcgplayer_1stEditionNormal_market"].currency == "USD"
        assert all(point.amount is None for point in prices.values())
        assert prices["tcgplayer_holofoil_market"].currency == "USD"
        assert prices["cardmarket_trendPrice"].currency == "EUR"

    def test_known_values_are_decimal(self) -> None:
        card = CardData.model_validate(
            {
                "id": "base1-4",
                "tcgplayer": {"prices": {"holofoil": {"low": 310.0, "market": 412.37}}},
                "cardmarket": {"prices": {"trendPrice": 380.5, "lowPrice": None}},
            }
        )
        prices = normalize_prices(card)

        assert prices["tcgplayer_holofoil_market"].amount == Decimal("412.37")
        assert prices["tcgplayer_holofoil_low"].amount == Decimal("310.0")
        assert prices["tcgplayer_holofoil_mid"].amount is None
        assert prices["tcgplayer_normal_market"].amount is None
        assert prices["cardmarket_trendPrice"].amount == Decimal("380.5")
        assert prices["cardmarket_lowPrice"].amount is None

    def test_first_edition_normal_prices_are_kept(self) -> None:
        card = CardData.model_validate(
            {
                "id": "base1-58",
                "tcgplayer": {
                    "prices": {"1stEditionNormal": {"low": 5.0, "mid": 8.0, "high": 20.0, "market": 9.5}}
                },
            }
        )
        prices = normalize_prices(card)

        assert prices["tcgplayer_1stEditionNormal_low"].amount == Decimal("5.0")
        assert prices["tcgplayer_1stEditionNormal_market"].amount == Decimal("9.5")
        assert to_price_signal(card, "q").has_any_price is True


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class TestPokemonTCGAdapter:
    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="")

        with respx.mock:
            route = respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json={"data": []}))
            result = await adapter.lookup("Charizard", "Base")

        assert adapter.is_available() is False
        assert result is None
        assert route.call_count == 0

    @pytest.mark.asyncio
    async def test_happy_path_sends_key_and_query(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="ptcg-key")
        payload = {
            "data": [
                pokemon_card(
                    "base1-4",
                    holofoil_market=412.37,
                    tcgplayer_url="https://prices.pokemontcg.io/tcgplayer/base1-4",
                )
            ],
            "totalCount": 1,
        }

        with respx.mock:
            route = respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json=payload))
            result = await adapter.lookup("Charizard", "Base")

        assert route.call_count == 1
        request = route.calls.last.request
        assert request.headers["X-Api-Key"] == "ptcg-key"
        assert request.url.params["q"] == 'name:"Charizard" set.name:"Base"'

        assert result is not None
        assert result.source == "pokemontcg"
        assert result.url == "https://prices.pokemontcg.io/tcgplayer/base1-4"
        assert result.card_name == "Charizard"
        assert result.set_name == "Base"
        assert result.collector_number == "4"
        assert result.released_at == "1999/01/09"
        assert result.prices["tcgplayer_holofoil_market"].amount == Decimal("412.37")

    @pytest.mark.asyncio
    async def test_selects_first_priced_candidate(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="ptcg-key")
        payload = {
            "data": [
                pokemon_card("base4-4", set_name="Base Set 2"),
                pokemon_card("base1-4", set_name="Base", holofoil_market=412.37),
            ]
        }

        with respx.mock:
            respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json=payload))
            result = await adapter.lookup("Charizard")

        assert result is not None
        assert result.set_name == "Base"

    @pytest.mark.asyncio
    async def test_falls_back_to_first_when_nothing_priced(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="ptcg-key")
        payload = {
            "data": [
                pokemon_card("base4-4", set_name="Base Set 2"),
                pokemon_card("base1-4", set_name="Base"),
            ]
        }

        with respx.mock:
            respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json=payload))
            result = await adapter.lookup("Charizard")

        assert result is not None
        assert result.set_name == "Base Set 2"
        assert result.has_any_price is False
        # no tcgplayer/cardmarket URL, so the image URL is used
        assert result.url == "https://images.pokemontcg.io/base4-4_hires.png"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="ptcg-key")

        with respx.mock:
            respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json={"data": []}))
            result = await adapter.lookup("Missingno")

        assert result is None

    @pytest.mark.asyncio
    async def test_non_success_status_returns_none(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="ptcg-key")

        with respx.mock:
            route = respx.get(CARDS_URL).mock(return_value=httpx.Response(503))
            result = await adapter.lookup("Charizard")

        assert result is None
        # single attempt, no retry
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_query_url_is_last_resort(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="ptcg-key")
        card = {"id": "base1-4", "name": "Charizard"}

        with respx.mock:
            respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json={"data": [card]}))
            result = await adapter.lookup("Charizard")

        assert result is not None
        assert result.url.startswith(f"{CARDS_URL}?q=")
        assert "Charizard" in result.url

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, http_client: httpx.AsyncClient) -> None:
        adapter = PokemonTCGAdapter(http_client, api_key="ptcg-key")

        with respx.mock:
            respx.get(CARDS_URL).mock(side_effect=httpx.ConnectError("boom"))
            with pytest.raises(httpx.ConnectError):
                await adapter.lookup("Charizard")
