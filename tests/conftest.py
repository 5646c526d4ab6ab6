"""
Collectibles Appraiser — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- Hermetic settings (oracle key present, every optional source absent)
- A scripted fake for the Anthropic client (the extraction oracle)
- An in-process HTTP client for the FastAPI app
- Canned upstream payloads
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncGenerator, Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.api.app import create_app
from src.config import settings
from src.oracle.prompts import EXTRACTION_SYSTEM, FUSION_SYSTEM, REPORT_SYSTEM

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_REPORT_PREFIX = REPORT_SYSTEM.split("\n", 1)[0]


@pytest.fixture(autouse=True)
def hermetic_settings() -> Iterator[None]:
    """Oracle key present; every optional credential absent unless a test opts in."""
    with patch.object(settings, "ANTHROPIC_API_KEY", "test-anthropic-key"), \
            patch.object(settings, "TAVILY_API_KEY", ""), \
            patch.object(settings, "SERPER_API_KEY", ""), \
            patch.object(settings, "POKEMONTCG_API_KEY", ""), \
            patch.object(settings, "REQUEST_DEADLINE_SECONDS", 5.0):
        yield


# ---------------------------------------------------------------------------
# Canned oracle outputs
# ---------------------------------------------------------------------------

CHARIZARD_EXTRACTION: dict[str, Any] = {
    "category": "pokemon",
    "item_type": "Pokémon trading card",
    "name": "Charizard",
    "set": "Base",
    "platform": "",
    "brand": "Wizards of the Coast",
    "franchise": "Pokémon",
    "issue_number": "4/102",
    "variant": "Holo",
    "year": "1999",
    "region": "US",
    "language": "English",
    "condition_notes": ["PSA 10 slab"],
}

FUSION_OUTPUT: dict[str, Any] = {
    "low": 4200,
    "high": 6100,
    "currency": "USD",
    "rationale": "Catalog market price plus recent graded sales.",
    "sources": [{"title": "TCGplayer", "url": "https://www.tcgplayer.com/product/42382"}],
}

REPORT_OUTPUT: dict[str, Any] = {
    "intro": "If this Pokémon trading card is authentic, its value would be about $4,200–$6,100.",
    "details": "1999 Base Set holo Charizard, card 4/102.",
    "market_trends": "Graded copies have been stable.",
    "regional_variations": "Japanese prints trade lower.",
    "counterfeit_risks": ["Fake PSA slabs", "Reprinted holo foil"],
    "verification_methods": ["Verify cert number on PSA site"],
    "next_steps": ["Compare recent sold listings"],
    "ebay_listing": "PSA 10 Charizard Base Set 4/102 Holo 1999",
}


class FakeOracle:
    """
    Scripted stand-in for `AsyncAnthropic().messages.create`.

    Dispatches on the system prompt, so one fake serves every stage. Per
    stage ("extract", "fusion", "report", "chat") a test can override the
    response (dict -> JSON, str -> raw text), inject an exception, or add a
    delay.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Any] = {
            "extract": CHARIZARD_EXTRACTION,
            "fusion": FUSION_OUTPUT,
            "report": REPORT_OUTPUT,
            "chat": "Base Set Charizard is the most sought-after card of the set.",
        }
        self.errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @staticmethod
    def stage_for(system: str) -> str:
        if system == EXTRACTION_SYSTEM:
            return "extract"
        if system == FUSION_SYSTEM:
            return "fusion"
        if system.startswith(_REPORT_PREFIX):
            return "report"
        return "chat"

    def calls_for(self, stage: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == stage]

    async def create(self, **kwargs: Any) -> MagicMock:
        stage = self.stage_for(kwargs["system"])
        self.calls.append((stage, kwargs))

        if stage in self.delays:
            await asyncio.sleep(self.delays[stage])
        if stage in self.errors:
            raise self.errors[stage]

        payload = self.responses[stage]
        text = payload if isinstance(payload, str) else json.dumps(payload)
        message = MagicMock()
        message.content = [MagicMock(text=text)]
        return message


@pytest.fixture
def fake_oracle() -> Iterator[FakeOracle]:
    """Patch the Anthropic SDK client with a FakeOracle."""
    oracle = FakeOracle()
    mock_client = AsyncMock()
    mock_client.messages.create = AsyncMock(side_effect=oracle.create)
    with patch("anthropic.AsyncAnthropic", return_value=mock_client):
        yield oracle


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def app_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """In-process client for the FastAPI app (no network, no server)."""
    transport = httpx.ASGITransport(app=create_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Plain async client for adapter tests; pair with respx.mock."""
    async with httpx.AsyncClient() as client:
        yield client


# ---------------------------------------------------------------------------
# Canned catalog payloads
# ---------------------------------------------------------------------------


def pokemon_card(
    card_id: str,
    *,
    set_name: str = "Base",
    holofoil_market: float | None = None,
    tcgplayer_url: str | None = None,
) -> dict[str, Any]:
    card: dict[str, Any] = {
        "id": card_id,
        "name": "Charizard",
        "number": card_id.split("-")[-1],
        "rarity": "Rare Holo",
        "set": {"id": card_id.split("-")[0], "name": set_name, "releaseDate": "1999/01/09"},
        "images": {"large": f"https://images.pokemontcg.io/{card_id}_hires.png"},
    }
    if holofoil_market is not None or tcgplayer_url is not None:
        card["tcgplayer"] = {
            "url": tcgplayer_url,
            "prices": (
                {"holofoil": {"low": None, "mid": None, "high": None, "market": holofoil_market}}
                if holofoil_market is not None
                else {}
            ),
        }
    return card
