"""
Collectibles Appraiser — Price Fusion

Second oracle call: catalog prices + web snippets -> one low/high estimate.
Errors propagate; the orchestrator degrades a failed fusion to null.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from src.models.appraisal import FusedEstimate
from src.models.item import ItemQuery
from src.models.pricing import PriceSignal
from src.models.web import WebSnippet
from src.oracle.client import ExtractionOracle
from src.oracle.prompts import FUSION_SYSTEM

logger = structlog.get_logger(__name__)


def dump_pricing(api_pricing: dict[str, PriceSignal | None]) -> dict[str, Any]:
    return {
        key: signal.model_dump(mode="json") if signal is not None else None
        for key, signal in api_pricing.items()
    }


def dump_snippets(web: list[WebSnippet]) -> list[dict[str, Any]]:
    return [snippet.model_dump(mode="json") for snippet in web]


async def fuse_prices(
    oracle: ExtractionOracle,
    query: ItemQuery,
    api_pricing: dict[str, PriceSignal | None],
    web: list[WebSnippet],
) -> FusedEstimate:
    """Ask the oracle for a single fused price range."""
    evidence = {
        "query": query.model_dump(mode="json"),
        "apiPricing": dump_pricing(api_pricing),
        "webSnippets": dump_snippets(web),
    }
    raw = await oracle.extract_json(FUSION_SYSTEM, json.dumps(evidence), call="fusion")
    fused = FusedEstimate.model_validate(raw)

    if not fused.currency:
        logger.warning("fusion_currency_missing", item_type=query.item_type)
    if fused.low is not None and fused.high is not None and fused.low > fused.high:
        logger.warning("fusion_range_inverted", low=str(fused.low), high=str(fused.high))

    logger.info(
        "fusion_complete",
        low=str(fused.low) if fused.low is not None else None,
        high=str(fused.high) if fused.high is not None else None,
        currency=fused.currency,
        cited_sources=len(fused.sources),
    )
    return fused
