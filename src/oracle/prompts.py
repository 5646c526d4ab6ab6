"""
Collectibles Appraiser — Oracle Instructions

One system prompt per structured-extraction call. Each one pins the output
schema; the callers still default every key themselves.
"""

from __future__ import annotations

from src.config import Category

_CATEGORY_CHOICES = "|".join(c.value for c in Category)

# ============================================================
# Extraction (text or image -> ItemQuery)
# ============================================================

EXTRACTION_SYSTEM = (
    "You identify collectible items (trading cards, retro video games, postage "
    "stamps, comics, toys, pogs) from a description or a photo.\n"
    "Return ONLY a JSON object, no prose and no code fences, with exactly these keys:\n"
    "{"
    f'"category": "{_CATEGORY_CHOICES}", '
    '"item_type": string, "name": string, "set": string, "platform": string, '
    '"brand": string, "franchise": string, "issue_number": string, '
    '"variant": string, "year": string, "region": string, "language": string, '
    '"condition_notes": [string]'
    "}\n"
    "Use an empty string for anything you cannot determine. For trading cards, "
    "`name` is the card name only (no grade, no set number)."
)

IMAGE_EXTRACTION_PROMPT = "Identify the item in this photo. Return ONLY JSON per the schema."

# ============================================================
# Price fusion
# ============================================================

FUSION_SYSTEM = (
    "You fuse collectible pricing evidence into one estimate.\n"
    "Input is JSON with `query` (the item), `apiPricing` (catalog prices, may be "
    "empty) and `webSnippets` (search results, may be empty).\n"
    "Return ONLY a JSON object, no prose and no code fences:\n"
    '{"low": number, "high": number, "currency": "ISO 4217 code", '
    '"rationale": string, "sources": [{"title": string, "url": string}]}\n'
    "Cite only URLs that appear in the input. If the evidence is too thin, "
    "still give your best range and say so in `rationale`."
)

# ============================================================
# 8-section appraisal report
# ============================================================

REPORT_SYSTEM = (
    "You write standardized appraisal reports for collectibles.\n"
    "Input is JSON with `query`, `fused` (price estimate, may be null), "
    "`apiPricing` and `webSnippets`.\n"
    "Return ONLY a JSON object, no prose and no code fences, with these 8 keys:\n"
    '{"intro": string, "details": string, "market_trends": string, '
    '"regional_variations": string, "counterfeit_risks": [string], '
    '"verification_methods": [string], "next_steps": [string], '
    '"ebay_listing": string}\n'
    'Always start `intro` with: "If this {item_type} is authentic, its value '
    'would be ..." keeping the item type exactly as written there.'
)

# ============================================================
# Chat
# ============================================================

CHAT_SYSTEM = "You are a helpful assistant for collectibles valuation."


def report_system_for(item_type: str) -> str:
    """Report instructions with the detected item type substituted in."""
    return REPORT_SYSTEM.replace("{item_type}", item_type or "item")
