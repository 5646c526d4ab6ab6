"""
Collectibles Appraiser — Fused Estimate, Report & Response Models

FusedEstimate and AppraisalReport are parsed from oracle JSON. Every key is
defaulted here: the oracle is never assumed to return all of them.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from src.models.item import ItemQuery
from src.models.pricing import PriceSignal, parse_price
from src.models.web import WebSnippet

INTRO_TEMPLATE = "If this {item_type} is authentic, its value would be"


def _as_text(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _as_text_list(v: Any) -> list[str]:
    if isinstance(v, str):
        return [v.strip()] if v.strip() else []
    if not isinstance(v, (list, tuple)):
        return []
    return [str(item).strip() for item in v if item is not None and str(item).strip()]


class SourceRef(BaseModel):
    """A cited source."""
    title: str = ""
    url: str = ""

    @field_validator("title", "url", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _as_text(v)


class FusedEstimate(BaseModel):
    """Low/high price range fused from catalog prices and web snippets."""
    low: Decimal | None = Field(
        default=None, validation_alias=AliasChoices("low", "estimate_low")
    )
    high: Decimal | None = Field(
        default=None, validation_alias=AliasChoices("high", "estimate_high")
    )
    currency: str = ""
    rationale: str = Field(
        default="", validation_alias=AliasChoices("rationale", "reasoning")
    )
    sources: list[SourceRef] = Field(default_factory=list)

    @field_validator("low", "high", mode="before")
    @classmethod
    def parse_bound(cls, v: Any) -> Decimal | None:
        return parse_price(v)

    @field_validator("currency", mode="before")
    @classmethod
    def coerce_currency(cls, v: Any) -> str:
        return _as_text(v).upper()

    @field_validator("rationale", mode="before")
    @classmethod
    def coerce_rationale(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("sources", mode="before")
    @classmethod
    def keep_mapping_sources(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]


class AppraisalReport(BaseModel):
    """The fixed 8-section appraisal document."""
    intro: str = ""
    details: str = ""
    market_trends: str = ""
    regional_variations: str = ""
    counterfeit_risks: list[str] = Field(default_factory=list)
    verification_methods: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    ebay_listing: str = ""

    @field_validator("intro", "details", "market_trends", "regional_variations",
                     "ebay_listing", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("counterfeit_risks", "verification_methods", "next_steps",
                     mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> list[str]:
        return _as_text_list(v)

    def intro_follows_template(self, item_type: str) -> bool:
        """True if the intro opens with the mandatory authenticity sentence."""
        expected = INTRO_TEMPLATE.format(item_type=item_type or "item")
        return self.intro.lower().startswith(expected.lower())


class FileInfo(BaseModel):
    """Metadata echoed back for an uploaded file."""
    name: str = ""
    type: str = ""
    size: int = 0


class AppraisalResponse(BaseModel):
    """
    The payload the pipeline hands to the request surface.

    `apiPricing` is keyed by ecosystem (mtg, ygo, pokemon) for card
    categories and empty otherwise. `fused` and `sections` are null when
    their stage degraded.
    """
    ok: bool = True
    query: ItemQuery
    apiPricing: dict[str, PriceSignal | None] = Field(default_factory=dict)
    web: list[WebSnippet] = Field(default_factory=list)
    fused: FusedEstimate | None = None
    sections: AppraisalReport | None = None
    file: FileInfo | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict; `file` only appears for uploads."""
        payload = self.model_dump(mode="json")
        if self.file is None:
            payload.pop("file")
        return payload
