"""
Collectibles Appraiser — Price Signal Model

One catalog adapter's normalized answer. Every adapter emits the same shape
regardless of how heterogeneous its upstream price columns are. Individual
price points are nullable but never omitted, so callers can render a placeholder
deterministically.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, Field, field_validator


def parse_price(v: Any) -> Decimal | None:
    """Safely convert a catalog price value to Decimal. Never use float for money."""
    if v is None or v == "" or v == "N/A":
        return None
    try:
        amount = Decimal(str(v))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class PricePoint(BaseModel):
    """A single currency-tagged price, possibly unknown."""
    amount: Decimal | None = None
    currency: str = "USD"

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Decimal | None:
        return parse_price(v)


class PriceSignal(BaseModel):
    """
    Normalized result from one specialized catalog.

    `prices` always carries the adapter's full fixed set of named points;
    unknown points have `amount=None`.
    """
    source: str = Field(..., description="Adapter identifier, e.g. 'scryfall'")
    url: str = Field(..., description="Canonical lookup URL for the matched entry")
    card_name: str | None = None
    set_name: str | None = None
    collector_number: str | None = None
    rarity: str | None = None
    released_at: str | None = None
    prices: dict[str, PricePoint] = Field(default_factory=dict)

    @property
    def has_any_price(self) -> bool:
        return any(point.amount is not None for point in self.prices.values())
