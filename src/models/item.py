"""
Collectibles Appraiser — Item Query Model

The normalized extraction result. Built once per request from the oracle's
raw JSON and immutable afterwards. Optional fields are never null: missing
or null values become "" (or [] for condition notes).
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.config import CARD_CATEGORIES, Category

logger = structlog.get_logger(__name__)

# Fields joined into the search description, in this order
_DESCRIPTION_FIELDS = (
    "name",
    "set",
    "platform",
    "brand",
    "franchise",
    "issue_number",
    "variant",
    "year",
)


class ItemQuery(BaseModel):
    """Structured description of the item being appraised."""

    model_config = ConfigDict(frozen=True)

    category: Category = Category.OTHER
    item_type: str = ""
    name: str = ""
    set: str = ""
    platform: str = ""
    brand: str = ""
    franchise: str = ""
    issue_number: str = ""
    variant: str = ""
    year: str = ""
    region: str = ""
    language: str = ""
    condition_notes: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Category:
        """Unknown or missing categories fall back to OTHER."""
        if isinstance(v, Category):
            return v
        try:
            return Category(str(v).strip().lower())
        except ValueError:
            if v:
                logger.warning("item_query_unknown_category", raw_category=str(v))
            return Category.OTHER

    @field_validator(
        "item_type", "name", "set", "platform", "brand", "franchise",
        "issue_number", "variant", "year", "region", "language",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("condition_notes", mode="before")
    @classmethod
    def coerce_notes(cls, v: Any) -> tuple[str, ...]:
        if not isinstance(v, (list, tuple)):
            return ()
        return tuple(str(note).strip() for note in v if note is not None and str(note).strip())

    @classmethod
    def from_extraction(cls, raw: dict[str, Any]) -> ItemQuery:
        """Build from oracle output, ignoring keys outside the schema."""
        known = {key: raw[key] for key in cls.model_fields if key in raw}
        return cls.model_validate(known)

    @property
    def is_card(self) -> bool:
        return self.category in CARD_CATEGORIES

    def description(self) -> str:
        """Space-joined search description of the non-empty identifying fields."""
        return " ".join(
            value for value in (getattr(self, f) for f in _DESCRIPTION_FIELDS) if value
        )
