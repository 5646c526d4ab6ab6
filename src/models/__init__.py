"""
Models package — request-scoped value objects. Nothing here is persisted.
"""

from src.models.appraisal import (
    AppraisalReport,
    AppraisalResponse,
    FileInfo,
    FusedEstimate,
    SourceRef,
)
from src.models.item import ItemQuery
from src.models.pricing import PricePoint, PriceSignal
from src.models.web import WebSnippet

__all__ = [
    "AppraisalReport",
    "AppraisalResponse",
    "FileInfo",
    "FusedEstimate",
    "ItemQuery",
    "PricePoint",
    "PriceSignal",
    "SourceRef",
    "WebSnippet",
]
