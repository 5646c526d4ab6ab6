"""Collectibles Appraiser — Extraction Oracle"""

from src.oracle.client import ExtractionOracle, ImageInput, parse_json_object

__all__ = ["ExtractionOracle", "ImageInput", "parse_json_object"]
