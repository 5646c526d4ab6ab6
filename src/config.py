"""
Collectibles Appraiser — Configuration & Constants

Credentials, model selection, deadlines and size caps. Every limit the
pipeline enforces lives here. No hardcoded values in business logic.

Usage:
    from src.config import settings
"""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Category(str, Enum):
    """Item category as detected by the extraction oracle."""
    POKEMON = "pokemon"
    MTG = "mtg"
    YUGIOH = "yugioh"
    RETRO_VIDEO_GAME = "retro_video_game"
    POSTAGE_STAMP = "postage_stamp"
    TOY_OR_FIGURINE = "toy_or_figurine"
    COMIC_BOOK = "comic_book"
    POGS = "pogs"
    OTHER = "other"


# Categories that have a specialized catalog adapter
CARD_CATEGORIES: frozenset[Category] = frozenset(
    {Category.POKEMON, Category.MTG, Category.YUGIOH}
)


class Depth(str, Enum):
    """How much of the pipeline runs for a request."""
    MINIMAL = "minimal"   # Extract -> Compile
    FULL = "full"         # Extract -> Enrich -> Fuse -> Compile


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for the Collectibles Appraiser.

    Loads from environment variables with fallback defaults. Read-only for
    the life of the process.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -----------------------------------------------------------------------
    # Extraction oracle (required)
    # -----------------------------------------------------------------------
    ANTHROPIC_API_KEY: str = ""
    ORACLE_MODEL_ID: str = "claude-sonnet-4-5"
    ORACLE_MAX_TOKENS: int = 2048
    ORACLE_TEMPERATURE: float = 0.2

    # -----------------------------------------------------------------------
    # Optional enrichment sources
    # -----------------------------------------------------------------------
    TAVILY_API_KEY: str = ""
    SERPER_API_KEY: str = ""
    POKEMONTCG_API_KEY: str = ""

    # -----------------------------------------------------------------------
    # Deadlines & transport
    # -----------------------------------------------------------------------
    REQUEST_DEADLINE_SECONDS: float = 25.0
    HTTP_TIMEOUT_SECONDS: float = 10.0
    HTTP_USER_AGENT: str = "collectibles-appraiser/0.1"

    # -----------------------------------------------------------------------
    # Upload & image limits
    # -----------------------------------------------------------------------
    MAX_UPLOAD_BYTES: int = 4_500_000       # ~4.5MB, 413 above this
    MAX_IMAGE_BYTES: int = 5_000_000        # hard bound on what the oracle accepts
    ALLOWED_IMAGE_TYPES: list[str] = [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
    ]
    DEFAULT_IMAGE_TYPE: str = "image/jpeg"

    # -----------------------------------------------------------------------
    # Web signal search
    # -----------------------------------------------------------------------
    WEB_RESULT_CAP: int = 10
    TAVILY_MAX_RESULTS: int = 6
    SERPER_NUM_RESULTS: int = 8
    SERPER_COUNTRY: str = "us"

    # -----------------------------------------------------------------------
    # Catalog adapters
    # -----------------------------------------------------------------------
    POKEMONTCG_PAGE_SIZE: int = 6

    # -----------------------------------------------------------------------
    # Server
    # -----------------------------------------------------------------------
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: list[str] = ["*"]


# Singleton instance
settings = Settings()
