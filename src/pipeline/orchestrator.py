"""
Collectibles Appraiser — Pipeline Orchestrator

Sequences one appraisal request:

    Validating -> Extracting -> Enriching (catalog || web search)
               -> Fusing -> Compiling -> Responding

One deadline, started when Extracting begins, governs every stage:
- Expiry (or any oracle failure) during Extracting ends the request
  (UpstreamTimeout / UpstreamError).
- Expiry or failure in any later stage degrades only that stage's output to
  its absent value; stages not yet started when the deadline has passed are
  skipped, and the response is still assembled from what completed.

All state is request-scoped: a fresh oracle client and HTTP client per run.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Coroutine, TypeVar

import httpx
import structlog

from src.config import Depth, settings
from src.errors import ClientInputError, UpstreamTimeout
from src.models.appraisal import AppraisalResponse, FileInfo
from src.models.item import ItemQuery
from src.oracle.client import ExtractionOracle, ImageInput
from src.oracle.prompts import CHAT_SYSTEM, EXTRACTION_SYSTEM, IMAGE_EXTRACTION_PROMPT
from src.pipeline.catalog import build_adapters, empty_pricing, lookup_specialized
from src.pipeline.fusion import fuse_prices
from src.pipeline.report import compile_report
from src.pipeline.web_search import build_providers, search_web_signals

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class Deadline:
    """A single countdown shared by every stage of one request."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self._expires_at: float | None = None

    def start(self) -> None:
        self._expires_at = time.monotonic() + self.seconds

    def remaining(self) -> float:
        if self._expires_at is None:
            return self.seconds
        return max(0.0, self._expires_at - time.monotonic())


def build_prompt(question: str, context: str | None = None) -> str:
    """Question text, with free-text context appended when given."""
    if context:
        return f"{question}\n\nContext:\n{context}"
    return question


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        follow_redirects=True,
        headers={
            "User-Agent": settings.HTTP_USER_AGENT,
            "Accept": "application/json",
        },
    )


async def _degradable(
    stage: str,
    coro: Coroutine[Any, Any, T],
    deadline: Deadline,
    default: T,
) -> T:
    """Run a non-mandatory stage; any failure or timeout yields `default`."""
    remaining = deadline.remaining()
    if remaining <= 0:
        coro.close()
        logger.warning("pipeline_stage_skipped", stage=stage, reason="deadline_elapsed")
        return default

    try:
        return await asyncio.wait_for(coro, timeout=remaining)
    except asyncio.TimeoutError:
        logger.warning("pipeline_stage_timeout", stage=stage, deadline_seconds=deadline.seconds)
    except Exception as e:
        logger.warning(
            "pipeline_stage_degraded",
            stage=stage,
            error=str(e),
            error_type=type(e).__name__,
        )
    return default


class AppraisalPipeline:
    """
    Runs the extraction -> enrichment -> fusion -> report pipeline.

    Usage:
        pipeline = AppraisalPipeline()
        response = await pipeline.run(prompt="PSA 10 Charizard base set 4/102")
        payload = response.to_payload()
    """

    def __init__(self, deadline_seconds: float | None = None):
        self._deadline_seconds = (
            deadline_seconds if deadline_seconds is not None else settings.REQUEST_DEADLINE_SECONDS
        )

    async def run(
        self,
        prompt: str = "",
        image: ImageInput | None = None,
        depth: Depth = Depth.FULL,
        file_info: FileInfo | None = None,
    ) -> AppraisalResponse:
        """
        Appraise one item described by text and/or a photo.

        Raises:
            ConfigurationError: oracle credential missing.
            ClientInputError: neither text nor image supplied.
            UpstreamTimeout / UpstreamError: extraction did not succeed.
        """
        # Validating
        oracle = ExtractionOracle()
        try:
            if not prompt and image is None:
                raise ClientInputError("Missing question", detail="Either text or an image is required.")
            return await self._run_stages(oracle, prompt, image, depth, file_info)
        finally:
            await oracle.aclose()

    async def _run_stages(
        self,
        oracle: ExtractionOracle,
        prompt: str,
        image: ImageInput | None,
        depth: Depth,
        file_info: FileInfo | None,
    ) -> AppraisalResponse:
        deadline = Deadline(self._deadline_seconds)
        deadline.start()
        started = time.monotonic()

        query = await self._extract(oracle, prompt, image, deadline)
        logger.info(
            "pipeline_extracted",
            category=query.category.value,
            item_type=query.item_type,
            depth=depth.value,
        )

        api_pricing: dict = {}
        web: list = []
        fused = None

        async with _http_client() as http:
            if depth is Depth.FULL:
                api_pricing, web = await asyncio.gather(
                    _degradable(
                        "catalog",
                        lookup_specialized(query, build_adapters(http)),
                        deadline,
                        empty_pricing(query),
                    ),
                    _degradable(
                        "web_search",
                        search_web_signals(query, build_providers(http)),
                        deadline,
                        [],
                    ),
                )
                fused = await _degradable(
                    "fusion",
                    fuse_prices(oracle, query, api_pricing, web),
                    deadline,
                    None,
                )

        sections = await _degradable(
            "report",
            compile_report(oracle, query, fused, api_pricing, web),
            deadline,
            None,
        )

        logger.info(
            "pipeline_complete",
            category=query.category.value,
            depth=depth.value,
            api_sources=[k for k, v in api_pricing.items() if v is not None],
            web_results=len(web),
            fused=fused is not None,
            sections=sections is not None,
            elapsed_seconds=round(time.monotonic() - started, 3),
        )
        return AppraisalResponse(
            query=query,
            apiPricing=api_pricing,
            web=web,
            fused=fused,
            sections=sections,
            file=file_info,
        )

    async def _extract(
        self,
        oracle: ExtractionOracle,
        prompt: str,
        image: ImageInput | None,
        deadline: Deadline,
    ) -> ItemQuery:
        """Mandatory stage: failures here end the request."""
        text = prompt or (IMAGE_EXTRACTION_PROMPT if image is not None else "")
        try:
            raw = await asyncio.wait_for(
                oracle.extract_json(EXTRACTION_SYSTEM, text, image, call="extract"),
                timeout=deadline.remaining(),
            )
        except asyncio.TimeoutError as e:
            logger.error("pipeline_extract_timeout", deadline_seconds=deadline.seconds)
            raise UpstreamTimeout(
                "Upstream timeout",
                detail=f"Extraction exceeded the {deadline.seconds:g}s request deadline.",
                cause=e,
            ) from e
        return ItemQuery.from_extraction(raw)


async def run_chat(messages: list[dict[str, Any]]) -> str:
    """
    Forward a chat transcript to the oracle nearly verbatim.

    `system` messages are lifted into the system prompt; the rest are passed
    through as user/assistant turns.
    """
    oracle = ExtractionOracle()
    try:
        return await _answer(oracle, messages)
    finally:
        await oracle.aclose()


async def _answer(oracle: ExtractionOracle, messages: list[dict[str, Any]]) -> str:
    if not isinstance(messages, list) or not messages:
        raise ClientInputError("Missing messages array", detail="`messages` must be a non-empty list.")

    system_parts: list[str] = []
    turns: list[dict[str, str]] = []
    for message in messages:
        if not isinstance(message, dict):
            raise ClientInputError("Invalid message", detail="Each message must be an object.")
        role = str(message.get("role") or "user")
        content = str(message.get("content") or "")
        if role == "system":
            system_parts.append(content)
        else:
            turns.append({"role": "assistant" if role == "assistant" else "user", "content": content})

    if not turns:
        raise ClientInputError("Missing messages array", detail="At least one user message is required.")
    try:
        answer = await asyncio.wait_for(
            oracle.complete(turns, "\n\n".join(system_parts) or CHAT_SYSTEM),
            timeout=settings.REQUEST_DEADLINE_SECONDS,
        )
    except asyncio.TimeoutError as e:
        raise UpstreamTimeout(
            "Upstream timeout",
            detail=f"Chat exceeded the {settings.REQUEST_DEADLINE_SECONDS:g}s request deadline.",
            cause=e,
        ) from e

    logger.info("chat_complete", turns=len(turns), chars=len(answer))
    return answer
