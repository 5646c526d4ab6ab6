"""
Collectibles Appraiser — Extraction Oracle Client

Thin wrapper around the Anthropic Messages API. The oracle is treated as an
opaque structured-extraction capability: prompt (+ optional image) in, one
JSON object out.

Contract:
- Exactly one outbound call per invocation (SDK retries disabled); the
  shared request deadline is applied by the caller.
- Malformed JSON is a hard failure (UpstreamError). Keys are NOT defaulted
  here; callers validate into their own models.
"""

from __future__ import annotations

import base64
import json
from typing import Any

import anthropic
import structlog
from pydantic import BaseModel

from src.config import settings
from src.errors import (
    ClientInputError,
    ConfigurationError,
    PayloadTooLargeError,
    UpstreamError,
    UpstreamTimeout,
)

logger = structlog.get_logger(__name__)


class ImageInput(BaseModel):
    """Raw image bytes plus their MIME type."""
    data: bytes
    media_type: str

    def validate_for_oracle(self) -> None:
        """Enforce the MIME allow-set and the size bound."""
        if self.media_type not in settings.ALLOWED_IMAGE_TYPES:
            raise ClientInputError(
                "Unsupported file type",
                detail=(
                    f"{self.media_type or 'unknown'} is not one of "
                    f"{', '.join(settings.ALLOWED_IMAGE_TYPES)}"
                ),
            )
        if len(self.data) > settings.MAX_IMAGE_BYTES:
            raise PayloadTooLargeError(
                "Image too large",
                detail=f"{len(self.data)} bytes exceeds {settings.MAX_IMAGE_BYTES} byte limit",
            )


def _strip_code_fence(raw: str) -> str:
    """Remove a single surrounding ``` / ```json fence if the model added one."""
    text = raw.strip()
    if text.startswith("```") and text.endswith("```"):
        text = text[3:-3].strip()
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse oracle output as a JSON object or raise UpstreamError."""
    try:
        parsed = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError as e:
        raise UpstreamError(
            "Oracle returned malformed JSON",
            detail=f"{e.msg} at position {e.pos}",
            cause=e,
        ) from e
    if not isinstance(parsed, dict):
        raise UpstreamError(
            "Oracle returned malformed JSON",
            detail=f"expected an object, got {type(parsed).__name__}",
        )
    return parsed


class ExtractionOracle:
    """
    Async client for structured extraction and plain chat completions.

    Usage:
        async with ExtractionOracle() as oracle:
            raw = await oracle.extract_json(EXTRACTION_SYSTEM, "PSA 10 Charizard")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ):
        self._api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        if not self._api_key:
            raise ConfigurationError(
                "Server misconfig: ANTHROPIC_API_KEY missing",
                detail="The extraction oracle credential is not configured.",
            )
        self._model = model or settings.ORACLE_MODEL_ID
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key, max_retries=0)

    @property
    def model(self) -> str:
        return self._model

    async def __aenter__(self) -> ExtractionOracle:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.close()

    async def _create(
        self,
        system: str,
        messages: list[dict[str, Any]],
        call: str,
    ) -> str:
        """Issue one Messages API call and return the concatenated text blocks."""
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=settings.ORACLE_MAX_TOKENS,
                temperature=settings.ORACLE_TEMPERATURE,
                system=system,
                messages=messages,
            )
        except anthropic.APITimeoutError as e:
            logger.error("oracle_timeout", call=call, model=self._model)
            raise UpstreamTimeout("Upstream timeout", detail=str(e), cause=e) from e
        except anthropic.APIStatusError as e:
            logger.error(
                "oracle_http_error",
                call=call,
                status_code=e.status_code,
                model=self._model,
            )
            raise UpstreamError("Oracle error", detail=str(e.message), cause=e) from e
        except anthropic.APIConnectionError as e:
            logger.error("oracle_request_error", call=call, error=str(e))
            raise UpstreamError("Oracle unreachable", detail=str(e), cause=e) from e

        text = "".join(
            block.text for block in response.content if isinstance(getattr(block, "text", None), str)
        )
        logger.debug("oracle_call_complete", call=call, model=self._model, chars=len(text))
        return text

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def extract_json(
        self,
        system: str,
        prompt: str = "",
        image: ImageInput | None = None,
        call: str = "extract",
    ) -> dict[str, Any]:
        """
        Run one structured-extraction call.

        Args:
            system: Instructions pinning the output schema.
            prompt: User text. Required unless an image is supplied.
            image: Optional photo of the item.
            call: Short label used in log events.

        Returns:
            The parsed JSON object, keys exactly as the oracle produced them.
        """
        if not prompt and image is None:
            raise ClientInputError("Missing question", detail="Either text or an image is required.")

        content: list[dict[str, Any]] = []
        if image is not None:
            image.validate_for_oracle()
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.media_type,
                    "data": base64.standard_b64encode(image.data).decode("utf-8"),
                },
            })
        if prompt:
            content.append({"type": "text", "text": prompt})

        raw = await self._create(system, [{"role": "user", "content": content}], call)
        parsed = parse_json_object(raw)
        logger.info("oracle_extract_complete", call=call, keys=sorted(parsed))
        return parsed

    async def complete(self, messages: list[dict[str, str]], system: str) -> str:
        """Forward a chat transcript and return the assistant's text."""
        return await self._create(system, messages, call="chat")
