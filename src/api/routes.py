"""
Collectibles Appraiser — Request Surface

/api/ask     POST     text question -> appraisal payload
/api/upload  POST     multipart photo -> appraisal payload (+ file info)
/api/chat    POST     chat transcript -> {answer}
/api/hello   GET      health check

Handlers only validate input and translate it for the pipeline. The oracle
credential is checked before any input so a misconfigured deployment always
answers 500.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from src.config import Depth, settings
from src.errors import ClientInputError, ConfigurationError, PayloadTooLargeError
from src.models.appraisal import FileInfo
from src.oracle.client import ImageInput
from src.pipeline.orchestrator import AppraisalPipeline, build_prompt, run_chat

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["appraisal"])


class AskRequest(BaseModel):
    question: str | None = None
    context: str | None = None
    depth: Depth = Depth.FULL


class ChatRequest(BaseModel):
    messages: Any = None


def require_oracle_credential() -> None:
    if not settings.ANTHROPIC_API_KEY:
        raise ConfigurationError(
            "Server misconfig: ANTHROPIC_API_KEY missing",
            detail="The extraction oracle credential is not configured.",
        )


async def _json_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = await request.json()
    except ValueError as e:
        raise ClientInputError("Invalid JSON body", detail=str(e)) from e
    if not isinstance(body, dict):
        raise ClientInputError("Invalid JSON body", detail="Expected a JSON object.")
    return body


def _check_upload_size(size: int) -> None:
    if size > settings.MAX_UPLOAD_BYTES:
        raise PayloadTooLargeError(
            "File too large (~4.5MB limit).",
            detail=f"{size} bytes exceeds the {settings.MAX_UPLOAD_BYTES} byte size limit.",
        )


def _parse(model: type[BaseModel], body: dict[str, Any]) -> Any:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise ClientInputError("Invalid request body", detail=str(e.errors())) from e


# ============================================================
# ENDPOINTS
# ============================================================

@router.post("/ask")
async def ask(request: Request) -> dict[str, Any]:
    """Appraise an item described in free text."""
    require_oracle_credential()
    body: AskRequest = _parse(AskRequest, await _json_body(request))
    question = (body.question or "").strip()
    if not question:
        raise ClientInputError("Missing question", detail="`question` is required.")

    response = await AppraisalPipeline().run(
        prompt=build_prompt(question, body.context),
        depth=body.depth,
    )
    return response.to_payload()


@router.options("/upload", include_in_schema=False)
async def upload_preflight() -> Response:
    return Response(status_code=204)


@router.post("/upload")
async def upload(request: Request) -> dict[str, Any]:
    """Appraise an item from an uploaded photo (multipart field `file`)."""
    require_oracle_credential()

    async with request.form() as form:
        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise ClientInputError("No file provided", detail="Multipart field `file` is required.")

        # size is known from the spooled part; only read once it is within the cap
        if file.size is not None:
            _check_upload_size(file.size)
        data = await file.read()
        _check_upload_size(len(data))

        media_type = file.content_type or settings.DEFAULT_IMAGE_TYPE
        if media_type not in settings.ALLOWED_IMAGE_TYPES:
            raise ClientInputError(
                "Unsupported file type",
                detail=f"{media_type} is not one of {', '.join(settings.ALLOWED_IMAGE_TYPES)}",
            )

        file_info = FileInfo(name=file.filename or "", type=file.content_type or "", size=len(data))
    logger.info("upload_received", file_name=file_info.name, file_type=media_type, size=file_info.size)

    response = await AppraisalPipeline().run(
        image=ImageInput(data=data, media_type=media_type),
        file_info=file_info,
    )
    return response.to_payload()


@router.post("/chat")
async def chat(request: Request) -> dict[str, str]:
    """Forward a chat transcript to the oracle."""
    require_oracle_credential()
    body: ChatRequest = _parse(ChatRequest, await _json_body(request))
    answer = await run_chat(body.messages)
    return {"answer": answer}


@router.get("/hello")
async def hello() -> dict[str, Any]:
    """Health check."""
    return {"ok": True, "now": datetime.now(timezone.utc).isoformat()}
