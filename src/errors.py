"""
Collectibles Appraiser — Error Taxonomy

Every failure that can end a request maps to exactly one class here, and
every class carries the HTTP status it is surfaced with.

Optional enrichment sources (catalog adapters, web-search providers) never
raise into the pipeline: their absence is represented as None / [] instead.

Usage:
    from src.errors import ClientInputError, UpstreamError

    if not question:
        raise ClientInputError("Missing question")
"""

from __future__ import annotations

from typing import Any


class AppraisalError(Exception):
    """
    Base exception for all request-ending errors.

    Attributes:
        message: Short, stable error label (rendered as ``error``).
        detail: Machine-readable diagnostic text (rendered as ``detail``).
        status_code: HTTP status the request surface answers with.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail if detail is not None else message
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON error body."""
        return {"error": self.message, "detail": self.detail}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class ClientInputError(AppraisalError):
    """Missing or invalid request fields. Never retried."""
    status_code = 400


class PayloadTooLargeError(ClientInputError):
    """Uploaded file exceeds the size cap."""
    status_code = 413


class ConfigurationError(AppraisalError):
    """A required credential is absent: broken deployment, not broken dependency."""
    status_code = 500


class UpstreamError(AppraisalError):
    """Non-success, unreachable or malformed response from the extraction oracle."""
    status_code = 502


class UpstreamTimeout(AppraisalError):
    """The shared request deadline elapsed during a mandatory stage."""
    status_code = 504
