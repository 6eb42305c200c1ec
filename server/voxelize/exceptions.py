# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────


import math
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class VoxelizeError(Exception):
    """Base exception for all Voxelize errors.

    ``message`` is always safe to show to the end user.
    """

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidRequestError(VoxelizeError):
    """Raised when a request body or field is unusable."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, status_code=400)


class PromptValidationError(InvalidRequestError):
    """Raised when a prompt fails length or content validation.

    ``reason`` is a ``voxelize.validation.PromptError`` member.
    """

    def __init__(self, reason: Any, message: str):
        self.reason = reason
        super().__init__(message)


class PayloadTooLargeError(VoxelizeError):
    """Raised when an inbound base64 image exceeds the size guard."""

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__("Payload too large", status_code=413)


class RateLimitedError(VoxelizeError):
    """Raised when a sliding-window limiter rejects a call.

    Carries retry_after_seconds so the caller knows exactly when to retry.
    The exception handler adds this as a Retry-After header on the 429.
    """

    def __init__(self, retry_after_seconds: float):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Rate limit exceeded. Please wait {self.wait_seconds} seconds.",
            status_code=429,
        )

    @property
    def wait_seconds(self) -> int:
        return math.ceil(self.retry_after_seconds)


class ConfigurationError(VoxelizeError):
    """Raised when the backend credential is missing."""

    def __init__(self, message: str = "Missing GEMINI_API_KEY"):
        super().__init__(message, status_code=500)


class UpstreamEmptyError(VoxelizeError):
    """Raised when the backend answered but produced nothing usable."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code)


class GenerationTimeoutError(VoxelizeError):
    """Raised when a backend call exceeds the server-side bound."""

    def __init__(self, operation: str, timeout_s: float):
        self.operation = operation
        super().__init__(
            f"Generation timed out after {timeout_s:g}s",
            status_code=504,
        )


class InternalServerError(VoxelizeError):
    """Catch-all for unexpected failures. Never carries the original detail."""

    def __init__(self) -> None:
        super().__init__("Internal Server Error", status_code=500)


# ── Client-side errors ───────────────────────────────────────────────────────


class ApiError(VoxelizeError):
    """The server answered with an error status, or the call timed out (408)."""

    TIMEOUT_STATUS = 408

    @property
    def timed_out(self) -> bool:
        return self.status_code == self.TIMEOUT_STATUS


class TransportError(VoxelizeError):
    """The request never produced a response (DNS, refused, reset...)."""

    def __init__(self, message: str = "Network request failed"):
        super().__init__(message, status_code=503)


class GenerationFailedError(VoxelizeError):
    """User-facing failure of a client generation call."""


# ── Handler registration ────────────────────────────────────────────────────


def _error_body(request: Request, message: str, error_type: str) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message, "type": error_type}
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["requestId"] = request_id
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise VoxelizeError subclasses; these handlers catch them
    and return structured JSON -- no inline try/except in endpoints.
    """

    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
        """429 with Retry-After header — tells client exactly when to retry."""
        logger.warning(
            "rate_limited_response",
            path=request.url.path,
            retry_after=exc.wait_seconds,
        )
        return JSONResponse(
            status_code=429,
            content=_error_body(request, exc.message, type(exc).__name__),
            headers={"Retry-After": str(exc.wait_seconds)},
        )

    @app.exception_handler(VoxelizeError)
    async def voxelize_error_handler(request: Request, exc: VoxelizeError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "voxelize_error",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
            status=exc.status_code,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, type(exc).__name__),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "Internal Server Error", "UnhandledError"),
        )
