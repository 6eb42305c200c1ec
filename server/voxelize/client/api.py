# ─────────────────────────────────────────────────────────────────────────────
# Voxelize API Client — client-side limits + bounded single-attempt calls
# ─────────────────────────────────────────────────────────────────────────────
# Every call: client limiter (fail fast) → POST under asyncio.timeout →
# classify. Exactly one attempt; retrying is the caller's decision.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from voxelize.exceptions import (
    ApiError,
    GenerationFailedError,
    InvalidRequestError,
    RateLimitedError,
    TransportError,
    UpstreamEmptyError,
)
from voxelize.pipeline.encoding import encode_bytes, split_data_url, to_data_url
from voxelize.pipeline.html import extract_html
from voxelize.pipeline.prompt_templates import VOXEL_PROMPT, build_image_prompt
from voxelize.rate_limit import SlidingWindowRateLimiter
from voxelize.validation import DEFAULT_ASPECT_RATIO

logger = structlog.get_logger(__name__)

IMAGE_ENDPOINT = "/generate-image"
VOXEL_ENDPOINT = "/generate-voxel"

IMAGE_TIMEOUT_SECONDS = 120.0
VOXEL_TIMEOUT_SECONDS = 180.0

_TIMEOUT_MESSAGE = "Request timed out. Please try again."
_FALLBACK_MESSAGE = "Request failed"


def parse_error_message(response: httpx.Response) -> str:
    """Best human-readable message from an error response.

    JSON ``error`` / ``message`` field, then the plain-text body, then the
    status reason phrase. Backends disagree on error shapes, so all three
    tiers stay.
    """
    fallback = response.reason_phrase or _FALLBACK_MESSAGE
    if "application/json" in response.headers.get("content-type", ""):
        try:
            payload = response.json()
        except ValueError:
            return fallback
        if isinstance(payload, dict):
            for key in ("error", "message"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value
        return fallback
    return response.text or fallback


def classify_failure(exc: Exception, prefix: str, generic: str) -> Exception:
    """Map any failure onto the message the user should see.

    Rate limits and invalid input keep their own message; server and
    timeout errors are prefixed; anything else becomes ``generic``.
    """
    if isinstance(exc, RateLimitedError | InvalidRequestError):
        return exc
    if isinstance(exc, ApiError | UpstreamEmptyError):
        return GenerationFailedError(f"{prefix}: {exc.message}", exc.status_code)
    return GenerationFailedError(generic)


class VoxelizeClient:
    """Async client for the two generation endpoints.

    Owns one sliding-window limiter per endpoint (image 5/min, voxel 3/min
    by default), keyed by endpoint path.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        http: httpx.AsyncClient | None = None,
        image_limiter: SlidingWindowRateLimiter | None = None,
        voxel_limiter: SlidingWindowRateLimiter | None = None,
        image_timeout: float = IMAGE_TIMEOUT_SECONDS,
        voxel_timeout: float = VOXEL_TIMEOUT_SECONDS,
    ) -> None:
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=None)
        self._image_limiter = image_limiter or SlidingWindowRateLimiter(5, 60.0)
        self._voxel_limiter = voxel_limiter or SlidingWindowRateLimiter(3, 60.0)
        self._image_timeout = image_timeout
        self._voxel_timeout = voxel_timeout

    async def __aenter__(self) -> VoxelizeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Bounded call wrapper ────────────────────────────────────────────────

    async def _send(self, method: str, url: str, timeout: float, **kwargs: Any) -> httpx.Response:
        """Issue one request; the timeout scope is always exited with the call."""
        try:
            async with asyncio.timeout(timeout):
                return await self._http.request(method, url, **kwargs)
        except (TimeoutError, httpx.TimeoutException):
            raise ApiError(_TIMEOUT_MESSAGE, ApiError.TIMEOUT_STATUS) from None
        except httpx.HTTPError as exc:
            raise TransportError() from exc

    async def call(self, endpoint: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        """POST ``payload`` as JSON and return the decoded object body."""
        response = await self._send("POST", endpoint, timeout, json=payload)
        if not response.is_success:
            raise ApiError(parse_error_message(response), response.status_code)
        try:
            body = response.json()
        except ValueError:
            raise ApiError("Malformed response from server", response.status_code) from None
        if not isinstance(body, dict):
            raise ApiError("Malformed response from server", response.status_code)
        return body

    # ── Operations ──────────────────────────────────────────────────────────

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
        optimize: bool = True,
    ) -> str:
        """Generate an image and return it as a data URL."""
        try:
            self._image_limiter.enforce(IMAGE_ENDPOINT)
            body = await self.call(
                IMAGE_ENDPOINT,
                {"prompt": build_image_prompt(prompt, optimize), "aspectRatio": aspect_ratio},
                self._image_timeout,
            )
            data = body.get("data")
            if not isinstance(data, str) or not data:
                raise UpstreamEmptyError("No image generated.")
            mime_type = body.get("mimeType")
            return to_data_url(data, mime_type if isinstance(mime_type, str) and mime_type else "image/png")
        except Exception as exc:
            logger.error(
                "image_generation_failed",
                aspect_ratio=aspect_ratio,
                optimize=optimize,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            failure = classify_failure(
                exc, "Image generation failed", "Failed to generate image. Please try again."
            )
            if failure is exc:
                raise
            raise failure from exc

    async def generate_voxel_scene(
        self,
        image: str,
        on_thought: Callable[[str], None] | None = None,
    ) -> str:
        """Turn an image (data URL or bare base64) into scene markup.

        Thought fragments returned by the server are replayed, in order,
        through ``on_thought`` before the markup is returned.
        """
        mime_type, data = split_data_url(image)
        try:
            self._voxel_limiter.enforce(VOXEL_ENDPOINT)
            body = await self.call(
                VOXEL_ENDPOINT,
                {"imageBase64": data, "mimeType": mime_type, "prompt": VOXEL_PROMPT},
                self._voxel_timeout,
            )
            thoughts = body.get("thoughts")
            if on_thought is not None and isinstance(thoughts, list):
                for thought in thoughts:
                    if isinstance(thought, str):
                        on_thought(thought)

            raw_html = body.get("html")
            html = extract_html(raw_html) if isinstance(raw_html, str) else ""
            if not html:
                raise UpstreamEmptyError("No scene generated.")
            return html
        except Exception as exc:
            logger.error(
                "voxel_generation_failed",
                mime_type=mime_type,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            failure = classify_failure(
                exc,
                "Voxel scene generation failed",
                "Failed to generate voxel scene. Please try again.",
            )
            if failure is exc:
                raise
            raise failure from exc

    async def fetch_asset(self, ref: str) -> str:
        """GET a static image (e.g. an example tile) and return it as a data URL."""
        response = await self._send("GET", ref, self._image_timeout)
        if not response.is_success:
            raise ApiError(
                f"Failed to load example image: {response.reason_phrase}", response.status_code
            )
        mime_type = response.headers.get("content-type", "image/png").split(";")[0].strip()
        return to_data_url(encode_bytes(response.content), mime_type or "image/png")
