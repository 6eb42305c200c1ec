# Server-side generation service: validate → call backend (bounded) → extract.
# Rate limiting and body parsing happen in the route before this is reached.


import asyncio
from collections.abc import Awaitable

import structlog

from voxelize.config import Settings
from voxelize.exceptions import (
    GenerationTimeoutError,
    InternalServerError,
    InvalidRequestError,
    UpstreamEmptyError,
    VoxelizeError,
)
from voxelize.models.protocol import ContentPart, GenerativeBackend
from voxelize.schemas import ImageRequest, ImageResponse, SceneRequest, SceneResponse
from voxelize.validation import check_payload_size, sanitize_prompt, validate_prompt

logger = structlog.get_logger(__name__)


class GenerationService:
    """Re-validates requests at the trust boundary and shapes backend answers."""

    def __init__(self, backend: GenerativeBackend | None, settings: Settings) -> None:
        self._backend = backend
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        return self._backend is not None

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        """Prompt → first inline image part."""
        prompt = validate_prompt(
            request.prompt, max_length=self._settings.max_image_prompt_length
        )
        parts = await self._call(
            "image",
            self._require_backend().generate_image(sanitize_prompt(prompt), request.aspect_ratio),
            self._settings.image_timeout_seconds,
        )

        image = next((p for p in parts if p.inline_data), None)
        if image is None:
            logger.warning(
                "upstream_no_image",
                parts=len(parts),
                text_preview=_text_preview(parts),
            )
            raise UpstreamEmptyError("No image generated", status_code=500)

        logger.info("image_generated", mime_type=image.mime_type, chars=len(image.inline_data or ""))
        return ImageResponse(data=image.inline_data, mime_type=image.mime_type or "image/png")

    async def generate_scene(self, request: SceneRequest) -> SceneResponse:
        """Image + instruction → concatenated HTML text parts (+ thoughts)."""
        if not request.image_base64:
            raise InvalidRequestError("Invalid request")
        prompt = validate_prompt(
            request.prompt, max_length=self._settings.max_scene_prompt_length
        )
        check_payload_size(request.image_base64, self._settings.max_image_payload_chars)

        parts = await self._call(
            "scene",
            self._require_backend().generate_scene(request.image_base64, request.mime_type, prompt),
            self._settings.scene_timeout_seconds,
        )

        html = "".join(p.text for p in parts if p.text and not p.thought)
        thoughts = [p.text for p in parts if p.text and p.thought]
        if not html.strip():
            logger.warning("upstream_no_html", parts=len(parts), thoughts=len(thoughts))
            raise UpstreamEmptyError("Upstream response contained no HTML", status_code=502)

        logger.info("scene_generated", html_chars=len(html), thoughts=len(thoughts))
        return SceneResponse(html=html, thoughts=thoughts or None)

    def _require_backend(self) -> GenerativeBackend:
        if self._backend is None:
            # Routes check is_configured first; reaching here is a wiring bug.
            raise InternalServerError()
        return self._backend

    async def _call(
        self, operation: str, call: Awaitable[list[ContentPart]], timeout_s: float
    ) -> list[ContentPart]:
        """Await a backend call under a timeout, normalizing every failure."""
        try:
            return await asyncio.wait_for(call, timeout=timeout_s)
        except TimeoutError:
            logger.error("backend_timeout", operation=operation, timeout_s=timeout_s)
            raise GenerationTimeoutError(operation, timeout_s) from None
        except VoxelizeError:
            raise
        except Exception as exc:
            logger.error(
                "backend_call_failed",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise InternalServerError() from exc


def _text_preview(parts: list[ContentPart], limit: int = 200) -> str:
    return "".join(p.text or "" for p in parts)[:limit]
