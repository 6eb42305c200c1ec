# ─────────────────────────────────────────────────────────────────────────────
# Gemini Backend — google-genai async client
# ─────────────────────────────────────────────────────────────────────────────
# Implements the GenerativeBackend protocol from models/protocol.py.
#
# Image: text prompt → inline image part (response_modalities=["IMAGE"]).
# Scene: inline image + instruction → text parts holding an HTML document,
#        plus thought-summary parts when include_thoughts is on.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

import structlog
from google import genai
from google.genai import types

from voxelize.models.protocol import ContentPart
from voxelize.pipeline.encoding import decode_base64, encode_bytes

logger = structlog.get_logger(__name__)


def parts_from_response(response: Any) -> list[ContentPart]:
    """Flatten the first candidate of a GenerateContentResponse into ContentParts."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    raw_parts = getattr(content, "parts", None) or []

    parts: list[ContentPart] = []
    for raw in raw_parts:
        inline = getattr(raw, "inline_data", None)
        data = getattr(inline, "data", None) if inline is not None else None
        if isinstance(data, bytes | bytearray):
            data = encode_bytes(bytes(data))
        parts.append(
            ContentPart(
                text=getattr(raw, "text", None),
                inline_data=data or None,
                mime_type=getattr(inline, "mime_type", None) if inline is not None else None,
                thought=bool(getattr(raw, "thought", False)),
            )
        )
    return parts


class GeminiBackend:
    """Gemini wrapper for image and voxel-scene generation.

    Satisfies the ``GenerativeBackend`` protocol defined in
    ``voxelize.models.protocol``. One ``genai.Client`` is shared across
    requests; every call goes through its ``aio`` surface.
    """

    def __init__(
        self,
        api_key: str,
        *,
        image_model: str,
        scene_model: str,
        include_thoughts: bool = True,
    ) -> None:
        self._client = genai.Client(api_key=api_key)
        self._image_model = image_model
        self._scene_model = scene_model
        self._include_thoughts = include_thoughts
        logger.info("gemini_backend_ready", image_model=image_model, scene_model=scene_model)

    @property
    def name(self) -> str:
        return "gemini"

    async def generate_image(self, prompt: str, aspect_ratio: str) -> list[ContentPart]:
        response = await self._client.aio.models.generate_content(
            model=self._image_model,
            contents=types.Content(role="user", parts=[types.Part.from_text(text=prompt)]),
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE"],
                image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
            ),
        )
        return parts_from_response(response)

    async def generate_scene(
        self, image_base64: str, mime_type: str, prompt: str
    ) -> list[ContentPart]:
        image = types.Part.from_bytes(data=decode_base64(image_base64), mime_type=mime_type)
        config = None
        if self._include_thoughts:
            config = types.GenerateContentConfig(
                thinking_config=types.ThinkingConfig(include_thoughts=True),
            )
        response = await self._client.aio.models.generate_content(
            model=self._scene_model,
            contents=types.Content(role="user", parts=[image, types.Part.from_text(text=prompt)]),
            config=config,
        )
        return parts_from_response(response)
