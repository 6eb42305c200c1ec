# ─────────────────────────────────────────────────────────────────────────────
# Backend Protocol — the generative model as an opaque async capability
# ─────────────────────────────────────────────────────────────────────────────
# Handlers only see ContentPart records, so any backend (Gemini, a fake in
# tests) is swappable as long as it satisfies GenerativeBackend.
# ─────────────────────────────────────────────────────────────────────────────

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ContentPart:
    """One part of a backend answer: text, inline image data, or a thought."""

    text: str | None = None
    inline_data: str | None = None  # base64
    mime_type: str | None = None
    thought: bool = False


@runtime_checkable
class GenerativeBackend(Protocol):
    """Produces images from prompts and scene markup from images."""

    @property
    def name(self) -> str: ...

    async def generate_image(self, prompt: str, aspect_ratio: str) -> list[ContentPart]: ...

    async def generate_scene(
        self, image_base64: str, mime_type: str, prompt: str
    ) -> list[ContentPart]: ...
