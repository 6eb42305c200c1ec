"""Generative backends — Protocol interface and the Gemini implementation."""

from voxelize.models.protocol import ContentPart, GenerativeBackend

__all__ = [
    "ContentPart",
    "GenerativeBackend",
]
