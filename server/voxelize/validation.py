# ─────────────────────────────────────────────────────────────────────────────
# Input Validation — prompts, enum allow-lists, payload size
# ─────────────────────────────────────────────────────────────────────────────
# Shared by the client (fail fast) and the request handlers (enforcement).
#
# The denylist is a four-pattern heuristic against markup/script injection.
# It is not output encoding and not an XSS defence on its own; anything that
# renders a prompt back into HTML must still escape it.
# ─────────────────────────────────────────────────────────────────────────────

import re
from enum import StrEnum

from voxelize.exceptions import PayloadTooLargeError, PromptValidationError

ALLOWED_MIME_TYPES: tuple[str, ...] = (
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/heic",
    "image/heif",
)
DEFAULT_MIME_TYPE = "image/jpeg"

ASPECT_RATIOS: tuple[str, ...] = ("1:1", "3:4", "4:3", "16:9", "9:16")
DEFAULT_ASPECT_RATIO = "1:1"

MIN_PROMPT_LENGTH = 3
MAX_IMAGE_PROMPT_LENGTH = 500
MAX_SCENE_PROMPT_LENGTH = 2000
MAX_IMAGE_PAYLOAD_CHARS = 15_000_000

_SUSPICIOUS_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (r"<script", r"javascript:", r"on\w+=", r"eval\(")
)
_MARKUP_CHARS = re.compile(r"[<>]")


class PromptError(StrEnum):
    """Why a prompt was rejected."""

    empty_prompt = "empty_prompt"
    too_short = "too_short"
    too_long = "too_long"
    unsafe_content = "unsafe_content"


def is_prompt_safe(prompt: str) -> bool:
    """False when any denylisted pattern appears, regardless of case."""
    return not any(pattern.search(prompt) for pattern in _SUSPICIOUS_PATTERNS)


def validate_prompt(
    prompt: str,
    *,
    max_length: int = MAX_IMAGE_PROMPT_LENGTH,
    min_length: int = MIN_PROMPT_LENGTH,
) -> str:
    """Return the trimmed prompt or raise PromptValidationError.

    Rules run in order and the first failure wins: empty, too short,
    too long, unsafe content.
    """
    trimmed = prompt.strip()

    if not trimmed:
        raise PromptValidationError(PromptError.empty_prompt, "Prompt cannot be empty")
    if len(trimmed) < min_length:
        raise PromptValidationError(
            PromptError.too_short, f"Prompt must be at least {min_length} characters"
        )
    if len(trimmed) > max_length:
        raise PromptValidationError(
            PromptError.too_long, f"Prompt must be less than {max_length} characters"
        )
    if not is_prompt_safe(trimmed):
        raise PromptValidationError(PromptError.unsafe_content, "Invalid characters detected")
    return trimmed


def sanitize_prompt(prompt: str) -> str:
    """Trim and drop every '<' and '>' (character-wise, not tag-aware)."""
    return _MARKUP_CHARS.sub("", prompt.strip())


def allow_mime_type(value: object) -> str:
    """Pass allow-listed MIME types through; anything else becomes image/jpeg."""
    return value if isinstance(value, str) and value in ALLOWED_MIME_TYPES else DEFAULT_MIME_TYPE


def allow_aspect_ratio(value: object) -> str:
    """Pass allow-listed aspect ratios through; anything else becomes 1:1."""
    return value if isinstance(value, str) and value in ASPECT_RATIOS else DEFAULT_ASPECT_RATIO


def check_payload_size(image_base64: str, limit: int = MAX_IMAGE_PAYLOAD_CHARS) -> None:
    """Raise PayloadTooLargeError when the encoded image exceeds ``limit`` chars."""
    if len(image_base64) > limit:
        raise PayloadTooLargeError(len(image_base64), limit)
