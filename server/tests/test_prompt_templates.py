# ─────────────────────────────────────────────────────────────────────────────
# Tests — Prompt Templates
# ─────────────────────────────────────────────────────────────────────────────

import pytest

from voxelize.exceptions import PromptValidationError
from voxelize.pipeline.prompt_templates import (
    IMAGE_SYSTEM_PROMPT,
    VOXEL_PROMPT,
    build_image_prompt,
)
from voxelize.validation import PromptError, is_prompt_safe, validate_prompt


class TestBuildImagePrompt:
    """Tests for build_image_prompt()."""

    def test_wraps_subject(self):
        result = build_image_prompt("a red fox")
        assert result.startswith(IMAGE_SYSTEM_PROMPT)
        assert result.endswith("Subject: a red fox")

    def test_unoptimized_is_untouched(self):
        assert build_image_prompt("a red fox", optimize=False) == "a red fox"

    def test_wrapped_prompt_still_validates(self):
        """The server re-validates what the client sends, wrapper included."""
        subject = "s" * 400
        assert validate_prompt(build_image_prompt(subject)) == build_image_prompt(subject)


class TestVoxelPrompt:
    def test_mentions_threejs_single_page(self):
        assert "threejs" in VOXEL_PROMPT
        assert "single-page" in VOXEL_PROMPT

    def test_passes_denylist(self):
        assert is_prompt_safe(VOXEL_PROMPT)
        assert validate_prompt(VOXEL_PROMPT, max_length=2000) == VOXEL_PROMPT


class TestWrappedPromptCap:
    """The client validates the bare subject; the server validates the wrapped one."""

    def test_long_subject_passes_client_but_not_server(self):
        subject = "s" * 480
        assert validate_prompt(subject) == subject
        with pytest.raises(PromptValidationError) as exc_info:
            validate_prompt(build_image_prompt(subject))
        assert exc_info.value.reason is PromptError.too_long

    def test_unwrapped_subject_has_no_gap(self):
        subject = "s" * 480
        assert validate_prompt(build_image_prompt(subject, optimize=False)) == subject
