# ─────────────────────────────────────────────────────────────────────────────
# Property-Based Tests — Hypothesis
# ─────────────────────────────────────────────────────────────────────────────
# Demonstrates: hypothesis for invariant testing on pure functions.
# ─────────────────────────────────────────────────────────────────────────────

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from voxelize.exceptions import PromptValidationError
from voxelize.pipeline.encoding import decode_base64, encode_bytes, split_data_url, to_data_url
from voxelize.pipeline.html import extract_html
from voxelize.validation import MAX_IMAGE_PROMPT_LENGTH, MIN_PROMPT_LENGTH, validate_prompt

# ─── Strategies (reusable random data generators) ────────────────────────────

# Prompts built from letters, digits and spaces can never hit the denylist.
plain_prompts = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "Zs")),
    max_size=700,
)

mime_types = st.sampled_from(["image/png", "image/jpeg", "image/webp", "image/heic", "image/heif"])


class TestValidatePromptProperties:
    @given(prompt=plain_prompts)
    @settings(max_examples=300)
    def test_accepts_exactly_the_length_band(self, prompt: str):
        trimmed = prompt.strip()
        in_band = MIN_PROMPT_LENGTH <= len(trimmed) <= MAX_IMAGE_PROMPT_LENGTH
        try:
            result = validate_prompt(prompt)
        except PromptValidationError:
            assert not in_band
        else:
            assert in_band
            assert result == trimmed

    @given(prefix=plain_prompts, marker=st.sampled_from(["<ScRiPt", "JAVASCRIPT:", "onClick=", "Eval("]))
    def test_denylist_is_case_insensitive(self, prefix: str, marker: str):
        prompt = f"abc {prefix[:100]} {marker}"
        try:
            validate_prompt(prompt)
        except PromptValidationError as exc:
            assert exc.reason == "unsafe_content"
        else:
            raise AssertionError("unsafe prompt accepted")


class TestEncodingProperties:
    @given(raw=st.binary(max_size=512), mime=mime_types)
    def test_data_url_round_trip(self, raw: bytes, mime: str):
        assume(raw)
        mime_type, data = split_data_url(to_data_url(encode_bytes(raw), mime))
        assert mime_type == mime
        assert decode_base64(data) == raw


class TestExtractHtmlProperties:
    @given(before=st.text(alphabet="abc .!\n", max_size=40), after=st.text(alphabet="abc .!\n", max_size=40))
    def test_bare_document_recovered_from_prose(self, before: str, after: str):
        document = "<!DOCTYPE html><html><body>voxels</body></html>"
        assert extract_html(f"{before}{document}{after}") == document
