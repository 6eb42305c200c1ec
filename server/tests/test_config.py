# ─────────────────────────────────────────────────────────────────────────────
# Tests — Settings, app wiring helpers, logging
# ─────────────────────────────────────────────────────────────────────────────

import logging

import pytest
import structlog

from voxelize.config import Settings
from voxelize.logging_config import bind_request_context, configure_logging
from voxelize.main import _parse_origins, _parse_retry_after, build_backend
from voxelize.models.gemini import GeminiBackend


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        settings = Settings(_env_file=None)
        assert settings.image_rate_limit == 5
        assert settings.scene_rate_limit == 3
        assert settings.rate_limit_window_seconds == 60.0
        assert settings.max_image_payload_chars == 15_000_000
        assert settings.gemini_api_key.get_secret_value() == ""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "sk-live")
        monkeypatch.setenv("SCENE_RATE_LIMIT", "7")
        settings = Settings(_env_file=None)
        assert settings.scene_rate_limit == 7
        assert "sk-live" not in repr(settings)


class TestBuildBackend:
    def test_none_without_key(self):
        assert build_backend(Settings(_env_file=None, gemini_api_key="")) is None

    def test_gemini_with_key(self):
        backend = build_backend(Settings(_env_file=None, gemini_api_key="test-key"))
        assert isinstance(backend, GeminiBackend)


class TestWiringHelpers:
    @pytest.mark.parametrize(
        ("limit", "expected"),
        [("300/minute", "60"), ("10/second", "1"), ("5/hour", "3600"), ("garbage", "60")],
    )
    def test_parse_retry_after(self, limit, expected):
        assert _parse_retry_after(limit) == expected

    def test_parse_origins(self):
        assert _parse_origins(" https://a.test , ,https://b.test") == ["https://a.test", "https://b.test"]
        assert _parse_origins("  ") == []


class TestLogging:
    def test_configure_sets_levels(self):
        configure_logging(log_level="DEBUG", json_output=True)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_bind_request_context_replaces_previous(self):
        bind_request_context(request_id="first", extra="x")
        bind_request_context(request_id="second")
        assert structlog.contextvars.get_contextvars() == {"request_id": "second"}
