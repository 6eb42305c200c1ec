# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

import asyncio
import os

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from voxelize.config import Settings
from voxelize.main import create_app, install_state
from voxelize.models.protocol import ContentPart

_TEST_ENV = {
    "LOG_JSON": "false",
    "LOG_LEVEL": "DEBUG",
    "ALLOWED_ORIGINS": "*",  # Tests need permissive CORS (prod defaults to deny-all)
}


class FakeBackend:
    """In-memory GenerativeBackend that records every call.

    Set ``image_parts`` / ``scene_parts`` to shape the answer, ``error``
    to make calls raise, or ``delay`` to make them slow.
    """

    def __init__(self) -> None:
        self.image_parts: list[ContentPart] = [ContentPart(inline_data="AAAA", mime_type="image/png")]
        self.scene_parts: list[ContentPart] = [ContentPart(text="<!DOCTYPE html><html></html>")]
        self.error: Exception | None = None
        self.delay: float = 0.0
        self.image_calls: list[tuple[str, str]] = []
        self.scene_calls: list[tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def generate_image(self, prompt: str, aspect_ratio: str) -> list[ContentPart]:
        self.image_calls.append((prompt, aspect_ratio))
        return await self._answer(self.image_parts)

    async def generate_scene(
        self, image_base64: str, mime_type: str, prompt: str
    ) -> list[ContentPart]:
        self.scene_calls.append((image_base64, mime_type, prompt))
        return await self._answer(self.scene_parts)

    async def _answer(self, parts: list[ContentPart]) -> list[ContentPart]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return parts


def build_test_app(**env: str) -> FastAPI:
    """create_app() under test-safe env vars, with the settings cache reset."""
    from voxelize.config import get_settings

    get_settings.cache_clear()
    overrides = {**_TEST_ENV, **env}
    for k, v in overrides.items():
        os.environ[k] = v
    try:
        return create_app()
    finally:
        for k in overrides:
            os.environ.pop(k, None)
        get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing — fake key, console logs."""
    return Settings(
        gemini_api_key="test-key",
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def app(test_settings: Settings, fake_backend: FakeBackend) -> FastAPI:
    """App with the lifespan's state replaced by test doubles.

    TestClient is used without a context manager, so the lifespan (which
    would build a real Gemini backend) never runs.
    """
    app = build_test_app()
    install_state(app, test_settings, fake_backend)
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """FastAPI TestClient over the fake backend."""
    return TestClient(app)


@pytest.fixture
def make_app(test_settings: Settings):
    """Factory: build_test_app(**env) wired to a fresh FakeBackend."""

    def _make(**env: str) -> FastAPI:
        app = build_test_app(**env)
        install_state(app, test_settings, FakeBackend())
        return app

    return _make
