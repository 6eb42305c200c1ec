# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env")

    # ── Generative backend ───────────────────────────────────────────────────
    # SecretStr keeps the key out of logs, repr(), and model_dump().
    # Empty string = backend unconfigured; generation endpoints answer 500.
    gemini_api_key: SecretStr = SecretStr("")
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_scene_model: str = "gemini-3-flash-preview"
    include_thoughts: bool = True  # Ask the scene model for thought summaries

    # ── Security ─────────────────────────────────────────────────────────────
    # Comma-separated origins for CORS (e.g. "https://app.example.com,http://localhost:5173").
    # Empty string = deny all cross-origin requests.
    allowed_origins: str = ""

    # Outer per-IP cap on every route (slowapi format, e.g. "300/minute").
    rate_limit: str = "300/minute"
    rate_limit_enabled: bool = True

    # Per-endpoint sliding windows (the real generation gate).
    image_rate_limit: int = 5
    scene_rate_limit: int = 3
    rate_limit_window_seconds: float = 60.0

    # ── Limits ───────────────────────────────────────────────────────────────
    max_image_prompt_length: int = 500
    max_scene_prompt_length: int = 2000
    max_image_payload_chars: int = 15_000_000
    image_timeout_seconds: float = 120.0
    scene_timeout_seconds: float = 180.0

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
