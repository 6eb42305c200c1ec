# FastAPI application factory with lifespan management.
# Entrypoint: uvicorn voxelize.main:create_app --factory --host 0.0.0.0 --port 8080

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from voxelize.config import Settings, get_settings
from voxelize.exceptions import register_exception_handlers
from voxelize.logging_config import configure_logging
from voxelize.middleware import RequestContextMiddleware
from voxelize.models.protocol import GenerativeBackend
from voxelize.rate_limit import SlidingWindowRateLimiter, build_http_limiter
from voxelize.routes import generate, health
from voxelize.services.generation import GenerationService

logger = structlog.get_logger(__name__)


def _parse_retry_after(rate_limit: str) -> str:
    """Extract window duration from slowapi rate limit string."""
    windows = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}
    try:
        _, window = rate_limit.strip().split("/")
        return str(windows.get(window.strip(), 60))
    except (ValueError, AttributeError):
        return "60"


def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return a structured JSON 429 consistent with VoxelizeError responses.

    Synchronous: SlowAPIMiddleware only calls sync handlers and would
    otherwise fall back to its own plain response.
    """
    settings = get_settings()
    retry_after = _parse_retry_after(settings.rate_limit)
    logger.warning(
        "http_rate_limit_exceeded",
        path=request.url.path,
        method=request.method,
        detail=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={"error": f"Rate limit exceeded: {exc.detail}", "type": "RateLimitExceeded"},
        headers={"Retry-After": retry_after},
    )


def build_backend(settings: Settings) -> GenerativeBackend | None:
    """Gemini backend when GEMINI_API_KEY is set, else None (unconfigured)."""
    api_key = settings.gemini_api_key.get_secret_value()
    if not api_key:
        logger.warning("backend_unconfigured", reason="GEMINI_API_KEY env var not set")
        return None

    from voxelize.models.gemini import GeminiBackend

    return GeminiBackend(
        api_key,
        image_model=settings.gemini_image_model,
        scene_model=settings.gemini_scene_model,
        include_thoughts=settings.include_thoughts,
    )


def install_state(
    app: FastAPI, settings: Settings, backend: GenerativeBackend | None
) -> None:
    """Put the limiters and generation service on app.state."""
    app.state.settings = settings
    app.state.image_limiter = SlidingWindowRateLimiter(
        settings.image_rate_limit, settings.rate_limit_window_seconds
    )
    app.state.scene_limiter = SlidingWindowRateLimiter(
        settings.scene_rate_limit, settings.rate_limit_window_seconds
    )
    app.state.generation_service = GenerationService(backend, settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the backend and per-endpoint limiters once per process."""
    settings = get_settings()
    install_state(app, settings, build_backend(settings))
    logger.info(
        "startup_complete",
        backend_configured=app.state.generation_service.is_configured,
        image_rate_limit=settings.image_rate_limit,
        scene_rate_limit=settings.scene_rate_limit,
    )

    yield

    logger.info("shutdown")


def _parse_origins(allowed_origins: str) -> list[str]:
    """Parse comma-separated CORS origins. Empty string → deny all."""
    if not allowed_origins.strip():
        logger.warning(
            "cors_no_origins_configured",
            hint="Set ALLOWED_ORIGINS env var. Cross-origin requests will be rejected.",
        )
        return []
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app() -> FastAPI:
    """Application factory. Invoked by: uvicorn voxelize.main:create_app --factory"""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Voxelize",
        description="Rate-limited image and voxel-scene generation gateway",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiter = build_http_limiter(settings.rate_limit, enabled=settings.rate_limit_enabled)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Middleware order (Starlette applies in reverse): CORS → RequestContext → SlowAPI
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestContextMiddleware)

    origins = _parse_origins(settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router, tags=["generate"])

    return app
