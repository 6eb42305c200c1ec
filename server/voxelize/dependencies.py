# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# No global variables. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from voxelize.exceptions import ConfigurationError
from voxelize.rate_limit import SlidingWindowRateLimiter
from voxelize.services.generation import GenerationService


def get_generation_service(request: Request) -> GenerationService:
    """Inject a configured GenerationService; missing credential → 500."""
    service: GenerationService = request.app.state.generation_service
    if not service.is_configured:
        raise ConfigurationError()
    return service


def get_image_limiter(request: Request) -> SlidingWindowRateLimiter:
    """Inject the per-address limiter for /generate-image."""
    return request.app.state.image_limiter  # type: ignore[no-any-return]


def get_scene_limiter(request: Request) -> SlidingWindowRateLimiter:
    """Inject the per-address limiter for /generate-voxel."""
    return request.app.state.scene_limiter  # type: ignore[no-any-return]
