# ─────────────────────────────────────────────────────────────────────────────
# Health Check Routes — liveness and readiness
# ─────────────────────────────────────────────────────────────────────────────
#   /health        → Liveness check. Returns 200 always.
#   /health/ready  → Readiness check. 503 while the backend credential is
#                    missing, so the platform withholds traffic.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from voxelize.schemas import LivenessResponse, ReadinessResponse

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness check — is the process alive? No deps, no I/O."""
    return LivenessResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness check — can this instance serve generation traffic?"""
    configured = request.app.state.generation_service.is_configured
    response = ReadinessResponse(
        status="ready" if configured else "not_ready",
        backend_configured=configured,
    )
    return JSONResponse(status_code=200 if configured else 503, content=response.model_dump())
