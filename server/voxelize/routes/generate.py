# ─────────────────────────────────────────────────────────────────────────────
# POST /generate-image, POST /generate-voxel — generation endpoints (THIN)
# ─────────────────────────────────────────────────────────────────────────────
# Order per request: method (router) → credential (dependency) → client
# address → sliding-window limit → JSON body → coercion → service.
# The body is read by hand so a rate-limited caller never gets it parsed.
# ─────────────────────────────────────────────────────────────────────────────


import json
from typing import Any

from fastapi import APIRouter, Depends, Request

from voxelize.dependencies import (
    get_generation_service,
    get_image_limiter,
    get_scene_limiter,
)
from voxelize.exceptions import InvalidRequestError
from voxelize.rate_limit import SlidingWindowRateLimiter, client_address
from voxelize.schemas import ImageRequest, ImageResponse, SceneRequest, SceneResponse
from voxelize.services.generation import GenerationService

router = APIRouter()


async def read_json_object(request: Request) -> dict[str, Any]:
    """Parse the body as JSON. Empty → {}, non-object → {}, malformed → 400."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise InvalidRequestError("Invalid JSON") from None
    return body if isinstance(body, dict) else {}


@router.post("/generate-image", response_model=ImageResponse)
async def generate_image(
    request: Request,
    service: GenerationService = Depends(get_generation_service),
    limiter: SlidingWindowRateLimiter = Depends(get_image_limiter),
) -> ImageResponse:
    """Generate an image from a text prompt.

    Per-address sliding window (5/min by default) guards backend cost.
    Errors are exceptions. Logic is in the service.
    """
    limiter.enforce(client_address(request))
    body = ImageRequest.model_validate(await read_json_object(request))
    return await service.generate_image(body)


@router.post("/generate-voxel", response_model=SceneResponse, response_model_exclude_none=True)
async def generate_voxel(
    request: Request,
    service: GenerationService = Depends(get_generation_service),
    limiter: SlidingWindowRateLimiter = Depends(get_scene_limiter),
) -> SceneResponse:
    """Turn an uploaded image into a self-contained voxel scene document.

    Per-address sliding window (3/min by default); 413 above 15M base64 chars.
    """
    limiter.enforce(client_address(request))
    body = SceneRequest.model_validate(await read_json_object(request))
    return await service.generate_scene(body)
