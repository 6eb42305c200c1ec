# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────
# Wire names are camelCase (aspectRatio, imageBase64, mimeType). Request
# fields coerce wrong-typed values to their default instead of failing, so
# a body like {"prompt": 42} reaches prompt validation as "".
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from voxelize.validation import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_MIME_TYPE,
    allow_aspect_ratio,
    allow_mime_type,
)


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LenientRequest(WireModel):
    """Replace any non-string field value with the field's default."""

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        if isinstance(v, str):
            return v
        return cls.model_fields[info.field_name].default  # type: ignore[index]


class ImageRequest(LenientRequest):
    """Body of POST /generate-image."""

    prompt: str = ""
    aspect_ratio: str = DEFAULT_ASPECT_RATIO

    @field_validator("aspect_ratio")
    @classmethod
    def aspect_ratio_allowed(cls, v: str) -> str:
        return allow_aspect_ratio(v)


class SceneRequest(LenientRequest):
    """Body of POST /generate-voxel."""

    image_base64: str = ""
    mime_type: str = DEFAULT_MIME_TYPE
    prompt: str = ""

    @field_validator("mime_type")
    @classmethod
    def mime_type_allowed(cls, v: str) -> str:
        return allow_mime_type(v)


class ImageResponse(WireModel):
    """Generated image as raw base64 plus its MIME type."""

    data: str = Field(..., min_length=1, description="Base64-encoded image bytes")
    mime_type: str = "image/png"


class SceneResponse(WireModel):
    """Generated scene markup and optional thought summaries."""

    html: str = Field(..., min_length=1, description="Self-contained HTML document")
    thoughts: list[str] | None = None


class LivenessResponse(BaseModel):
    """Liveness check — minimal, near-zero cost."""

    status: str = "ok"


class ReadinessResponse(BaseModel):
    """Readiness check — can the instance serve generation traffic?"""

    status: str  # "ready" or "not_ready"
    backend_configured: bool
