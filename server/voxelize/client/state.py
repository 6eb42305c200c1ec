# ─────────────────────────────────────────────────────────────────────────────
# Client State — immutable snapshots owned by GenerationController
# ─────────────────────────────────────────────────────────────────────────────

import re
from dataclasses import dataclass
from enum import StrEnum


class AppStatus(StrEnum):
    """What the controller is doing right now."""

    idle = "idle"
    generating_image = "generating_image"
    generating_voxels = "generating_voxels"
    error = "error"


class ViewMode(StrEnum):
    image = "image"
    voxel = "voxel"


@dataclass(frozen=True)
class GenerationState:
    status: AppStatus = AppStatus.idle
    error_message: str = ""
    thinking_text: str | None = None  # only set while generating_voxels

    @property
    def is_busy(self) -> bool:
        return self.status in (AppStatus.generating_image, AppStatus.generating_voxels)


@dataclass(frozen=True)
class ContentState:
    """What the viewer shows. view_mode is voxel only when a scene exists."""

    image_payload: str | None = None  # data URL
    scene_markup: str | None = None
    scene_reference: str | None = None  # URL of a pre-built scene
    view_mode: ViewMode = ViewMode.image

    @property
    def has_scene(self) -> bool:
        return bool(self.scene_markup or self.scene_reference)


@dataclass
class UserContent:
    """The user's own result for this session; voxel is filled in place."""

    image: str
    voxel: str | None = None
    prompt: str = ""


@dataclass(frozen=True)
class Example:
    """Static gallery entry with a pre-built scene."""

    image_ref: str
    scene_ref: str
    alt_text: str


_BOLD_HEADING = re.compile(r"\*\*([^*]+)\*\*")


def reduce_thinking(buffer: str, fragment: str) -> tuple[str, str | None]:
    """Fold a thought fragment into the buffer.

    Returns the new buffer and the last complete ``**heading**`` seen so
    far (None until one has closed). Headings split across fragments are
    picked up once their closing ``**`` arrives.
    """
    buffer += fragment
    headings = _BOLD_HEADING.findall(buffer)
    if not headings:
        return buffer, None
    return buffer, headings[-1].strip() or None
