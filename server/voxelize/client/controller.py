# ─────────────────────────────────────────────────────────────────────────────
# Generation Controller — the single source of truth for the session
# ─────────────────────────────────────────────────────────────────────────────
#
#   idle | error ──start image──▶ generating_image ──ok──▶ idle
#                                                 └─fail─▶ error
#   idle | error ──voxelize────▶ generating_voxels ─ok──▶ idle (view = voxel)
#                                  ▲     │        └─fail─▶ error
#                                  └─────┘ thought fragment
#
# Every start transition checks its guard and moves to a generating state
# before the first await, so two generations can never overlap on one loop.
# Starting while busy is a no-op. A failure leaves content exactly as it was.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Literal

import structlog

from voxelize.client.api import VoxelizeClient
from voxelize.client.examples import EXAMPLES
from voxelize.client.state import (
    AppStatus,
    ContentState,
    Example,
    GenerationState,
    UserContent,
    ViewMode,
    reduce_thinking,
)
from voxelize.exceptions import InvalidRequestError, PromptValidationError, VoxelizeError
from voxelize.pipeline.image_ops import DEFAULT_MAX_WIDTH, DEFAULT_QUALITY, compress_image
from voxelize.pipeline.prompt_templates import VOXEL_PROMPT, build_image_prompt
from voxelize.validation import (
    ALLOWED_MIME_TYPES,
    DEFAULT_ASPECT_RATIO,
    allow_aspect_ratio,
    sanitize_prompt,
    validate_prompt,
)

logger = structlog.get_logger(__name__)

USER_TILE = "user"
SelectedTile = int | Literal["user"] | None
Resize = Callable[[str, int, float], str]

UNEXPECTED_ERROR = "An unexpected error occurred."
INVALID_FILE_TYPE = "Invalid file type. Please upload PNG, JPEG, WEBP, HEIC, or HEIF."


class GenerationController:
    """Owns GenerationState and ContentState; the only place they change.

    ``resize`` is the image compression transform (Pillow by default) and
    ``scene_transforms`` post-process generated markup, in order.
    """

    def __init__(
        self,
        client: VoxelizeClient,
        *,
        examples: Sequence[Example] = EXAMPLES,
        resize: Resize | None = compress_image,
        scene_transforms: Sequence[Callable[[str], str]] = (),
        use_optimization: bool = True,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
    ) -> None:
        self._client = client
        self._examples = tuple(examples)
        self._resize = resize
        self._scene_transforms = tuple(scene_transforms)
        self.use_optimization = use_optimization
        self._aspect_ratio = allow_aspect_ratio(aspect_ratio)

        self._generation = GenerationState()
        self._content = ContentState()
        self._user_content: UserContent | None = None
        self._selected_tile: SelectedTile = None
        self._show_generator = False
        self._thought_buffer = ""
        self._epoch = 0  # bumped by every start; stale loads compare against it
        self.prompt = ""

    # ── Read-only views ─────────────────────────────────────────────────────

    @property
    def generation(self) -> GenerationState:
        return self._generation

    @property
    def content(self) -> ContentState:
        return self._content

    @property
    def user_content(self) -> UserContent | None:
        return self._user_content

    @property
    def examples(self) -> tuple[Example, ...]:
        return self._examples

    @property
    def selected_tile(self) -> SelectedTile:
        return self._selected_tile

    @property
    def show_generator(self) -> bool:
        return self._show_generator

    @property
    def is_loading(self) -> bool:
        return self._generation.is_busy

    @property
    def aspect_ratio(self) -> str:
        return self._aspect_ratio

    @aspect_ratio.setter
    def aspect_ratio(self, value: str) -> None:
        self._aspect_ratio = allow_aspect_ratio(value)

    @property
    def display_prompt(self) -> str:
        """The instruction currently being sent, for the loading overlay."""
        status = self._generation.status
        if status is AppStatus.generating_image:
            return build_image_prompt(self.prompt, self.use_optimization)
        if status is AppStatus.generating_voxels:
            return VOXEL_PROMPT
        return ""

    # ── Image generation ────────────────────────────────────────────────────

    async def generate_image(self, prompt: str) -> None:
        """idle|error → generating_image → idle|error."""
        if self.is_loading:
            logger.info("generation_ignored", reason="busy", status=str(self._generation.status))
            return

        self.prompt = prompt
        # Checks the bare subject. With use_optimization the server checks the
        # wrapped prompt against the same cap, so subjects near 500 chars pass
        # here and are rejected there.
        try:
            validate_prompt(prompt)
        except PromptValidationError as exc:
            self._fail(exc)
            return

        sanitized = sanitize_prompt(prompt)
        self._epoch += 1
        self._generation = GenerationState(status=AppStatus.generating_image)
        self._content = ContentState(view_mode=ViewMode.image)

        try:
            image = await self._client.generate_image(
                sanitized, self._aspect_ratio, self.use_optimization
            )
            image = await self._maybe_resize(image)
        except Exception as exc:
            self._fail(exc)
            return

        self._user_content = UserContent(image=image, voxel=None, prompt=sanitized)
        self._content = ContentState(image_payload=image, view_mode=ViewMode.image)
        self._selected_tile = USER_TILE
        self._show_generator = False
        self._generation = GenerationState(status=AppStatus.idle)
        logger.info("image_ready", aspect_ratio=self._aspect_ratio)

    async def upload_image(self, data_url: str, mime_type: str) -> None:
        """Adopt a user-supplied image as the session's content."""
        if self.is_loading:
            return
        if mime_type not in ALLOWED_MIME_TYPES:
            self._fail(InvalidRequestError(INVALID_FILE_TYPE))
            return

        epoch = self._begin_load()
        try:
            image = await self._maybe_resize(data_url)
        except Exception as exc:
            if self._is_current(epoch, "upload"):
                self._fail(exc)
            return
        if not self._is_current(epoch, "upload"):
            return

        self._user_content = UserContent(image=image, voxel=None, prompt="")
        self._content = ContentState(image_payload=image, view_mode=ViewMode.image)
        self._selected_tile = USER_TILE
        self._show_generator = False
        self._generation = GenerationState(status=AppStatus.idle)

    # ── Voxelization ────────────────────────────────────────────────────────

    async def voxelize(self) -> None:
        """idle|error → generating_voxels → idle|error. Needs an image."""
        image = self._content.image_payload
        if self.is_loading or not image:
            return

        self._epoch += 1
        self._generation = GenerationState(status=AppStatus.generating_voxels)
        self._content = replace(
            self._content, scene_markup=None, scene_reference=None, view_mode=ViewMode.image
        )
        self._thought_buffer = ""

        try:
            markup = await self._client.generate_voxel_scene(image, on_thought=self.receive_thought)
            for transform in self._scene_transforms:
                markup = transform(markup)
        except Exception as exc:
            self._fail(exc)
            return

        self._content = replace(
            self._content, scene_markup=markup, scene_reference=None, view_mode=ViewMode.voxel
        )
        if self._selected_tile == USER_TILE and self._user_content is not None:
            self._user_content.voxel = markup
        self._generation = GenerationState(status=AppStatus.idle)
        logger.info("scene_ready", chars=len(markup))

    def receive_thought(self, fragment: str) -> None:
        """Fold an incremental thought fragment into thinking_text."""
        if self._generation.status is not AppStatus.generating_voxels:
            return
        self._thought_buffer, heading = reduce_thinking(self._thought_buffer, fragment)
        if heading is not None and heading != self._generation.thinking_text:
            self._generation = replace(self._generation, thinking_text=heading)

    # ── Gallery / navigation ────────────────────────────────────────────────

    async def select_example(self, index: int) -> None:
        """Show a gallery example: its image plus its pre-built scene."""
        if self.is_loading:
            return
        if not 0 <= index < len(self._examples):
            raise InvalidRequestError(f"Unknown example: {index}")
        example = self._examples[index]

        self._selected_tile = index
        self._show_generator = False
        self._generation = replace(self._generation, error_message="", thinking_text=None)

        epoch = self._begin_load()
        try:
            image = await self._client.fetch_asset(example.image_ref)
            image = await self._maybe_resize(image)
        except Exception as exc:
            if self._is_current(epoch, "example"):
                self._fail(exc)
            return
        if not self._is_current(epoch, "example"):
            return

        self._content = ContentState(
            image_payload=image, scene_reference=example.scene_ref, view_mode=ViewMode.voxel
        )
        self._generation = GenerationState(status=AppStatus.idle)

    def select_user_tile(self) -> None:
        """Switch to the user's own content, or toggle the generator panel."""
        if self.is_loading:
            return

        if self._selected_tile == USER_TILE:
            self._show_generator = not self._show_generator
            if not self._show_generator and self._user_content is None:
                self._selected_tile = None
            return

        self._selected_tile = USER_TILE
        self._show_generator = True
        user = self._user_content
        if user is None:
            self._content = ContentState()
            return
        self.prompt = user.prompt
        self._content = ContentState(
            image_payload=user.image,
            scene_markup=user.voxel,
            view_mode=ViewMode.voxel if user.voxel else ViewMode.image,
        )

    def toggle_view_mode(self) -> None:
        """Flip image ↔ voxel; voxel is only reachable when a scene exists."""
        if self._content.view_mode is ViewMode.voxel:
            self._content = replace(self._content, view_mode=ViewMode.image)
        elif self._content.has_scene:
            self._content = replace(self._content, view_mode=ViewMode.voxel)

    # ── Internals ───────────────────────────────────────────────────────────

    def _begin_load(self) -> int:
        """Start a non-generating load; a later start makes it stale."""
        self._epoch += 1
        return self._epoch

    def _is_current(self, epoch: int, load: str) -> bool:
        """False once a generation (or newer load) started after ``epoch``."""
        if epoch == self._epoch:
            return True
        logger.info("load_superseded", load=load, status=str(self._generation.status))
        return False

    async def _maybe_resize(self, image: str) -> str:
        if not self.use_optimization or self._resize is None:
            return image
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self._resize, image, DEFAULT_MAX_WIDTH, DEFAULT_QUALITY
        )

    def _fail(self, exc: Exception) -> None:
        """→ error. Content is left exactly as it is."""
        message = exc.message if isinstance(exc, VoxelizeError) else UNEXPECTED_ERROR
        if not isinstance(exc, VoxelizeError):
            logger.error("unexpected_failure", error=str(exc), error_type=type(exc).__name__)
        self._generation = GenerationState(status=AppStatus.error, error_message=message)
