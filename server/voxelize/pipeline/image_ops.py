# ─────────────────────────────────────────────────────────────────────────────
# Image Operations — downscale + JPEG re-encode before upload
# ─────────────────────────────────────────────────────────────────────────────


import io

import PIL.Image
import structlog

from voxelize.pipeline.encoding import decode_base64, encode_bytes, split_data_url, to_data_url

logger = structlog.get_logger(__name__)

DEFAULT_MAX_WIDTH = 1024
DEFAULT_QUALITY = 0.85


def compress_image(
    data_url: str,
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: float = DEFAULT_QUALITY,
) -> str:
    """Shrink an image data URL to ``max_width`` and re-encode it as JPEG.

    Height follows the original aspect ratio. Images Pillow cannot decode
    (e.g. HEIC without a plugin) are returned unchanged.
    """
    _, data = split_data_url(data_url)
    try:
        image = PIL.Image.open(io.BytesIO(decode_base64(data)))
        image.load()
    except (PIL.UnidentifiedImageError, OSError) as exc:
        logger.warning("image_compress_skipped", reason=str(exc))
        return data_url

    if image.width > max_width:
        height = max(1, round(image.height * max_width / image.width))
        image = image.resize((max_width, height), PIL.Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=round(quality * 100))
    return to_data_url(encode_bytes(buffer.getvalue()), "image/jpeg")
