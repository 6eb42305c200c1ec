# ─────────────────────────────────────────────────────────────────────────────
# Encoding Utilities — base64 and data URLs
# ─────────────────────────────────────────────────────────────────────────────


import base64
import binascii
import re

from voxelize.exceptions import InvalidRequestError
from voxelize.validation import DEFAULT_MIME_TYPE

_DATA_URL_PREFIX = re.compile(r"^data:(.*?);base64,")


def encode_bytes(raw: bytes) -> str:
    """Encode raw bytes as an ASCII base64 string."""
    return base64.b64encode(raw).decode("ascii")


def decode_base64(data: str) -> bytes:
    """Strictly decode base64, raising InvalidRequestError on bad input."""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequestError("Invalid image data") from exc


def to_data_url(data: str, mime_type: str) -> str:
    """Wrap base64 data as ``data:{mime};base64,{data}``."""
    return f"data:{mime_type};base64,{data}"


def split_data_url(value: str) -> tuple[str, str]:
    """Split a data URL into (mime_type, base64 data).

    Bare base64 (no prefix) is returned as-is with the default MIME type.
    """
    match = _DATA_URL_PREFIX.match(value)
    mime_type = match.group(1) if match and match.group(1) else DEFAULT_MIME_TYPE
    _, sep, data = value.partition(",")
    return mime_type, data if sep and data else value
