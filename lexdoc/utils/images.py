"""
Inline raster image decoding for signature images and ``<img>`` blocks.

Decoding failures are an expected, non-fatal condition: callers receive
``None`` and render the surrounding content without the image.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:image/[a-zA-Z0-9.+-]+(?:;[^,]*)?,", re.IGNORECASE)

# Formats python-docx can embed
SUPPORTED_FORMATS = {"PNG": "image/png", "JPEG": "image/jpeg", "GIF": "image/gif", "BMP": "image/bmp"}


@dataclass(frozen=True)
class DecodedImage:
    data: bytes
    format: str
    width: int
    height: int

    @property
    def mime_type(self) -> str:
        return SUPPORTED_FORMATS[self.format]

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def is_data_uri(value: str) -> bool:
    return bool(_DATA_URI_RE.match(value.strip()))


def decode_image(source: Optional[Union[bytes, str]]) -> Optional[DecodedImage]:
    """
    Decode raw bytes or a ``data:image/...`` URI into a validated raster image.

    Returns ``None`` when the source is missing, is a plain URL, is not valid
    base64, or is not a PNG/JPEG/GIF/BMP image.
    """
    if not source:
        return None

    if isinstance(source, str):
        value = source.strip()
        if not is_data_uri(value):
            logger.debug("decode_image: source is not a data URI — not fetched")
            return None
        header, _, payload = value.partition(",")
        if ";base64" not in header.lower():
            logger.warning("decode_image: data URI is not base64-encoded")
            return None
        try:
            data = base64.b64decode(payload.strip(), validate=False)
        except (binascii.Error, ValueError) as exc:
            logger.warning(f"decode_image: invalid base64 payload: {exc}")
            return None
    else:
        data = bytes(source)

    if not data:
        return None

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            fmt = img.format
            width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        logger.warning(f"decode_image: not a readable image: {exc}")
        return None

    if fmt not in SUPPORTED_FORMATS:
        logger.warning("decode_image: unsupported image format %r", fmt)
        return None

    return DecodedImage(data=data, format=fmt, width=width, height=height)
