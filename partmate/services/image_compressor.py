"""
Best-effort JPEG compression for part photos before upload.

The image is scaled down so that neither side exceeds ``MAX_IMAGE_DIMENSION``
and then re-encoded as JPEG, starting at quality 0.9 and stepping down by 0.1
until the payload fits the size budget or quality reaches 0.1. Any decode or
encode failure returns the original bytes untouched so the upload can still
go ahead.
"""
from __future__ import annotations

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional

from PIL import Image, ImageOps

from partmate.core.constants import (
    INITIAL_JPEG_QUALITY,
    JPEG_QUALITY_STEP,
    MAX_IMAGE_DIMENSION,
    MIN_JPEG_QUALITY,
)

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1024 * 1024
_DECODE_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)

# Quality is tracked in tenths so the 0.1 steps stay exact.
_QUALITY_START = round(INITIAL_JPEG_QUALITY * 10)
_QUALITY_FLOOR = round(MIN_JPEG_QUALITY * 10)
_QUALITY_STEP = round(JPEG_QUALITY_STEP * 10)


@dataclass(frozen=True)
class CompressedImage:
    data: bytes
    content_type: str
    filename: str
    width: Optional[int] = None
    height: Optional[int] = None
    quality: Optional[float] = None
    compressed: bool = False

    @property
    def size_mb(self) -> float:
        return len(self.data) / _BYTES_PER_MB

    @property
    def extension(self) -> str:
        suffix = PurePath(self.filename).suffix.lstrip(".")
        return suffix or "bin"


def scaled_dimensions(width: int, height: int, max_dimension: int = MAX_IMAGE_DIMENSION) -> tuple[int, int]:
    """Clamp the longer side to ``max_dimension``; never scales up."""
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    if width >= height:
        return max_dimension, max(1, round(height * scale))
    return max(1, round(width * scale)), max_dimension


def _flatten_to_rgb(image: Image.Image) -> Image.Image:
    if image.mode == "P":
        image = image.convert("RGBA")
    if image.mode in ("RGBA", "LA"):
        background = Image.new("RGB", image.size, "white")
        background.paste(image, mask=image.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def _encode_jpeg(image: Image.Image, quality_tenths: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality_tenths * 10)
    return buffer.getvalue()


def _jpeg_name(filename: Optional[str]) -> str:
    stem = PurePath(filename).stem if filename else ""
    return "{}.jpg".format(stem or "image")


def _original(payload: bytes, filename: Optional[str]) -> CompressedImage:
    name = filename or "image"
    content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    return CompressedImage(data=payload, content_type=content_type, filename=name)


def compress_image(payload: bytes, max_size_mb: float, *, filename: Optional[str] = None) -> CompressedImage:
    budget = max_size_mb * _BYTES_PER_MB

    try:
        with Image.open(io.BytesIO(payload)) as source:
            source.load()
            image = ImageOps.exif_transpose(source)
        width, height = scaled_dimensions(*image.size)
        if (width, height) != image.size:
            image = image.resize((width, height), Image.Resampling.LANCZOS)
        image = _flatten_to_rgb(image)

        quality = _QUALITY_START
        data = _encode_jpeg(image, quality)
        while len(data) > budget and quality > _QUALITY_FLOOR:
            quality -= _QUALITY_STEP
            data = _encode_jpeg(image, quality)
    except _DECODE_ERRORS as exc:
        logger.warning("Image compression failed for %s, uploading original: %s", filename or "upload", exc)
        return _original(payload, filename)

    if len(data) > budget:
        logger.info(
            "Image %s still %.2f MB at minimum quality (budget %.2f MB)",
            filename or "upload",
            len(data) / _BYTES_PER_MB,
            max_size_mb,
        )

    return CompressedImage(
        data=data,
        content_type="image/jpeg",
        filename=_jpeg_name(filename),
        width=width,
        height=height,
        quality=quality / 10,
        compressed=True,
    )


__all__ = ["CompressedImage", "compress_image", "scaled_dimensions"]
