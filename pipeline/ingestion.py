"""
Image ingestion: turn an uploaded payload into an immutable ImageArtifact.

Accepted input is either base64 text (optionally carrying a
``data:image/...;base64,`` prefix, as browsers produce) or the raw encoded
bytes of a JPEG/PNG/WebP file.  Decoding is done with Pillow; the EXIF
orientation is applied before the pixels are materialised, so every
downstream stage sees the image the right way up.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from documents.errors import DecodeError, ResolutionTooSmall

from .settings import IngestionSettings

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)

Payload = Union[str, bytes, bytearray]


@dataclass(frozen=True, eq=False)
class ImageArtifact:
    """A decoded frame. ``pixels`` is a read-only ``(H, W, 3)`` uint8 RGB array."""

    encoded: bytes
    pixels: np.ndarray
    width: int
    height: int
    format: Optional[str]
    mode: str
    byte_length: int

    def describe(self) -> str:
        return f"{self.width}x{self.height} {self.format or 'unknown'} {self.byte_length} bytes"


def payload_bytes(payload: Payload) -> bytes:
    """Return the encoded image bytes for a base64 string or raw bytes."""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if not isinstance(payload, str):
        raise DecodeError(f"Unsupported payload type {type(payload).__name__}")
    text = _DATA_URL_PREFIX.sub("", payload.strip(), count=1)
    text = "".join(text.split())
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Payload is not valid base64: {e}") from e


def _to_rgb(im: Image.Image) -> Image.Image:
    if im.mode in ("RGBA", "LA", "PA") or (im.mode == "P" and "transparency" in im.info):
        rgba = im.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        return Image.alpha_composite(background, rgba).convert("RGB")
    return im.convert("RGB")


def decode_image(payload: Payload, settings: Optional[IngestionSettings] = None) -> ImageArtifact:
    """Decode and validate one frame.

    Raises
    ------
    DecodeError
        Not base64, empty, over the byte-size cap, or not an image Pillow
        can decode.  Small payloads are never rejected on size alone.
    ResolutionTooSmall
        Decoded image is below the minimum width/height.
    """
    cfg = settings or IngestionSettings()
    data = payload_bytes(payload)

    if not data:
        raise DecodeError("Image payload is empty")
    if len(data) > cfg.max_payload_bytes:
        raise DecodeError(f"Image payload exceeds {cfg.max_payload_bytes} bytes ({len(data)} bytes)")

    try:
        with Image.open(io.BytesIO(data)) as im:
            fmt = im.format
            im.load()
            oriented = ImageOps.exif_transpose(im)
            mode = oriented.mode
            rgb = _to_rgb(oriented)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Payload is not a decodable image: {e}") from e

    width, height = rgb.size
    if width < cfg.min_width or height < cfg.min_height:
        raise ResolutionTooSmall(width, height, cfg.min_width, cfg.min_height)

    pixels = np.asarray(rgb, dtype=np.uint8).copy()
    pixels.setflags(write=False)
    artifact = ImageArtifact(
        encoded=data,
        pixels=pixels,
        width=width,
        height=height,
        format=fmt,
        mode=mode,
        byte_length=len(data),
    )
    logger.info("Decoded image: %s", artifact.describe())
    return artifact


def try_decode_secondary(
    payload: Optional[Payload], settings: Optional[IngestionSettings] = None,
) -> Optional[ImageArtifact]:
    """Decode an optional second frame; any failure just drops it."""
    if payload is None or (isinstance(payload, str) and not payload.strip()):
        return None
    try:
        return decode_image(payload, settings)
    except (DecodeError, ResolutionTooSmall) as e:
        logger.warning("Secondary frame unusable, continuing with single-frame checks: %s", e)
        return None
