"""
forensics.utils — Array helpers shared by the authenticity checks.

Provides:

* **Colour / geometry** — ``to_gray_u8``, ``resize_to_width``,
  ``center_square``, ``tile_view``.
* **Scoring** — ``round_half_up``, ``clamp_score``.

Grayscale conversion degrades to a pure NumPy luminance formula when
OpenCV (``cv2``) is unavailable; the checks that need OpenCV proper
import it directly.
"""

from __future__ import annotations

import math
from typing import Tuple, Union

import numpy as np

try:
    import cv2  # type: ignore
except Exception:
    cv2 = None

Number = Union[int, float, np.number]


# ---------------------------------------------------------------------------
# Colour / geometry
# ---------------------------------------------------------------------------

def to_gray_u8(rgb: np.ndarray) -> np.ndarray:
    """Convert an RGB ``uint8`` image to single-channel grayscale.

    Uses ``cv2.cvtColor`` when available; otherwise falls back to the
    ITU-R BT.601 luminance formula.  Grayscale input is returned as is.
    """
    if rgb.ndim == 2:
        return rgb
    if cv2 is None:
        r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
        return (0.299 * r + 0.587 * g + 0.114 * b).round().astype(np.uint8)
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)


def resize_to_width(gray: np.ndarray, width: int) -> np.ndarray:
    """Resize keeping the aspect ratio so the output is *width* wide."""
    h, w = gray.shape[:2]
    if w == width:
        return gray
    height = max(1, int(round(h * width / float(w))))
    interp = cv2.INTER_AREA if width < w else cv2.INTER_LINEAR
    return cv2.resize(gray, (width, height), interpolation=interp)


def center_square(gray: np.ndarray, size: int) -> np.ndarray:
    """Central ``size x size`` crop, upscaling first if the image is smaller.

    Equivalent to a "cover" fit: the short side is brought to at least
    *size* and the long side is cropped symmetrically.
    """
    h, w = gray.shape[:2]
    short = min(h, w)
    if short < size:
        scale = size / float(short)
        gray = cv2.resize(
            gray,
            (max(size, int(math.ceil(w * scale))), max(size, int(math.ceil(h * scale)))),
            interpolation=cv2.INTER_LINEAR,
        )
        h, w = gray.shape[:2]
    top = (h - size) // 2
    left = (w - size) // 2
    return gray[top:top + size, left:left + size]


def cover_resize(gray: np.ndarray, size: int) -> np.ndarray:
    """Crop the central square of the short side and resize it to *size*."""
    h, w = gray.shape[:2]
    short = min(h, w)
    top = (h - short) // 2
    left = (w - short) // 2
    square = gray[top:top + short, left:left + short]
    if short == size:
        return square
    interp = cv2.INTER_AREA if short > size else cv2.INTER_LINEAR
    return cv2.resize(square, (size, size), interpolation=interp)


def tile_view(
    arr: np.ndarray, tile_h: int, tile_w: int,
) -> Tuple[np.ndarray, int, int]:
    """Reshape a 2-D array into non-overlapping tiles.

    The array is cropped to the largest multiple of the tile size.  The
    result is a view of shape ``(n_rows, n_cols, tile_h, tile_w)``.
    """
    H, W = arr.shape[:2]
    nh = H // tile_h
    nw = W // tile_w
    cropped = arr[:nh * tile_h, :nw * tile_w]
    tiles = cropped.reshape(nh, tile_h, nw, tile_w).swapaxes(1, 2)
    return tiles, nh, nw


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def round_half_up(x: Number) -> int:
    """Round to the nearest integer, .5 away from zero for positives."""
    return int(math.floor(float(x) + 0.5))


def clamp_score(x: Number) -> int:
    return max(0, min(100, round_half_up(x)))
