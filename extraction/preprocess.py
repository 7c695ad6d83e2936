"""
extraction.preprocess — Image variants fed to the barcode and OCR engines.

Phone captures of card backs vary wildly in exposure, blur and framing.
Rather than tune one pipeline, each engine is given a short list of
grayscale variants (crops, contrast stretches, gamma, binarisations) and
the first variant that decodes wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import cv2
import numpy as np

BARCODE_WIDTH = 1600
BARCODE_WIDTH_SMALL = 2000
MRZ_WIDTH = 2000
MRZ_WIDTH_SMALL = 2400
SMALL_INPUT_WIDTH = 800
MIN_BAND_HEIGHT = 48


@dataclass(frozen=True)
class Band:
    """Horizontal band of the frame handed to OCR."""

    label: str
    top: float
    bottom: float
    threshold: Optional[int]


MRZ_BANDS: Tuple[Band, ...] = (
    Band("bottom-58-b140", 0.58, 1.00, 140),
    Band("top-55-b140", 0.00, 0.55, 140),
    Band("full-gray", 0.00, 1.00, None),
    Band("bottom-50-b120", 0.50, 1.00, 120),
    Band("middle-20-90-b130", 0.20, 0.90, 130),
)

# Clockwise degrees, in the order they are attempted.
ORIENTATIONS: Tuple[int, ...] = (0, 270, 90, 180)

_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def to_gray(rgb: np.ndarray) -> np.ndarray:
    if rgb.ndim == 2:
        return rgb
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)


def rotate(img: np.ndarray, degrees: int) -> np.ndarray:
    """Rotate clockwise by a multiple of 90 degrees."""
    degrees %= 360
    if degrees == 0:
        return img
    return cv2.rotate(img, _ROTATE_CODES[degrees])


def to_landscape(img: np.ndarray) -> np.ndarray:
    h, w = img.shape[:2]
    return rotate(img, 90) if h > w else img


def oriented(img: np.ndarray) -> Iterator[Tuple[int, np.ndarray]]:
    """Yield ``(degrees, image)`` for each attempted orientation."""
    base = to_landscape(img)
    for deg in ORIENTATIONS:
        yield deg, rotate(base, deg)


def resize_to_width(gray: np.ndarray, width: int) -> np.ndarray:
    h, w = gray.shape[:2]
    if w == width or w == 0:
        return gray
    scale = width / float(w)
    interp = cv2.INTER_CUBIC if scale > 1 else cv2.INTER_AREA
    return cv2.resize(gray, (width, max(1, int(round(h * scale)))), interpolation=interp)


# ---------------------------------------------------------------------------
# Tone operations
# ---------------------------------------------------------------------------

def normalise(gray: np.ndarray) -> np.ndarray:
    return cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)


def sharpen(gray: np.ndarray, sigma: float) -> np.ndarray:
    """Unsharp mask."""
    blurred = cv2.GaussianBlur(gray, (0, 0), sigma)
    return cv2.addWeighted(gray, 1.5, blurred, -0.5, 0)


def linear(gray: np.ndarray, alpha: float, beta: float) -> np.ndarray:
    out = gray.astype(np.float32) * alpha + beta
    return np.clip(out, 0, 255).astype(np.uint8)


def gamma(gray: np.ndarray, g: float) -> np.ndarray:
    lut = np.array([((i / 255.0) ** (1.0 / g)) * 255 for i in range(256)], dtype=np.uint8)
    return cv2.LUT(gray, lut)


def binarise(gray: np.ndarray, value: Optional[int] = None) -> np.ndarray:
    """Fixed threshold, or Otsu when *value* is None."""
    if value is None:
        _, out = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    else:
        _, out = cv2.threshold(gray, value, 255, cv2.THRESH_BINARY)
    return out


# ---------------------------------------------------------------------------
# Variant sets
# ---------------------------------------------------------------------------

def barcode_variants(img: np.ndarray) -> List[Tuple[str, np.ndarray]]:
    """Grayscale variants for the PDF417 reader, cheapest first."""
    gray = to_gray(img)
    h, w = gray.shape[:2]
    small = w < SMALL_INPUT_WIDTH
    width = BARCODE_WIDTH_SMALL if small else BARCODE_WIDTH
    sigma = 3.0 if small else 1.5
    base = resize_to_width(gray, width)

    variants: List[Tuple[str, np.ndarray]] = []
    if w > h and h >= 200:
        # PDF417 sits in the lower half of a landscape card back.
        zone = resize_to_width(gray[h // 2:, :], width)
        variants.append(("zone-crop", normalise(sharpen(zone, sigma))))
    variants.extend([
        ("standard", normalise(sharpen(base, sigma))),
        ("high-contrast", normalise(sharpen(linear(base, 2.0 if small else 1.5, -120 if small else -64), sigma + 1.0))),
        ("gamma", sharpen(normalise(gamma(base, 2.5 if small else 2.0)), sigma)),
        ("raw", gray),
        ("thresh-128", binarise(normalise(base), 128)),
        ("thresh-160", binarise(normalise(base), 160)),
        ("otsu", binarise(normalise(base))),
    ])
    return variants


def mrz_band(img: np.ndarray, band: Band) -> np.ndarray:
    """Crop, upscale and optionally binarise one horizontal band."""
    gray = to_gray(img)
    h, w = gray.shape[:2]
    small = w < SMALL_INPUT_WIDTH

    top = max(0, int(h * band.top))
    bottom = min(h, int(h * band.bottom))
    if bottom <= top:
        bottom = h
    if bottom - top < min(MIN_BAND_HEIGHT, h):
        top, bottom = 0, h

    crop = resize_to_width(gray[top:bottom, :], MRZ_WIDTH_SMALL if small else MRZ_WIDTH)
    if small:
        crop = linear(sharpen(crop, 3.0), 1.8, -100)
    else:
        crop = sharpen(crop, 2.0)
    crop = normalise(crop)
    if band.threshold is not None:
        crop = binarise(crop, band.threshold)
    return crop


def mrz_variants(img: np.ndarray) -> Iterator[Tuple[str, np.ndarray]]:
    for band in MRZ_BANDS:
        yield band.label, mrz_band(img, band)
