"""
forensics.boundary — Document-boundary authenticity check.

A genuine capture of a held card nearly always shows the card's outline:
a convex quadrilateral with an ID-1 like aspect ratio covering a good
part of the frame.  Gallery images and tight screen crops usually do
not.

Algorithm
---------
1. Grayscale, resize to a fixed working width, Gaussian blur (5, 5).
2. Two edge maps: Canny (dilated to close gaps) and Otsu binarisation.
3. External contours of each map, largest first; approximate each with
   ``approxPolyDP`` and keep the first convex 4-point polygon whose area
   exceeds ``edges_min_area_ratio`` of the frame and whose
   ``minAreaRect`` aspect lies within ``edges_aspect_range``.
4. If no such quadrilateral exists, fall back to the Sobel edge density
   along the expected card perimeter, which only earns partial credit.
"""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from .base import DOCUMENT_EDGES, AuthenticityCheck, ForensicSettings
from .utils import clamp_score, resize_to_width, to_gray_u8

FALLBACK_CAP = 60
SOBEL_EDGE_LEVEL = 80


def _edge_maps(gray: np.ndarray):
    blurred = cv2.GaussianBlur(gray, (5, 5), 0)
    canny = cv2.Canny(blurred, 50, 150)
    canny = cv2.dilate(canny, np.ones((3, 3), np.uint8), iterations=1)
    _, otsu = cv2.threshold(blurred, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    # The card may be darker or brighter than the background.
    if np.mean(otsu) > 127:
        otsu = cv2.bitwise_not(otsu)
    return (("canny", canny), ("otsu", otsu))


def find_document_quad(
    gray: np.ndarray,
    min_area_ratio: float,
    aspect_range: Tuple[float, float],
) -> Optional[Tuple[np.ndarray, float, str]]:
    """Return ``(quad, area_ratio, source)`` for the best card outline, or None."""
    h, w = gray.shape[:2]
    total = float(h * w)
    lo, hi = aspect_range

    for source, edges in _edge_maps(gray):
        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        for cnt in sorted(contours, key=cv2.contourArea, reverse=True)[:10]:
            area = cv2.contourArea(cnt)
            if area < min_area_ratio * total:
                break
            peri = cv2.arcLength(cnt, True)
            approx = cv2.approxPolyDP(cnt, 0.02 * peri, True)
            if len(approx) != 4 or not cv2.isContourConvex(approx):
                continue
            (_, _), (rw, rh), _ = cv2.minAreaRect(approx)
            short, long_ = sorted((rw, rh))
            if short <= 0:
                continue
            aspect = long_ / short
            if lo <= aspect <= hi:
                return approx.reshape(4, 2), cv2.contourArea(approx) / total, source
    return None


def perimeter_edge_ratio(gray: np.ndarray) -> float:
    """Fraction of strong Sobel edges along the expected card perimeter."""
    h, w = gray.shape[:2]
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    strong = cv2.magnitude(gx, gy) > SOBEL_EDGE_LEVEL

    margin = int(w * 0.08)
    inner = int(w * 0.15)
    band = 8
    strips = [
        strong[margin:margin + band, inner:w - inner],
        strong[h - margin - band:h - margin, inner:w - inner],
        strong[inner:h - inner, margin:margin + band],
        strong[inner:h - inner, w - margin - band:w - margin],
    ]
    total = sum(s.size for s in strips)
    if total == 0:
        return 0.0
    return float(sum(int(s.sum()) for s in strips)) / total


def check_document_boundary(artifact, settings: ForensicSettings) -> AuthenticityCheck:
    """Score the presence of a card-shaped outline in the primary frame."""
    gray = resize_to_width(to_gray_u8(artifact.pixels), settings.edges_width)

    found = find_document_quad(gray, settings.edges_min_area_ratio, tuple(settings.edges_aspect_range))
    if found is not None:
        _quad, area_ratio, source = found
        score = clamp_score(70 + area_ratio * 40)
        return AuthenticityCheck(
            name=DOCUMENT_EDGES,
            passed=True,
            score=score,
            details=f"Card outline found ({source}), covers {area_ratio * 100:.1f}% of frame",
        )

    ratio = perimeter_edge_ratio(gray)
    return AuthenticityCheck(
        name=DOCUMENT_EDGES,
        passed=ratio > settings.edges_fallback_ratio,
        score=min(FALLBACK_CAP, clamp_score(ratio * 400)),
        details=f"No card outline; perimeter edge ratio {ratio * 100:.1f}%",
    )
