"""
forensics.focus — Focus-quality authenticity check.

Variance of the Laplacian on a fixed-width grayscale copy of the frame.
Re-photographed prints and screens tend to be soft, so low variance is a
negative signal.
"""

from __future__ import annotations

import math

import cv2
import numpy as np

from .base import FOCUS_QUALITY, AuthenticityCheck, ForensicSettings
from .utils import clamp_score, resize_to_width, to_gray_u8


def laplacian_variance(gray: np.ndarray) -> float:
    lap = cv2.Laplacian(gray, cv2.CV_64F, ksize=1)
    return float(lap.var())


def check_focus(artifact, settings: ForensicSettings) -> AuthenticityCheck:
    gray = resize_to_width(to_gray_u8(artifact.pixels), settings.focus_width)
    var = laplacian_variance(gray)
    return AuthenticityCheck(
        name=FOCUS_QUALITY,
        passed=var > settings.focus_min_variance,
        score=clamp_score(math.sqrt(var) * 2),
        details=f"Laplacian variance {var:.0f} (threshold {settings.focus_min_variance:.0f})",
    )
