"""
forensics.reflection — Multi-frame reflection-change authenticity check.

The client captures the card twice at different tilts.  On a physical
card the specular highlights move between the two frames; on a flat
printout or a screen replay they barely change.

Two measures are computed on square, fixed-size grayscale copies of both
frames:

* **Highlight change** — pixels above ``reflection_highlight`` that are
  lit in exactly one frame, over the larger highlight count.
* **Grid shift** — mean absolute change of a ``reflection_grid`` x
  ``reflection_grid`` brightness grid after removing the global exposure
  difference, as a fraction of full scale.

The highlight measure decides when either frame has enough highlight
pixels; otherwise the grid measure does.
"""

from __future__ import annotations

from typing import Dict

import numpy as np

from .base import REFLECTION_CHANGE, AuthenticityCheck, ForensicSettings
from .utils import clamp_score, cover_resize, tile_view, to_gray_u8


def reflection_stats(gray1: np.ndarray, gray2: np.ndarray, settings: ForensicSettings) -> Dict[str, float]:
    size = settings.reflection_size
    a = cover_resize(gray1, size)
    b = cover_resize(gray2, size)

    hi1 = a > settings.reflection_highlight
    hi2 = b > settings.reflection_highlight
    n1 = int(hi1.sum())
    n2 = int(hi2.sum())
    diff = int(np.logical_xor(hi1, hi2).sum())

    cell = size // settings.reflection_grid
    t1, _, _ = tile_view(a.astype(np.float64), cell, cell)
    t2, _, _ = tile_view(b.astype(np.float64), cell, cell)
    g1 = t1.mean(axis=(2, 3))
    g2 = t2.mean(axis=(2, 3))
    shift = float(np.mean(np.abs((g1 - g1.mean()) - (g2 - g2.mean())))) / 255.0

    return {
        "highlights_1": n1,
        "highlights_2": n2,
        "highlight_diff": diff,
        "highlight_change": diff / float(max(n1, n2, 1)),
        "grid_shift": shift,
    }


def check_reflection_change(primary, secondary, settings: ForensicSettings) -> AuthenticityCheck:
    stats = reflection_stats(to_gray_u8(primary.pixels), to_gray_u8(secondary.pixels), settings)
    n1, n2 = stats["highlights_1"], stats["highlights_2"]

    if max(n1, n2) >= settings.reflection_min_highlight_pixels:
        change = stats["highlight_change"]
        return AuthenticityCheck(
            name=REFLECTION_CHANGE,
            passed=change > settings.reflection_min_change,
            score=clamp_score(change * 300),
            details=(
                f"Highlight change {change * 100:.1f}% "
                f"(h1={n1}, h2={n2}, diff={stats['highlight_diff']})"
            ),
        )

    shift = stats["grid_shift"]
    return AuthenticityCheck(
        name=REFLECTION_CHANGE,
        passed=shift > settings.reflection_min_grid_shift,
        score=clamp_score(shift * 1500),
        details=f"Few highlights (h1={n1}, h2={n2}); brightness grid shift {shift * 100:.1f}%",
    )
