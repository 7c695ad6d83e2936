"""
forensics.moire — Screen-capture (moire) authenticity check.

Photographing an LCD/OLED panel beats the sensor grid against the pixel
grid and leaves a strong periodic interference pattern.  In the 2-D
spectrum that shows up as a handful of sharp peaks in the mid/high
frequency band, whereas paper texture and print spread their energy
over many bins.

The check measures *peak concentration*: the share of band energy held
by the ``moire_peaks`` strongest bins of the ``moire_band`` annulus of
a Hann-windowed, mean-removed ``moire_size`` x ``moire_size`` central
crop.
"""

from __future__ import annotations

from typing import Dict

import numpy as np

from .base import MOIRE_DETECTION, AuthenticityCheck, ForensicSettings
from .utils import center_square, clamp_score, to_gray_u8

# Band energy below this is a flat crop; no periodic signal to judge.
_MIN_BAND_ENERGY = 1e-3


def spectrum_concentration(gray: np.ndarray, size: int, band, peaks: int) -> Dict[str, float]:
    """Peak concentration of the windowed power spectrum.

    Returns
    -------
    dict
        * ``"concentration"`` — top-*peaks* energy / band energy, in
          ``[0, 1]``.
        * ``"band_energy"`` — mean power per bin inside the band.
        * ``"peak_radius"`` — radius (in bins) of the strongest peak.
    """
    crop = center_square(gray, size).astype(np.float64)
    crop -= crop.mean()
    window = np.outer(np.hanning(size), np.hanning(size))
    power = np.abs(np.fft.fftshift(np.fft.fft2(crop * window))) ** 2

    yy, xx = np.indices(power.shape)
    c = size // 2
    radius = np.hypot(yy - c, xx - c)
    r_lo, r_hi = band
    mask = (radius >= r_lo) & (radius <= r_hi)

    values = power[mask]
    total = float(values.sum())
    mean_energy = total / max(1, values.size)
    if values.size == 0 or mean_energy < _MIN_BAND_ENERGY:
        return {"concentration": 0.0, "band_energy": mean_energy, "peak_radius": 0.0}

    k = min(peaks, values.size)
    top = np.partition(values, values.size - k)[-k:]
    peak_idx = np.argmax(np.where(mask, power, -1.0))
    return {
        "concentration": float(top.sum()) / total,
        "band_energy": mean_energy,
        "peak_radius": float(radius.ravel()[peak_idx]),
    }


def check_moire(artifact, settings: ForensicSettings) -> AuthenticityCheck:
    """Flag screen captures by their periodic interference pattern."""
    stats = spectrum_concentration(
        to_gray_u8(artifact.pixels),
        settings.moire_size,
        tuple(settings.moire_band),
        settings.moire_peaks,
    )
    conc = stats["concentration"]
    thr = settings.moire_threshold

    if conc > thr:
        score = clamp_score(30 - (conc - thr) * 60)
        return AuthenticityCheck(
            name=MOIRE_DETECTION,
            passed=False,
            score=score,
            details=(
                f"Peak concentration {conc:.2f} (threshold {thr:.2f}) at radius "
                f"{stats['peak_radius']:.0f}, likely screen capture"
            ),
        )
    return AuthenticityCheck(
        name=MOIRE_DETECTION,
        passed=True,
        score=clamp_score(70 + 30 * (thr - conc) / thr),
        details=f"Peak concentration {conc:.2f} (threshold {thr:.2f})",
    )
