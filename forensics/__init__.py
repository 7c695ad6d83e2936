"""
forensics — Static-image authenticity checks for ID document captures.

Each module implements one independent signal and returns an
:class:`~forensics.base.AuthenticityCheck`; the engine runs them in
isolation and aggregates a weighted 0-100 score.

Modules
-------
engine      Orchestration entry-point: ``ForensicEngine.evaluate()``.
base        ``AuthenticityCheck``, ``ForensicReport``, ``ForensicSettings``.
metadata    Camera-origin EXIF / container metadata (Pillow).
boundary    Card outline search (contours, Sobel perimeter fallback).
moire       Screen-capture interference via windowed FFT peak concentration.
focus       Laplacian-variance sharpness.
reflection  Specular highlight movement between two tilted frames.
utils       Grayscale, resize/crop and scoring helpers.

Usage
-----
    from forensics import ForensicEngine

    report = ForensicEngine().evaluate(artifact, secondary_artifact)
    print(report.score, [c.to_dict() for c in report.checks])
"""

from .base import AuthenticityCheck, ForensicReport, ForensicSettings
from .engine import ForensicEngine, aggregate_score

__all__ = [
    "AuthenticityCheck",
    "ForensicEngine",
    "ForensicReport",
    "ForensicSettings",
    "aggregate_score",
]
