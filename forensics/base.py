"""
forensics.base — Result types and tunables shared by every authenticity check.

A check is a plain callable ``check(artifact, settings) -> AuthenticityCheck``
(or, for the comparative check, ``check(primary, secondary, settings)``).
Checks are independent of each other; the engine runs and aggregates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class AuthenticityCheck:
    """Outcome of one authenticity signal."""

    name: str
    passed: bool
    score: int                          # [0, 100]
    details: str = ""

    def __post_init__(self) -> None:
        self.score = max(0, min(100, int(self.score)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "score": self.score,
            "details": self.details,
        }

    @classmethod
    def error_result(cls, name: str, exc: BaseException) -> "AuthenticityCheck":
        """Zero-contribution failed check for a check that crashed."""
        return cls(
            name=name,
            passed=False,
            score=0,
            details=f"{name} failed: {type(exc).__name__}: {exc}",
        )


@dataclass
class ForensicReport:
    """Aggregate forensic score and the checks that produced it."""

    score: int
    checks: List[AuthenticityCheck] = field(default_factory=list)

    def check(self, name: str) -> Optional[AuthenticityCheck]:
        for c in self.checks:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "checks": [c.to_dict() for c in self.checks]}


# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

EXIF_METADATA = "exif_metadata"
DOCUMENT_EDGES = "document_edges"
MOIRE_DETECTION = "moire_detection"
FOCUS_QUALITY = "focus_quality"
REFLECTION_CHANGE = "reflection_change"

DEFAULT_WEIGHTS = {
    EXIF_METADATA: 15,
    DOCUMENT_EDGES: 25,
    MOIRE_DETECTION: 25,
    REFLECTION_CHANGE: 20,
    FOCUS_QUALITY: 15,
}


@dataclass
class ForensicSettings:
    """Weights and thresholds for the authenticity checks.

    Defaults match ``configs/scanner.yaml``; see
    :func:`pipeline.settings.load_settings` for overrides.
    """

    weights: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    # exif_metadata
    metadata_pass_score: int = 40
    suspicious_software: List[str] = field(default_factory=lambda: [
        "photoshop", "gimp", "photopea", "pixlr", "canva", "lightroom",
        "snapseed", "picsart", "screenshot", "snipping", "greenshot",
    ])
    # document_edges
    edges_width: int = 400
    edges_min_area_ratio: float = 0.15
    edges_aspect_range: tuple = (1.2, 2.0)
    edges_fallback_ratio: float = 0.10
    # moire_detection
    moire_size: int = 256
    moire_band: tuple = (24, 128)
    moire_peaks: int = 16
    moire_threshold: float = 0.45
    # focus_quality
    focus_width: int = 400
    focus_min_variance: float = 100.0
    # reflection_change
    reflection_size: int = 300
    reflection_highlight: int = 230
    reflection_min_highlight_pixels: int = 100
    reflection_min_change: float = 0.10
    reflection_grid: int = 4
    reflection_min_grid_shift: float = 0.02

    def weight(self, name: str) -> int:
        return int(self.weights.get(name, 10))
