"""
forensics.engine — Run the authenticity checks and aggregate their score.

Flow
----
  1. exif_metadata      — camera-origin metadata of the primary frame
  2. document_edges     — card outline in the primary frame
  3. moire_detection    — screen-capture interference pattern
  4. focus_quality      — Laplacian sharpness
  5. reflection_change  — highlight movement between frames (only when a
                          secondary frame is supplied)

Each check runs inside its own ``try / except`` block so that one
crashing check turns into a zero-score failed check and never stops the
others.  The aggregate is the weighted mean of the checks that ran;
a skipped check is left out of the denominator.

Usage
-----
    from forensics.engine import ForensicEngine
    report = ForensicEngine().evaluate(artifact, secondary_artifact)
    report.score, [c.name for c in report.checks]
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .base import (
    DOCUMENT_EDGES,
    EXIF_METADATA,
    FOCUS_QUALITY,
    MOIRE_DETECTION,
    REFLECTION_CHANGE,
    AuthenticityCheck,
    ForensicReport,
    ForensicSettings,
)
from .boundary import check_document_boundary
from .focus import check_focus
from .metadata import check_capture_metadata
from .moire import check_moire
from .reflection import check_reflection_change

logger = logging.getLogger(__name__)

PrimaryCheck = Callable[..., AuthenticityCheck]

PRIMARY_CHECKS: Tuple[Tuple[str, PrimaryCheck], ...] = (
    (EXIF_METADATA, check_capture_metadata),
    (DOCUMENT_EDGES, check_document_boundary),
    (MOIRE_DETECTION, check_moire),
    (FOCUS_QUALITY, check_focus),
)


def aggregate_score(checks: Sequence[AuthenticityCheck], settings: ForensicSettings) -> int:
    """Weighted mean of *checks*, rounded half up; 0 when nothing ran."""
    total_weight = sum(settings.weight(c.name) for c in checks)
    if total_weight <= 0:
        return 0
    weighted = sum(c.score * settings.weight(c.name) for c in checks)
    # Integer round-half-up of weighted / total_weight.
    return max(0, min(100, (2 * weighted + total_weight) // (2 * total_weight)))


class ForensicEngine:
    """Evaluate one or two frames of the same document."""

    def __init__(
        self,
        settings: Optional[ForensicSettings] = None,
        checks: Sequence[Tuple[str, PrimaryCheck]] = PRIMARY_CHECKS,
    ):
        self.settings = settings or ForensicSettings()
        self.checks = tuple(checks)

    def _run(self, name: str, fn: Callable[..., AuthenticityCheck], *frames) -> AuthenticityCheck:
        try:
            return fn(*frames, self.settings)
        except Exception as exc:
            logger.warning("Check %s failed: %s", name, exc, exc_info=True)
            return AuthenticityCheck.error_result(name, exc)

    def evaluate(self, primary, secondary=None) -> ForensicReport:
        """Run every primary check, plus the comparative one if *secondary* is given."""
        results: List[AuthenticityCheck] = [self._run(name, fn, primary) for name, fn in self.checks]
        if secondary is not None:
            results.append(self._run(REFLECTION_CHANGE, check_reflection_change, primary, secondary))

        score = aggregate_score(results, self.settings)
        logger.info(
            "Forensic score %d (%s)",
            score,
            ", ".join(f"{c.name}={c.score}{'' if c.passed else '!'}" for c in results),
        )
        return ForensicReport(score=score, checks=results)
