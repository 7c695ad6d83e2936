"""
Result combiner: one authenticity score from extraction and forensics.

    combined = round(0.6 * extraction_confidence + 0.4 * forensic_score)

A structurally valid, checksum-passing record is strong evidence on its
own, so extraction carries the larger weight.  Rounding is half-up and
done in integer arithmetic to stay exact.
"""

from __future__ import annotations

from typing import Optional

EXTRACTION_WEIGHT = 6
FORENSIC_WEIGHT = 4
DEFAULT_EXTRACTION_CONFIDENCE = 85


def combine_scores(
    extraction_confidence: Optional[int],
    forensic_score: int,
    default_confidence: int = DEFAULT_EXTRACTION_CONFIDENCE,
) -> int:
    """Weighted 60/40 combination, clamped to ``[0, 100]``.

    >>> combine_scores(85, 70)
    79
    """
    c = default_confidence if extraction_confidence is None else int(extraction_confidence)
    f = int(forensic_score)
    total = EXTRACTION_WEIGHT * c + FORENSIC_WEIGHT * f
    combined = (total + 5) // 10
    return max(0, min(100, combined))
