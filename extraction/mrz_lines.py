"""
extraction.mrz_lines — Pick the three TD1 lines out of noisy OCR output.

OCR over a card back returns every printed line (headers, signature
area, the MRZ itself) and, across several crop variants, the same
physical line more than once with small variations.  This module scores
each candidate for "MRZ-ness", removes near-duplicates, and orders the
survivors as document line, date line and name line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .mrz import FILLER, LINE_LENGTH, clean_line

MIN_CANDIDATE_LENGTH = 18
TD1_MIN_LENGTH = 24
TD1_MAX_LENGTH = 36
DEDUPE_PREFIX = 10

_DOC_LINE = re.compile(r"^[I1L|]([<C][A-Z0-9<]?COL|[DC]COL)")
_DATE_LINE = re.compile(r"^\d{6}[0-9<][MF<]\d{6}")
_NAME_SEPARATOR = re.compile(r"<<+")
_LETTER_RUN = re.compile(r"[A-Z]{2,}")


# ---------------------------------------------------------------------------
# Line classifiers
# ---------------------------------------------------------------------------

def looks_like_doc_line(line: str) -> bool:
    return bool(_DOC_LINE.match(line[:12]))


def looks_like_date_line(line: str) -> bool:
    # O and Q are the usual OCR confusions for 0 in the numeric line.
    return bool(_DATE_LINE.match(line.replace("O", "0").replace("Q", "0")))


def looks_like_name_line(line: str) -> bool:
    if looks_like_doc_line(line) or looks_like_date_line(line):
        return False
    if _NAME_SEPARATOR.search(line) and _LETTER_RUN.search(line):
        return True
    letters = sum(1 for ch in line if "A" <= ch <= "Z")
    return letters >= 10 and FILLER in line


def score_line(line: str) -> int:
    """Heuristic MRZ-likeness score; 0 means "not a candidate"."""
    if len(line) < 20:
        return 0
    score = 0

    diff = abs(len(line) - LINE_LENGTH)
    if diff <= 2:
        score += 30
    elif diff <= 5:
        score += 15

    fillers = line.count(FILLER)
    if fillers >= 1:
        score += 20
    if fillers >= 3:
        score += 10

    valid = sum(1 for ch in line if ch.isdigit() or "A" <= ch <= "Z" or ch == FILLER)
    if valid / len(line) >= 0.95:
        score += 25

    if re.match(r"^I[<C]COL|^IDCOL|^ICCOL", line):
        score += 50
    if re.match(r"^\d{6}\d[MF<]\d{6}", line):
        score += 40
    if re.match(r"^[A-Z]+<<[A-Z]+", line) or re.search(r"[A-Z]+<[A-Z]+<<", line):
        score += 40
    return score


def fit_line(line: str) -> str:
    """Clip or filler-pad a candidate to the TD1 width."""
    return line[:LINE_LENGTH].ljust(LINE_LENGTH, FILLER)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

@dataclass
class _Candidate:
    line: str
    score: int


def candidate_lines(raw_lines: Iterable[str]) -> List[str]:
    """Clean raw OCR lines and keep the ones long enough to matter."""
    seen = set()
    out: List[str] = []
    for raw in raw_lines:
        line = clean_line(raw)
        if len(line) >= MIN_CANDIDATE_LENGTH and line not in seen:
            seen.add(line)
            out.append(line)
    return out


def order_lines(lines: List[str]) -> List[str]:
    """Order three lines as doc / date / name, falling back to input order."""
    remaining = list(lines)

    def take(pred) -> Optional[str]:
        for i, ln in enumerate(remaining):
            if pred(ln):
                return remaining.pop(i)
        return None

    name_line = take(looks_like_name_line)
    date_line = take(looks_like_date_line)
    doc_line = take(looks_like_doc_line)

    ordered = [
        doc_line or (remaining.pop(0) if remaining else ""),
        date_line or (remaining.pop(0) if remaining else ""),
        name_line or (remaining.pop(0) if remaining else ""),
    ]
    return list(lines) if not all(ordered) else ordered


def detect_td1(raw_lines: Iterable[str]) -> Optional[List[str]]:
    """Return three ordered, 30-character TD1 lines, or ``None``.

    A detection needs at least one date line and one name line among the
    top three distinct candidates; otherwise random text would too easily
    pass as an MRZ.
    """
    scored = [
        _Candidate(ln, score_line(ln))
        for ln in candidate_lines(raw_lines)
        if TD1_MIN_LENGTH <= len(ln) <= TD1_MAX_LENGTH
    ]
    scored = [c for c in scored if c.score > 0]
    scored.sort(key=lambda c: c.score, reverse=True)

    unique: List[_Candidate] = []
    for cand in scored:
        prefix = cand.line[:DEDUPE_PREFIX]
        if not any(u.line[:DEDUPE_PREFIX] == prefix for u in unique):
            unique.append(cand)

    if len(unique) < 3:
        return None
    top = [c.line for c in unique[:3]]
    if not any(looks_like_date_line(ln) for ln in top):
        return None
    if not any(looks_like_name_line(ln) for ln in top):
        return None
    return [fit_line(ln) for ln in order_lines(top)]
