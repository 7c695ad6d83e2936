"""
extraction.mrz — Parser for the three-line TD1 machine-readable zone printed
on digital citizen cards and foreigner cards.

TD1 positions used (0-based, end exclusive)
-------------------------------------------
Line 1
    ``0``       document code (``I``)
    ``2:5``     issuing country (``COL``)
    ``5:14``    document serial, ``14`` its check digit
    ``15:17``   department code, ``17:20`` municipality code
Line 2
    ``0:6``     birth date ``YYMMDD``, ``6`` check digit
    ``7``       sex
    ``8:14``    expiry date ``YYMMDD``, ``14`` check digit
    ``15:18``   nationality
    ``18:29``   optional data (NUIP in ``18:28``)
    ``29``      composite check digit
Line 3
    ``SURNAME<SURNAME<<GIVEN<NAMES``
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import List, Optional, Sequence, Tuple

from documents.errors import MalformedMRZ, UnexpectedDocumentFamily
from documents.locations import LocationTable, load_locations
from documents.records import (
    BloodType,
    DocumentFamily,
    Gender,
    IdentityRecord,
    normalize_name,
)

logger = logging.getLogger(__name__)

LINE_LENGTH = 30
LINE_COUNT = 3
DOCUMENT_CODE = "I"
COUNTRY_CODE = "COL"
FILLER = "<"

BASE_CONFIDENCE = 100
CHECK_PENALTY = 15
MIN_CONFIDENCE = 10

_WEIGHTS = (7, 3, 1)
_FILLER_LOOKALIKES = str.maketrans({"«": "<", "‹": "<", "＜": "<"})
_INVALID_CHARS = re.compile(r"[^A-Z0-9<]")
_DOC_CODE_LOOKALIKES = {"1": "I", "L": "I", "|": "I"}


# ---------------------------------------------------------------------------
# Character-level helpers
# ---------------------------------------------------------------------------

def clean_line(line: str) -> str:
    """Uppercase, drop whitespace and map every stray glyph to the filler."""
    text = "".join((line or "").upper().split())
    text = text.translate(_FILLER_LOOKALIKES)
    return _INVALID_CHARS.sub(FILLER, text)


def char_value(ch: str) -> int:
    if ch.isdigit():
        return int(ch)
    if "A" <= ch <= "Z":
        return ord(ch) - ord("A") + 10
    return 0


def compute_check_digit(data: str) -> str:
    """ICAO 9303 check digit: weights 7-3-1, letters A=10..Z=35, filler 0."""
    total = sum(char_value(ch) * _WEIGHTS[i % 3] for i, ch in enumerate(data))
    return str(total % 10)


def _check(data: str, expected: str) -> bool:
    return compute_check_digit(data) == expected


def parse_mrz_date(raw: str, *, expiry: bool, today: Optional[date] = None) -> Optional[date]:
    """Parse ``YYMMDD`` with the century rule for birth or expiry dates.

    Birth years above the current two-digit year belong to the 1900s;
    expiry years are always in the 2000s.
    """
    if len(raw) != 6 or not raw.isdigit():
        return None
    yy, mm, dd = int(raw[:2]), int(raw[2:4]), int(raw[4:6])
    if expiry:
        year = 2000 + yy
    else:
        current = (today or date.today()).year % 100
        year = 1900 + yy if yy > current else 2000 + yy
    try:
        return date(year, mm, dd)
    except ValueError:
        return None


def split_names(line: str) -> Tuple[List[str], List[str]]:
    """Split the name line into surname and given-name components.

    Without the ``<<`` separator the whole block is taken as surnames and
    the given names stay empty.
    """
    block = line.rstrip(FILLER)
    if "<<" in block:
        surnames, given = block.split("<<", 1)
    else:
        surnames, given = block, ""
    return _components(surnames), _components(given)


def _components(part: str) -> List[str]:
    return [normalize_name(p) for p in part.split(FILLER) if p]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_lines(lines: Sequence[str]) -> List[str]:
    """Clean three MRZ lines and validate their shape.

    Raises
    ------
    MalformedMRZ
        Not exactly three lines, or a line is not 30 characters long.
    """
    if len(lines) != LINE_COUNT:
        raise MalformedMRZ(f"Expected {LINE_COUNT} lines, got {len(lines)}")
    cleaned = [clean_line(ln) for ln in lines]
    for i, ln in enumerate(cleaned, start=1):
        if len(ln) != LINE_LENGTH:
            raise MalformedMRZ(f"Line {i} has {len(ln)} characters, expected {LINE_LENGTH}")
    return cleaned


def parse_td1(
    lines: Sequence[str],
    locations: Optional[LocationTable] = None,
    today: Optional[date] = None,
) -> IdentityRecord:
    """Parse a TD1 block into an :class:`IdentityRecord`.

    Check-digit failures do not reject the record; each one costs
    ``CHECK_PENALTY`` points of confidence, never below
    ``MIN_CONFIDENCE``.  The composite digit is only charged when every
    field digit verified, so a single misread character is counted once.

    Raises
    ------
    MalformedMRZ
        Wrong shape, or no document number can be read.
    UnexpectedDocumentFamily
        Document code or issuing country do not match a Colombian TD1.
    """
    l1, l2, l3 = normalize_lines(lines)

    doc_code = _DOC_CODE_LOOKALIKES.get(l1[0], l1[0])
    country = l1[2:5].replace("0", "O")
    if doc_code != DOCUMENT_CODE or country != COUNTRY_CODE:
        raise UnexpectedDocumentFamily(
            f"TD1 header is {doc_code!r}/{country!r}, expected {DOCUMENT_CODE!r}/{COUNTRY_CODE!r}"
        )

    serial_raw = l1[5:14]
    birth_raw = l2[0:6]
    expiry_raw = l2[8:14]

    field_checks = {
        "document": _check(serial_raw, l1[14]),
        "birth_date": _check(birth_raw, l2[6]),
        "expiry_date": _check(expiry_raw, l2[14]),
    }
    failed = [name for name, ok in field_checks.items() if not ok]
    if not failed:
        composite = l1[5:30] + l2[0:7] + l2[8:15] + l2[18:29]
        if not _check(composite, l2[29]):
            failed.append("composite")
    if failed:
        logger.info("MRZ check digits failed: %s", ", ".join(failed))

    nuip = re.sub(r"[^0-9]", "", l2[18:28]).lstrip("0")
    serial = serial_raw.replace(FILLER, "").lstrip("0")
    number = nuip if len(nuip) >= 6 else serial
    if not number:
        raise MalformedMRZ("No document number in line 1 or optional data")

    surnames, given = split_names(l3)
    table = locations if locations is not None else load_locations()

    return IdentityRecord(
        document_number=number,
        first_surname=surnames[0] if surnames else "",
        second_surname=" ".join(surnames[1:]),
        first_name=given[0] if given else "",
        middle_name=" ".join(given[1:]),
        birth_date=parse_mrz_date(birth_raw, expiry=False, today=today),
        blood_type=BloodType.UNKNOWN,
        gender=_parse_sex(l2[7]),
        family=DocumentFamily.MRZ_TD1,
        location=table.resolve(l1[15:17].replace(FILLER, ""), l1[17:20].replace(FILLER, "")),
        expiry_date=parse_mrz_date(expiry_raw, expiry=True),
        nuip=nuip or None,
        names_truncated=l3[-1] != FILLER,
        confidence=max(MIN_CONFIDENCE, BASE_CONFIDENCE - CHECK_PENALTY * len(failed)),
    )


def _parse_sex(ch: str) -> Gender:
    if ch == "M":
        return Gender.MALE
    if ch == "F":
        return Gender.FEMALE
    return Gender.UNKNOWN
