"""
extraction.barcode_layout — Fixed-offset parser for the 530-byte PDF417
record printed on the back of legacy citizen cards.

Layout (byte offsets, end exclusive)
------------------------------------
==========  =========================================
  2:10      AFIS code
 24:31      record identifier ``PubDSK_``
 40:48      fingerprint card number
 48:58      document number, zero padded
 58:81      first surname
 81:104     second surname
104:127     first given name
127:150     middle name(s)
151         gender code (``M`` / ``F``)
152:160     birth date ``YYYYMMDD``
160:162     department code
162:165     municipality code
166:169     blood type (``O+``, ``AB-``, ...)
169:177     expiry date ``YYYYMMDD`` (may be blank)
==========  =========================================

Every other byte is reserved or padding (NUL or space).  The payload is
Latin-1 encoded.

Detached names
--------------
Some cards, identity cards for minors among them, close the fingerprint +
number segment with a NUL at byte 58.  The names then follow as
NUL-separated segments (first surname, second surname, given names) and
the demographic block (gender, birth date, codes, blood type, expiry) may
sit past its usual offset, so it is located by pattern instead.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import List, NamedTuple, Optional, Tuple, Union

from documents.errors import MalformedPayload
from documents.locations import LocationTable, load_locations
from documents.records import (
    BiometricReference,
    BloodType,
    DocumentFamily,
    Gender,
    IdentityRecord,
    normalize_name,
)

logger = logging.getLogger(__name__)

RECORD_LENGTH = 530
ENCODING = "latin-1"
IDENTIFIER = b"PubDSK_"

BASELINE_CONFIDENCE = 85
FIELD_PENALTY = 5

_PADDING = b"\x00 "

# ── Field offsets ────────────────────────────────────────────────────

AFIS_CODE = slice(2, 10)
IDENTIFIER_SLOT = slice(24, 31)
FINGERPRINT_CARD = slice(40, 48)
DOCUMENT_NUMBER = slice(48, 58)
FIRST_SURNAME = slice(58, 81)
SECOND_SURNAME = slice(81, 104)
FIRST_NAME = slice(104, 127)
MIDDLE_NAME = slice(127, 150)
GENDER = slice(151, 152)
BIRTH_DATE = slice(152, 160)
DEPARTMENT = slice(160, 162)
MUNICIPALITY = slice(162, 165)
BLOOD_TYPE = slice(166, 169)
EXPIRY_DATE = slice(169, 177)

NAME_FIELDS = (FIRST_SURNAME, SECOND_SURNAME, FIRST_NAME, MIDDLE_NAME)
DEMOGRAPHIC_FIELDS = (GENDER, BIRTH_DATE, DEPARTMENT, MUNICIPALITY, BLOOD_TYPE, EXPIRY_DATE)

# Gender, birth date, department, municipality, blood type, expiry.
_FLOATING_DEMOGRAPHICS = re.compile(
    r"([MF])((?:19|20)\d{6})(\d{2})(\d{3})[\x00 ]?((?:AB|A|B|O)[+-])?[\x00 ]*(\d{8})?"
)

# ── Code tables ──────────────────────────────────────────────────────

GENDER_CODES = {
    "M": Gender.MALE,
    "F": Gender.FEMALE,
}

BLOOD_TYPE_CODES = {bt.value: bt for bt in BloodType if bt is not BloodType.UNKNOWN}


def parse_gender(code: str) -> Gender:
    return GENDER_CODES.get((code or "").strip().upper(), Gender.UNKNOWN)


def parse_blood_type(code: str) -> BloodType:
    """Map a blood-type code to :class:`BloodType`.

    Accepts the symbolic form (``"AB+"``) as well as the spelled-out
    suffixes some issuers print (``"APOS"``, ``"ONEGATIVO"``).
    """
    value = "".join((code or "").upper().split())
    for word, sign in (("POSITIVO", "+"), ("NEGATIVO", "-"), ("POS", "+"), ("NEG", "-")):
        value = value.replace(word, sign)
    return BLOOD_TYPE_CODES.get(value, BloodType.UNKNOWN)


def parse_compact_date(raw: str) -> Optional[date]:
    """Parse ``YYYYMMDD``; anything that is not a real calendar date is None."""
    if len(raw) != 8 or not raw.isdigit():
        return None
    try:
        return date(int(raw[:4]), int(raw[4:6]), int(raw[6:8]))
    except ValueError:
        return None


def _field(data: bytes, where: slice) -> str:
    return data[where].strip(_PADDING).decode(ENCODING).strip()


def _is_filled(data: bytes, where: slice) -> bool:
    """True when a fixed-width field has no trailing padding at all."""
    chunk = data[where]
    return bool(chunk) and chunk[-1:] not in (b"\x00", b" ") and bool(chunk.strip(_PADDING))


class _Demographics(NamedTuple):
    gender: str
    birth_date: str
    department: str
    municipality: str
    blood_type: str
    expiry_date: str


def _fixed_demographics(data: bytes) -> _Demographics:
    return _Demographics(*(_field(data, f) for f in DEMOGRAPHIC_FIELDS))


def has_detached_names(data: bytes) -> bool:
    """True when a NUL closes the number segment and names follow separately."""
    return data[FIRST_SURNAME.start] in _PADDING and bool(data[FIRST_SURNAME.start:GENDER.start].strip(_PADDING))


def _read_detached(data: bytes) -> Tuple[List[str], _Demographics]:
    demo = _fixed_demographics(data)
    names_end = GENDER.start
    if parse_gender(demo.gender) is Gender.UNKNOWN or parse_compact_date(demo.birth_date) is None:
        match = _FLOATING_DEMOGRAPHICS.search(data.decode(ENCODING), FIRST_SURNAME.start)
        if match:
            demo = _Demographics(*(group or "" for group in match.groups()))
            names_end = match.start()

    segments = []
    for chunk in data[FIRST_SURNAME.start:names_end].split(b"\x00"):
        text = chunk.decode(ENCODING).strip()
        if text:
            segments.append(text)
    names = (segments + ["", "", ""])[:3]
    names.append(" ".join(segments[3:]))
    return names, demo


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_fixed_layout(
    payload: Union[bytes, bytearray, str],
    locations: Optional[LocationTable] = None,
) -> IdentityRecord:
    """Decode a 530-byte PDF417 record into an :class:`IdentityRecord`.

    Parameters
    ----------
    payload : bytes or str
        Raw barcode bytes.  Text input is re-encoded as Latin-1, which is
        what the barcode engines hand back for this symbology.
    locations : LocationTable, optional
        Reference table for department / municipality names.  Defaults
        to the process-wide table.

    Returns
    -------
    IdentityRecord
        ``confidence`` starts at 85 and loses 5 points for each field that
        could not be resolved (gender, blood type, location, birth date).

    Raises
    ------
    MalformedPayload
        Wrong length, missing ``PubDSK_`` identifier, or no usable
        document number.
    """
    if isinstance(payload, str):
        try:
            data = payload.encode(ENCODING)
        except UnicodeEncodeError as e:
            raise MalformedPayload(f"Payload is not Latin-1 text: {e}") from e
    else:
        data = bytes(payload)

    if len(data) != RECORD_LENGTH:
        raise MalformedPayload(f"Expected {RECORD_LENGTH} bytes, got {len(data)}")
    if data[IDENTIFIER_SLOT] != IDENTIFIER:
        raise MalformedPayload("Record identifier PubDSK_ not found at offset 24")

    number = _field(data, DOCUMENT_NUMBER).lstrip("0")
    if not number.isdigit():
        raise MalformedPayload("Document number field is empty or not numeric")

    if has_detached_names(data):
        logger.debug("Barcode names detached from the document number; reading segments")
        names, demo = _read_detached(data)
        truncated = False
    else:
        names = [_field(data, f) for f in NAME_FIELDS]
        demo = _fixed_demographics(data)
        truncated = any(_is_filled(data, f) for f in NAME_FIELDS)

    table = locations if locations is not None else load_locations()
    unresolved = []

    gender = parse_gender(demo.gender)
    if gender is Gender.UNKNOWN:
        unresolved.append("gender")

    blood_type = parse_blood_type(demo.blood_type)
    if blood_type is BloodType.UNKNOWN:
        unresolved.append("blood_type")

    location = table.resolve(demo.department, demo.municipality)
    if location is None:
        unresolved.append("location")

    birth_date = parse_compact_date(demo.birth_date)
    if birth_date is None:
        unresolved.append("birth_date")

    biometrics = BiometricReference(
        afis_code=_field(data, AFIS_CODE) or None,
        fingerprint_card=_field(data, FINGERPRINT_CARD) or None,
    )

    if unresolved:
        logger.debug("Barcode record with unresolved fields: %s", ", ".join(unresolved))

    return IdentityRecord(
        document_number=number,
        first_surname=normalize_name(names[0]),
        second_surname=normalize_name(names[1]),
        first_name=normalize_name(names[2]),
        middle_name=normalize_name(names[3]),
        birth_date=birth_date,
        blood_type=blood_type,
        gender=gender,
        family=DocumentFamily.LEGACY_BARCODE,
        location=location,
        biometrics=biometrics if (biometrics.afis_code or biometrics.fingerprint_card) else None,
        expiry_date=parse_compact_date(demo.expiry_date),
        names_truncated=truncated,
        confidence=BASELINE_CONFIDENCE - FIELD_PENALTY * len(unresolved),
    )


def build_fixed_layout(
    *,
    document_number: str,
    first_surname: str = "",
    second_surname: str = "",
    first_name: str = "",
    middle_name: str = "",
    gender: str = "",
    birth_date: str = "",
    department_code: str = "",
    municipality_code: str = "",
    blood_type: str = "",
    expiry_date: str = "",
    afis_code: str = "",
    fingerprint_card: str = "",
    detached_names: bool = False,
) -> bytes:
    """Lay out a record in the format :func:`parse_fixed_layout` reads.

    Used by the ``sample-barcode`` CLI command and by the test fixtures.
    Values longer than their slot are clipped.  ``detached_names`` writes
    the detached arrangement: a NUL closes the number segment and every
    later field sits one byte further on.
    """
    buf = bytearray(b"\x00" * RECORD_LENGTH)

    def put(where: slice, value: str, fill: bytes = b"\x00") -> None:
        width = where.stop - where.start
        raw = value.encode(ENCODING)[:width]
        buf[where] = raw + fill * (width - len(raw))

    buf[IDENTIFIER_SLOT] = IDENTIFIER
    put(AFIS_CODE, afis_code)
    put(FINGERPRINT_CARD, fingerprint_card)
    put(DOCUMENT_NUMBER, document_number.zfill(DOCUMENT_NUMBER.stop - DOCUMENT_NUMBER.start))
    put(FIRST_SURNAME, first_surname)
    put(SECOND_SURNAME, second_surname)
    put(FIRST_NAME, first_name)
    put(MIDDLE_NAME, middle_name)
    put(GENDER, gender)
    put(BIRTH_DATE, birth_date)
    put(DEPARTMENT, department_code)
    put(MUNICIPALITY, municipality_code)
    put(BLOOD_TYPE, blood_type)
    put(EXPIRY_DATE, expiry_date)
    if detached_names:
        buf[FIRST_SURNAME.start + 1:EXPIRY_DATE.stop + 1] = buf[FIRST_SURNAME.start:EXPIRY_DATE.stop]
        buf[FIRST_SURNAME.start] = 0
    return bytes(buf)
