"""
documents.records — Identity record and the value objects around it.

Every ambiguous field is modelled as an explicit enum with an ``UNKNOWN``
member; ``None`` is reserved for "not carried by this document family".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Gender(str, Enum):
    MALE = "M"
    FEMALE = "F"
    UNKNOWN = "UNKNOWN"


class BloodType(str, Enum):
    O_POS = "O+"
    O_NEG = "O-"
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    UNKNOWN = "UNKNOWN"


class DocumentFamily(str, Enum):
    """How identity data is physically embedded in the document."""

    LEGACY_BARCODE = "LEGACY_BARCODE"   # 530-byte PDF417 record
    MRZ_TD1 = "MRZ_TD1"                 # 3x30 machine-readable zone


class ExtractionMethod(str, Enum):
    BARCODE = "barcode"
    TEXT_BLOCK = "mrz"


class DocumentType(str, Enum):
    """Document-type selector sent by the client."""

    CC_ANTIGUA = "CC_ANTIGUA"   # yellow citizen card, PDF417 on the back
    CC_NUEVA = "CC_NUEVA"       # digital citizen card, TD1 MRZ on the back
    TI = "TI"                   # minor's identity card, PDF417
    CE = "CE"                   # foreigner's card, TD1 MRZ

    @property
    def family(self) -> DocumentFamily:
        return _FAMILY_BY_TYPE[self]

    @classmethod
    def parse(cls, value: "DocumentType | str") -> "DocumentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown document type '{value}' (expected one of: {valid})") from None


_FAMILY_BY_TYPE = {
    DocumentType.CC_ANTIGUA: DocumentFamily.LEGACY_BARCODE,
    DocumentType.TI: DocumentFamily.LEGACY_BARCODE,
    DocumentType.CC_NUEVA: DocumentFamily.MRZ_TD1,
    DocumentType.CE: DocumentFamily.MRZ_TD1,
}


# ---------------------------------------------------------------------------
# Reference value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LocationReference:
    department_code: str
    department: str
    municipality_code: str
    municipality: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "departmentCode": self.department_code,
            "department": self.department,
            "municipalityCode": self.municipality_code,
            "municipality": self.municipality,
        }


@dataclass(frozen=True)
class BiometricReference:
    afis_code: Optional[str] = None
    fingerprint_card: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"afisCode": self.afis_code, "fingerprintCard": self.fingerprint_card}


# ---------------------------------------------------------------------------
# Identity record
# ---------------------------------------------------------------------------

@dataclass
class IdentityRecord:
    """Identity fields decoded from one document, plus extraction confidence."""

    document_number: str
    first_surname: str
    second_surname: str
    first_name: str
    middle_name: str
    birth_date: Optional[date]
    blood_type: BloodType
    gender: Gender
    family: DocumentFamily
    location: Optional[LocationReference] = None
    biometrics: Optional[BiometricReference] = None
    expiry_date: Optional[date] = None
    nuip: Optional[str] = None
    names_truncated: bool = False
    confidence: int = 0

    def __post_init__(self) -> None:
        if not self.document_number:
            raise ValueError("document_number must be non-empty")
        self.confidence = max(0, min(100, int(self.confidence)))

    @property
    def given_names(self) -> str:
        return " ".join(p for p in (self.first_name, self.middle_name) if p)

    @property
    def surnames(self) -> str:
        return " ".join(p for p in (self.first_surname, self.second_surname) if p)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "documentNumber": self.document_number,
            "firstSurname": self.first_surname,
            "secondSurname": self.second_surname,
            "firstName": self.first_name,
            "middleName": self.middle_name,
            "givenNames": self.given_names,
            "birthDate": self.birth_date.isoformat() if self.birth_date else None,
            "bloodType": self.blood_type.value,
            "gender": self.gender.value,
            "documentFamily": self.family.value,
            "namesTruncated": self.names_truncated,
            "confidence": self.confidence,
        }
        if self.location is not None:
            out["location"] = self.location.to_dict()
        if self.biometrics is not None:
            out["biometrics"] = self.biometrics.to_dict()
        if self.expiry_date is not None:
            out["expiryDate"] = self.expiry_date.isoformat()
        if self.nuip:
            out["nuip"] = self.nuip
        return out


# ---------------------------------------------------------------------------
# Shared field helpers
# ---------------------------------------------------------------------------

def normalize_name(raw: str) -> str:
    """Collapse whitespace and title-case a name component.

    ``"MARIA  DEL  CARMEN"`` -> ``"Maria Del Carmen"``.
    """
    words = raw.replace("<", " ").split()
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def mask_document_number(number: str) -> str:
    """Keep only the last four digits, for log lines."""
    if len(number) <= 4:
        return "*" * len(number)
    return "*" * (len(number) - 4) + number[-4:]
