"""
documents — Domain model shared by the extraction and forensic layers.

Modules
-------
records     Identity record, enums and reference value objects.
errors      Exception taxonomy raised across the scanner.
locations   Static department / municipality reference table.
"""

from .errors import (
    CapabilityUnavailable,
    DecodeError,
    ExtractionError,
    MalformedMRZ,
    MalformedPayload,
    ResolutionTooSmall,
    ScanError,
    UnexpectedDocumentFamily,
)
from .locations import LocationTable, load_locations
from .records import (
    BiometricReference,
    BloodType,
    DocumentFamily,
    DocumentType,
    ExtractionMethod,
    Gender,
    IdentityRecord,
    LocationReference,
)

__all__ = [
    "BiometricReference",
    "BloodType",
    "CapabilityUnavailable",
    "DecodeError",
    "DocumentFamily",
    "DocumentType",
    "ExtractionError",
    "ExtractionMethod",
    "Gender",
    "IdentityRecord",
    "LocationReference",
    "LocationTable",
    "MalformedMRZ",
    "MalformedPayload",
    "ResolutionTooSmall",
    "ScanError",
    "UnexpectedDocumentFamily",
    "load_locations",
]
