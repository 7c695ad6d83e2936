"""
extraction — Identity-field extraction from a decoded card image.

Modules
-------
orchestrator    ``ExtractionOrchestrator``: family dispatch, rotations, variants.
barcode_layout  Fixed-offset parser for the 530-byte PDF417 record.
mrz             TD1 machine-readable-zone parser and check digits.
mrz_lines       Picks and orders the three MRZ lines out of raw OCR output.
preprocess      OpenCV image variants fed to the engines.
readers         zxing-cpp and PaddleOCR adapters.
"""

from .barcode_layout import parse_fixed_layout
from .mrz import compute_check_digit, parse_td1
from .orchestrator import ExtractionOrchestrator, ExtractionOutcome
from .readers import BarcodeCandidate, PaddleTextReader, ZxingBarcodeReader

__all__ = [
    "BarcodeCandidate",
    "ExtractionOrchestrator",
    "ExtractionOutcome",
    "PaddleTextReader",
    "ZxingBarcodeReader",
    "compute_check_digit",
    "parse_fixed_layout",
    "parse_td1",
]
