"""Exception taxonomy for the document scanner."""

from __future__ import annotations


class ScanError(Exception):
    """Base class for every error raised by the scanner core."""


# ---------------------------------------------------------------------------
# Caller-correctable input errors
# ---------------------------------------------------------------------------

class DecodeError(ScanError):
    """The payload is not a decodable raster image."""


class ResolutionTooSmall(ScanError):
    """The decoded image is below the minimum usable resolution."""

    def __init__(self, width: int, height: int, min_width: int, min_height: int):
        self.width = width
        self.height = height
        self.min_width = min_width
        self.min_height = min_height
        super().__init__(
            f"Image is {width}x{height}, minimum is {min_width}x{min_height}"
        )


# ---------------------------------------------------------------------------
# Parser errors (never escape the extraction orchestrator)
# ---------------------------------------------------------------------------

class ExtractionError(ScanError):
    """A decoded payload could not be turned into an identity record."""


class MalformedPayload(ExtractionError):
    """A barcode payload does not follow the fixed-offset layout."""


class MalformedMRZ(ExtractionError):
    """A text block is not a well-formed 3x30 TD1 zone."""


class UnexpectedDocumentFamily(ExtractionError):
    """The payload is well formed but belongs to another document family."""


# ---------------------------------------------------------------------------
# Internal failures
# ---------------------------------------------------------------------------

class CapabilityUnavailable(ScanError):
    """A required decoding engine (barcode or OCR) is not installed."""
