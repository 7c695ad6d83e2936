"""
extraction.orchestrator — Turn a decoded frame into an identity record.

The document type picked by the client fixes the family, and the family
fixes the strategy::

    Start ─┬─ LEGACY_BARCODE ─> AttemptBarcode ──┐
           └─ MRZ_TD1 ────────> AttemptTextBlock ┴─> Normalize ─> Done | Failed

A request never falls back from one family to the other: the barcode zone
and the MRZ zone need different captures.

Within a family, each orientation x preprocessing variant is tried in
turn and the first candidate that survives the field parser wins.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from documents.errors import ExtractionError
from documents.locations import LocationTable, load_locations
from documents.records import (
    DocumentFamily,
    DocumentType,
    ExtractionMethod,
    IdentityRecord,
    mask_document_number,
)

from . import preprocess
from .barcode_layout import parse_fixed_layout
from .mrz import parse_td1
from .mrz_lines import detect_td1
from .readers import BarcodeReader, TextReader

logger = logging.getLogger(__name__)

FAILURE_HINTS = {
    DocumentFamily.LEGACY_BARCODE: (
        "Could not read the barcode. Make sure the PDF417 code on the back of "
        "the card is fully visible, in focus and well lit."
    ),
    DocumentFamily.MRZ_TD1: (
        "Could not read the machine-readable zone. Make sure the three lines "
        "of text at the bottom of the card are visible and free of glare."
    ),
}

_RAW_TEXT_CHARS = 100


@dataclass
class ExtractionOutcome:
    """What the orchestrator hands back to the scanner."""

    method: ExtractionMethod
    record: Optional[IdentityRecord]
    processing_time_ms: int
    failure_hint: Optional[str] = None
    raw_text: Optional[str] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.record is not None


def is_plausible_td1(record: IdentityRecord) -> bool:
    """Reject parses of OCR noise that happen to have the right shape."""
    if not re.fullmatch(r"[0-9]{6,12}", record.document_number or ""):
        return False
    if record.birth_date is None:
        return False
    letters = re.sub(r"[^A-Za-zÁÉÍÓÚÜÑáéíóúüñ]", "", record.given_names + record.surnames)
    return len(letters) >= 4


class ExtractionOrchestrator:
    """Dispatch a frame to the barcode or MRZ strategy for its family."""

    def __init__(
        self,
        barcode_reader: BarcodeReader,
        text_reader: TextReader,
        locations: Optional[LocationTable] = None,
        today: Optional[date] = None,
    ):
        self.barcode_reader = barcode_reader
        self.text_reader = text_reader
        self.locations = locations if locations is not None else load_locations()
        # Reference date for the MRZ birth-year century; None means the clock.
        self.today = today

    def extract(self, image, document_type: DocumentType, today: Optional[date] = None) -> ExtractionOutcome:
        """Run the family strategy for *document_type* against *image*.

        *image* is an :class:`~pipeline.ingestion.ImageArtifact` or a bare
        RGB array.  Parser failures become a failed outcome tagged with
        the method that was attempted; a missing engine raises
        :class:`CapabilityUnavailable`.  *today* overrides the reference
        date used to place two-digit MRZ birth years.
        """
        pixels = getattr(image, "pixels", image)
        family = DocumentType.parse(document_type).family
        reference = today or self.today or date.today()
        start = time.perf_counter()

        if family is DocumentFamily.LEGACY_BARCODE:
            method = ExtractionMethod.BARCODE
            record, raw, attempts = self._attempt_barcode(pixels)
        elif family is DocumentFamily.MRZ_TD1:
            method = ExtractionMethod.TEXT_BLOCK
            record, raw, attempts = self._attempt_text_block(pixels, reference)
        else:
            raise ValueError(f"Unsupported document family: {family}")

        elapsed = int(round((time.perf_counter() - start) * 1000))
        if record is None:
            logger.info("Extraction failed for %s after %d attempts (%dms)", family.value, attempts, elapsed)
            return ExtractionOutcome(
                method=method,
                record=None,
                processing_time_ms=elapsed,
                failure_hint=FAILURE_HINTS[family],
                attempts=attempts,
            )

        logger.info(
            "Extracted %s via %s (confidence=%d, %dms)",
            mask_document_number(record.document_number), method.value, record.confidence, elapsed,
        )
        return ExtractionOutcome(
            method=method,
            record=record,
            processing_time_ms=elapsed,
            raw_text=raw,
            attempts=attempts,
        )

    # ------------------------------------------------------------------
    # Barcode family
    # ------------------------------------------------------------------

    def _attempt_barcode(self, pixels):
        attempts = 0
        for degrees, img in preprocess.oriented(pixels):
            for label, variant in preprocess.barcode_variants(img):
                attempts += 1
                candidates = self.barcode_reader.read(variant)
                for cand in candidates:
                    try:
                        record = parse_fixed_layout(cand.payload, self.locations)
                    except ExtractionError as e:
                        logger.warning("PDF417 decoded (%s, rot%d) but rejected: %s", label, degrees, e)
                        continue
                    if degrees:
                        logger.info("PDF417 read after rotating %d degrees", degrees)
                    raw = cand.payload[:_RAW_TEXT_CHARS].decode("latin-1")
                    return record, raw, attempts
                logger.debug("No PDF417 in variant %s (rot%d)", label, degrees)
        return None, None, attempts

    # ------------------------------------------------------------------
    # Text-block family
    # ------------------------------------------------------------------

    def _attempt_text_block(self, pixels, today: date):
        attempts = 0
        for degrees, img in preprocess.oriented(pixels):
            collected: List[str] = []
            for label, variant in preprocess.mrz_variants(img):
                attempts += 1
                lines = self.text_reader.read_lines(variant)
                logger.debug("OCR variant %s (rot%d): %d lines", label, degrees, len(lines))
                collected.extend(lines)

                detected = detect_td1(collected)
                if detected is None:
                    continue
                record = self._parse_detection(detected, today)
                if record is not None:
                    if degrees:
                        logger.info("MRZ read after rotating %d degrees", degrees)
                    return record, " | ".join(detected), attempts
                # Later variants only add lines to a rejected detection.
                break
        return None, None, attempts

    def _parse_detection(self, lines: List[str], today: date) -> Optional[IdentityRecord]:
        try:
            record = parse_td1(lines, self.locations, today=today)
        except ExtractionError as e:
            logger.warning("MRZ lines detected but rejected: %s", e)
            return None
        if not is_plausible_td1(record):
            logger.warning("MRZ discarded as implausible (doc=%s)", mask_document_number(record.document_number))
            return None
        return record
