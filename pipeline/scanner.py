"""
DocumentScanner — one request, end to end.

Flow
----
  1. decode_image          — primary frame; input errors propagate
  2. try_decode_secondary  — optional tilted frame; failure only drops it
  3. fan-out               — extraction and forensic scoring run
                             concurrently on the same read-only artifacts
  4. fan-in                — both joined before combining
  5. combine_scores        — 60/40 authenticity score, ScanResult shaping

Caller-correctable input problems (:class:`DecodeError`,
:class:`ResolutionTooSmall`, an unknown document type) are raised to the
caller.  Extraction failure is a normal ``success=False`` result with a
remediation hint.  Anything else, including a missing decoding engine,
is logged with its traceback and reported as a generic internal error.

Usage
-----
    from pipeline import DocumentScanner
    scanner = DocumentScanner()
    result = scanner.scan(frame1_b64, "CC_ANTIGUA", frame2=frame2_b64)
    body = result.to_dict()
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Optional

from documents.locations import LocationTable, load_locations
from documents.records import DocumentType
from extraction.orchestrator import ExtractionOrchestrator, ExtractionOutcome
from extraction.readers import BarcodeReader, PaddleTextReader, TextReader, ZxingBarcodeReader
from forensics.base import AuthenticityCheck, ForensicReport
from forensics.engine import ForensicEngine

from .combiner import combine_scores
from .ingestion import Payload, decode_image, try_decode_secondary
from .results import DOCUMENT_READABLE, ScanResult
from .settings import ScannerSettings, load_settings

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


class DocumentScanner:
    """Stateless scanner; safe to share across threads once constructed."""

    def __init__(
        self,
        settings: Optional[ScannerSettings] = None,
        barcode_reader: Optional[BarcodeReader] = None,
        text_reader: Optional[TextReader] = None,
        locations: Optional[LocationTable] = None,
    ):
        self.settings = settings or load_settings()
        self.orchestrator = ExtractionOrchestrator(
            barcode_reader=barcode_reader or ZxingBarcodeReader(),
            text_reader=text_reader or PaddleTextReader(),
            locations=locations if locations is not None else load_locations(),
        )
        self.forensics = ForensicEngine(self.settings.forensics)

    def scan(
        self,
        frame1: Payload,
        document_type,
        frame2: Optional[Payload] = None,
        today: Optional[date] = None,
    ) -> ScanResult:
        start = time.perf_counter()
        # Pinned per request; places two-digit MRZ birth years in a century.
        today = today or date.today()
        doc_type = DocumentType.parse(document_type)
        logger.info("Scanning document type=%s (frames=%d)", doc_type.value, 2 if frame2 else 1)

        primary = decode_image(frame1, self.settings.ingestion)
        secondary = try_decode_secondary(frame2, self.settings.ingestion)

        report: Optional[ForensicReport] = None
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="scan") as pool:
            extraction_future = pool.submit(self.orchestrator.extract, primary, doc_type, today)
            forensic_future = pool.submit(self.forensics.evaluate, primary, secondary)
            try:
                report = forensic_future.result()
            except Exception:
                logger.exception("Forensic scoring failed")
            try:
                outcome = extraction_future.result()
            except Exception:
                logger.exception("Extraction failed unexpectedly")
                return ScanResult.internal_error(
                    checks=report.checks if report else None,
                    processing_time_ms=_elapsed_ms(start),
                )

        if report is None:
            return ScanResult.internal_error(processing_time_ms=_elapsed_ms(start))
        return self._build_result(outcome, report, start)

    def _build_result(self, outcome: ExtractionOutcome, report: ForensicReport, start: float) -> ScanResult:
        record = outcome.record
        if record is None:
            logger.info("No identity data extracted; forensic score %d", report.score)
            return ScanResult(
                success=False,
                authenticity_score=report.score,
                checks=list(report.checks),
                error=outcome.failure_hint,
                processing_time_ms=_elapsed_ms(start),
            )

        logger.debug("Raw %s text: %r", outcome.method.value, outcome.raw_text)
        combined = combine_scores(
            record.confidence,
            report.score,
            default_confidence=self.settings.extraction.default_confidence,
        )
        readable = AuthenticityCheck(
            name=DOCUMENT_READABLE,
            passed=True,
            score=record.confidence,
            details=f"Document read via {outcome.method.value}",
        )
        elapsed = _elapsed_ms(start)
        logger.info(
            "Scan ok: method=%s extraction=%d forensic=%d combined=%d (%dms)",
            outcome.method.value, record.confidence, report.score, combined, elapsed,
        )
        return ScanResult(
            success=True,
            authenticity_score=combined,
            checks=[readable, *report.checks],
            data=record,
            processing_time_ms=elapsed,
        )
