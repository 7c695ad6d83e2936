"""
extraction.readers — Adapters around the barcode and OCR engines.

Both engines are consumed as capabilities behind small protocols so the
orchestrator can be driven by fakes in tests:

* :class:`ZxingBarcodeReader` — PDF417 decoding with ``zxing-cpp``.
* :class:`PaddleTextReader` — line-level text recognition with PaddleOCR.

Neither package is imported eagerly in a way that breaks the module: a
missing engine surfaces as :class:`~documents.errors.CapabilityUnavailable`
the first time it is actually needed.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

import numpy as np

from documents.errors import CapabilityUnavailable

try:
    import cv2  # type: ignore
except Exception:
    cv2 = None

try:
    import zxingcpp  # type: ignore
except Exception:
    zxingcpp = None

try:
    from paddleocr import PaddleOCR  # type: ignore
except Exception:
    PaddleOCR = None

logger = logging.getLogger(__name__)

# Upper bound on recognised lines kept per OCR call.
_MAX_LINES = 300


@dataclass(frozen=True)
class BarcodeCandidate:
    payload: bytes
    symbology: str


class BarcodeReader(Protocol):
    def read(self, gray: np.ndarray) -> List[BarcodeCandidate]: ...


class TextReader(Protocol):
    def read_lines(self, image: np.ndarray) -> List[str]: ...


# ---------------------------------------------------------------------------
# PDF417 via zxing-cpp
# ---------------------------------------------------------------------------

class ZxingBarcodeReader:
    """Return every PDF417 symbol zxing-cpp finds in a grayscale image."""

    def __init__(self, try_rotate: bool = True):
        self.try_rotate = try_rotate

    def read(self, gray: np.ndarray) -> List[BarcodeCandidate]:
        if zxingcpp is None:
            raise CapabilityUnavailable("zxing-cpp is not installed; PDF417 decoding unavailable")
        results = zxingcpp.read_barcodes(
            np.ascontiguousarray(gray),
            formats=zxingcpp.BarcodeFormat.PDF417,
            try_rotate=self.try_rotate,
        )
        out: List[BarcodeCandidate] = []
        for r in results:
            raw = bytes(r.bytes) if getattr(r, "bytes", None) else (r.text or "").encode("latin-1", "replace")
            if raw:
                out.append(BarcodeCandidate(payload=raw, symbology=str(r.format)))
        return out


# ---------------------------------------------------------------------------
# Text lines via PaddleOCR
# ---------------------------------------------------------------------------

# Module-level singleton: model loading is expensive and the predictor is
# not re-entrant, so construction and inference share one lock.
_OCR_INSTANCE: Optional[Any] = None
_OCR_LOCK = threading.Lock()


def _get_ocr() -> Any:
    global _OCR_INSTANCE
    if PaddleOCR is None:
        raise CapabilityUnavailable("paddleocr is not installed; text-block extraction unavailable")
    if _OCR_INSTANCE is None:
        logger.info("Initialising PaddleOCR engine")
        _OCR_INSTANCE = PaddleOCR(use_angle_cls=True, lang="en")
    return _OCR_INSTANCE


class PaddleTextReader:
    """Recognise text lines in an image, top to bottom."""

    def __init__(self, max_lines: int = _MAX_LINES):
        self.max_lines = max_lines

    def read_lines(self, image: np.ndarray) -> List[str]:
        if image.ndim == 2:
            bgr = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR) if cv2 is not None else np.stack([image] * 3, axis=-1)
        else:
            bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR) if cv2 is not None else image[..., ::-1].copy()

        with _OCR_LOCK:
            ocr = _get_ocr()
            res = ocr.ocr(bgr, cls=True)

        # PaddleOCR output: list of pages, each a list of
        # [box_coords, (text, confidence)] pairs.
        lines: List[str] = []
        for page in res or []:
            for item in page or []:
                _box, (text, _conf) = item
                lines.append(str(text))
        return lines[: self.max_lines]
