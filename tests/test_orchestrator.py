from datetime import date
from unittest.mock import MagicMock

import pytest

from conftest import build_td1, make_artifact, noise_rgb
from documents.errors import CapabilityUnavailable
from documents.records import DocumentType, ExtractionMethod
from extraction import preprocess, readers
from extraction.barcode_layout import build_fixed_layout
from extraction.orchestrator import FAILURE_HINTS, ExtractionOrchestrator
from extraction.readers import BarcodeCandidate, PaddleTextReader, ZxingBarcodeReader


def _payload(number="1023456789", **extra) -> bytes:
    return build_fixed_layout(
        document_number=number,
        first_surname="PEREZ",
        first_name="JUAN",
        gender="M",
        birth_date="19851231",
        department_code="11",
        municipality_code="001",
        blood_type="A+",
        **extra,
    )


def _orchestrator(barcode=None, text=None) -> ExtractionOrchestrator:
    barcode = barcode or MagicMock()
    text = text or MagicMock()
    return ExtractionOrchestrator(barcode_reader=barcode, text_reader=text)


def test_barcode_family_reads_pdf417():
    barcode = MagicMock()
    barcode.read.return_value = [BarcodeCandidate(payload=_payload(), symbology="PDF417")]
    text = MagicMock()

    outcome = _orchestrator(barcode, text).extract(make_artifact(noise_rgb()), DocumentType.CC_ANTIGUA)

    assert outcome.succeeded
    assert outcome.method is ExtractionMethod.BARCODE
    assert outcome.record.document_number == "1023456789"
    assert outcome.record.location.municipality == "Bogotá D.C."
    assert outcome.attempts == 1
    text.read_lines.assert_not_called()


def test_rejected_candidate_moves_on_to_next_variant():
    barcode = MagicMock()
    barcode.read.side_effect = [
        [BarcodeCandidate(payload=b"short garbage", symbology="PDF417")],
        [],
        [BarcodeCandidate(payload=_payload("52123"), symbology="PDF417")],
    ]
    outcome = _orchestrator(barcode).extract(noise_rgb(), "TI")

    assert outcome.record.document_number == "52123"
    assert outcome.attempts == 3


def test_barcode_failure_returns_hint_after_every_variant():
    barcode = MagicMock()
    barcode.read.return_value = []
    img = noise_rgb()

    outcome = _orchestrator(barcode).extract(img, DocumentType.CC_ANTIGUA)

    expected = sum(len(preprocess.barcode_variants(rotated)) for _, rotated in preprocess.oriented(img))
    assert not outcome.succeeded
    assert outcome.method is ExtractionMethod.BARCODE
    assert outcome.record is None
    assert outcome.failure_hint == FAILURE_HINTS[DocumentType.CC_ANTIGUA.family]
    assert outcome.attempts == expected


def test_mrz_family_reads_text_block(td1_lines):
    text = MagicMock()
    text.read_lines.return_value = ["REPUBLICA DE COLOMBIA", *td1_lines]
    barcode = MagicMock()

    outcome = _orchestrator(barcode, text).extract(noise_rgb(), DocumentType.CC_NUEVA)

    assert outcome.succeeded
    assert outcome.method is ExtractionMethod.TEXT_BLOCK
    assert outcome.record.nuip == "1023456789"
    assert outcome.raw_text == " | ".join(td1_lines)
    barcode.read.assert_not_called()


def test_mrz_lines_split_across_variants_are_accumulated(td1_lines):
    text = MagicMock()
    text.read_lines.side_effect = [[td1_lines[0]], [td1_lines[1], td1_lines[2]]] + [[]] * 100

    outcome = _orchestrator(text=text).extract(noise_rgb(), DocumentType.CE)

    assert outcome.succeeded
    assert outcome.attempts == 2


def test_mrz_failure_never_falls_back_to_barcode():
    barcode = MagicMock()
    barcode.read.return_value = [BarcodeCandidate(payload=_payload(), symbology="PDF417")]
    text = MagicMock()
    text.read_lines.return_value = ["nothing useful here"]

    outcome = _orchestrator(barcode, text).extract(noise_rgb(), DocumentType.CE)

    assert not outcome.succeeded
    assert outcome.method is ExtractionMethod.TEXT_BLOCK
    assert outcome.failure_hint == FAILURE_HINTS[DocumentType.CE.family]
    barcode.read.assert_not_called()


def test_missing_engine_propagates():
    barcode = MagicMock()
    barcode.read.side_effect = CapabilityUnavailable("no zxing")
    with pytest.raises(CapabilityUnavailable):
        _orchestrator(barcode).extract(noise_rgb(), DocumentType.CC_ANTIGUA)


def test_zxing_reader_without_engine(monkeypatch):
    monkeypatch.setattr(readers, "zxingcpp", None)
    with pytest.raises(CapabilityUnavailable):
        ZxingBarcodeReader().read(noise_rgb()[..., 0])


def test_paddle_reader_without_engine(monkeypatch):
    monkeypatch.setattr(readers, "PaddleOCR", None)
    monkeypatch.setattr(readers, "_OCR_INSTANCE", None)
    with pytest.raises(CapabilityUnavailable):
        PaddleTextReader().read_lines(noise_rgb()[..., 0])


def test_paddle_reader_flattens_pages(monkeypatch):
    engine = MagicMock()
    engine.ocr.return_value = [
        [[[[0, 0], [1, 0], [1, 1], [0, 1]], ("I<COL", 0.98)], [[[0, 2], [1, 2], [1, 3], [0, 3]], ("PEREZ", 0.91)]],
        None,
    ]
    monkeypatch.setattr(readers, "PaddleOCR", MagicMock())
    monkeypatch.setattr(readers, "_OCR_INSTANCE", engine)

    assert PaddleTextReader().read_lines(noise_rgb()) == ["I<COL", "PEREZ"]
    engine.ocr.assert_called_once()


def test_birth_century_follows_the_reference_date():
    text = MagicMock()
    text.read_lines.return_value = build_td1(birth="270101")
    orchestrator = ExtractionOrchestrator(barcode_reader=MagicMock(), text_reader=text, today=date(2026, 6, 1))

    assert orchestrator.extract(noise_rgb(), DocumentType.CC_NUEVA).record.birth_date == date(1927, 1, 1)
    later = orchestrator.extract(noise_rgb(), DocumentType.CC_NUEVA, today=date(2027, 6, 1))
    assert later.record.birth_date == date(2027, 1, 1)


def test_identity_card_with_detached_names():
    barcode = MagicMock()
    payload = _payload("1098765432", second_surname="ROJAS", detached_names=True)
    barcode.read.return_value = [BarcodeCandidate(payload=payload, symbology="PDF417")]

    outcome = _orchestrator(barcode).extract(noise_rgb(), DocumentType.TI)

    assert outcome.method is ExtractionMethod.BARCODE
    assert outcome.record.document_number == "1098765432"
    assert outcome.record.first_surname == "Perez"
    assert outcome.record.second_surname == "Rojas"
    assert outcome.record.first_name == "Juan"
    assert outcome.record.birth_date == date(1985, 12, 31)
    assert outcome.record.confidence == 85
