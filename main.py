"""High-level API + CLI for the ID document scanner."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from documents.errors import ExtractionError, ScanError
from documents.records import DocumentType
from extraction.barcode_layout import build_fixed_layout, parse_fixed_layout
from extraction.mrz import parse_td1
from forensics.engine import ForensicEngine
from pipeline import DocumentScanner, decode_image, load_settings, try_decode_secondary
from pipeline.settings import CONFIG_PATH

logger = logging.getLogger("scanner")


class ScannerAPI:
    """Local entry point to the scanner core, usable from CLI or notebooks."""

    def __init__(self, config_path: Path = CONFIG_PATH):
        self.settings = load_settings(config_path)
        self._scanner: DocumentScanner | None = None

    @property
    def scanner(self) -> DocumentScanner:
        # Built lazily so the parser-only commands never load the OCR engine.
        if self._scanner is None:
            self._scanner = DocumentScanner(settings=self.settings)
        return self._scanner

    def scan_files(self, image: Path, document_type: str, frame2: Path | None = None) -> dict[str, Any]:
        frame2_bytes = frame2.read_bytes() if frame2 else None
        try:
            result = self.scanner.scan(image.read_bytes(), document_type, frame2=frame2_bytes)
        except (ScanError, ValueError) as e:
            # Caller-correctable input problem: same shape as a failed scan.
            logger.warning("Rejected input: %s", e)
            return {"success": False, "authenticityScore": 0, "checks": [], "error": str(e)}
        out = result.to_dict()
        out["processingTimeMs"] = result.processing_time_ms
        return out

    def forensic_report(self, image: Path, frame2: Path | None = None) -> dict[str, Any]:
        primary = decode_image(image.read_bytes(), self.settings.ingestion)
        secondary = try_decode_secondary(frame2.read_bytes() if frame2 else None, self.settings.ingestion)
        return ForensicEngine(self.settings.forensics).evaluate(primary, secondary).to_dict()


# -------------------- CLI commands --------------------

def _dump(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def cmd_scan(args: argparse.Namespace) -> None:
    api = ScannerAPI(args.config)
    _dump(api.scan_files(Path(args.image), args.type, Path(args.frame2) if args.frame2 else None))


def cmd_forensics(args: argparse.Namespace) -> None:
    api = ScannerAPI(args.config)
    _dump(api.forensic_report(Path(args.image), Path(args.frame2) if args.frame2 else None))


def cmd_barcode(args: argparse.Namespace) -> None:
    try:
        record = parse_fixed_layout(Path(args.payload).read_bytes())
    except ExtractionError as e:
        print(f"[barcode] {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)
    _dump(record.to_dict())


def cmd_mrz(args: argparse.Namespace) -> None:
    text = Path(args.textfile).read_text(encoding="utf-8")
    lines = [ln for ln in text.splitlines() if ln.strip()]
    try:
        record = parse_td1(lines)
    except ExtractionError as e:
        print(f"[mrz] {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)
    _dump(record.to_dict())


def cmd_sample_barcode(args: argparse.Namespace) -> None:
    payload = build_fixed_layout(
        document_number="1023456789",
        first_surname="PEREZ",
        second_surname="GOMEZ",
        first_name="MARIA",
        middle_name="FERNANDA",
        gender="F",
        birth_date="19900115",
        department_code="05",
        municipality_code="001",
        blood_type="O+",
        afis_code="12345678",
        fingerprint_card="87654321",
    )
    Path(args.output).write_bytes(payload)
    print(f"[sample-barcode] Wrote {len(payload)} bytes to {args.output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ID document scanner: extraction + authenticity scoring")
    parser.add_argument("--config", type=Path, default=CONFIG_PATH, help="Path to scanner.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    types = [t.value for t in DocumentType]

    scan_p = sub.add_parser("scan", help="Extract identity data and score authenticity of an image")
    scan_p.add_argument("image", help="Primary frame (JPEG/PNG)")
    scan_p.add_argument("--type", required=True, choices=types, help="Document type")
    scan_p.add_argument("--frame2", help="Second frame captured at a different tilt")

    forensic_p = sub.add_parser("forensics", help="Run only the authenticity checks")
    forensic_p.add_argument("image", help="Primary frame (JPEG/PNG)")
    forensic_p.add_argument("--frame2", help="Second frame captured at a different tilt")

    barcode_p = sub.add_parser("barcode", help="Parse a raw 530-byte PDF417 payload file")
    barcode_p.add_argument("payload", help="File holding the raw barcode bytes")

    mrz_p = sub.add_parser("mrz", help="Parse a text file holding the three TD1 MRZ lines")
    mrz_p.add_argument("textfile", help="UTF-8 text file, one MRZ line per row")

    sample_p = sub.add_parser("sample-barcode", help="Write a sample 530-byte payload for testing")
    sample_p.add_argument("output", help="Destination file")

    return parser


LOGGED_PACKAGES = ("scanner", "documents", "extraction", "forensics", "pipeline")


def configure_logging(verbose: bool = False) -> None:
    for name in LOGGED_PACKAGES:
        pkg_logger = logging.getLogger(name)
        if not pkg_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[scan] %(levelname)s %(name)s: %(message)s"))
            pkg_logger.addHandler(handler)
        pkg_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.verbose)

    commands = {
        "scan": cmd_scan,
        "forensics": cmd_forensics,
        "barcode": cmd_barcode,
        "mrz": cmd_mrz,
        "sample-barcode": cmd_sample_barcode,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
