import json
import logging
import sys

import pytest

import main
from conftest import build_td1


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["main.py", *argv])
    # Handlers would outlive the per-test capture streams.
    monkeypatch.setattr(main, "configure_logging", lambda verbose=False: None)
    main.main()


def test_configure_logging_is_idempotent():
    main.configure_logging()
    main.configure_logging(verbose=True)
    for name in main.LOGGED_PACKAGES:
        pkg_logger = logging.getLogger(name)
        assert len(pkg_logger.handlers) == 1
        assert pkg_logger.level == logging.DEBUG
        pkg_logger.removeHandler(pkg_logger.handlers[0])
        pkg_logger.setLevel(logging.NOTSET)


def test_parser_requires_document_type():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["scan", "card.jpg"])


def test_sample_barcode_then_parse(tmp_path, monkeypatch, capsys):
    out = tmp_path / "sample.bin"
    _run(monkeypatch, "sample-barcode", str(out))
    assert out.stat().st_size == 530
    capsys.readouterr()

    _run(monkeypatch, "barcode", str(out))
    body = json.loads(capsys.readouterr().out)
    assert body["documentNumber"] == "1023456789"
    assert body["location"]["municipality"] == "Medellín"


def test_barcode_command_rejects_bad_payload(tmp_path, monkeypatch, capsys):
    bad = tmp_path / "bad.bin"
    bad.write_bytes(b"\x00" * 10)
    with pytest.raises(SystemExit) as exc_info:
        _run(monkeypatch, "barcode", str(bad))
    assert exc_info.value.code == 1
    assert "MalformedPayload" in capsys.readouterr().err


def test_mrz_command(tmp_path, monkeypatch, capsys):
    text = tmp_path / "mrz.txt"
    text.write_text("\n".join(build_td1()) + "\n", encoding="utf-8")
    _run(monkeypatch, "mrz", str(text))
    body = json.loads(capsys.readouterr().out)
    assert body["documentFamily"] == "MRZ_TD1"
    assert body["nuip"] == "1023456789"
