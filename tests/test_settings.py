import logging

import pytest

from forensics.base import DEFAULT_WEIGHTS
from pipeline.settings import CONFIG_PATH, load_settings


def test_bundled_config_matches_defaults():
    settings = load_settings(CONFIG_PATH)
    assert settings.ingestion.min_width == 320
    assert settings.ingestion.max_payload_bytes == 10 * 1024 * 1024
    assert settings.extraction.default_confidence == 85
    assert settings.forensics.weights == DEFAULT_WEIGHTS
    assert tuple(settings.forensics.edges_aspect_range) == (1.2, 2.0)


def test_missing_file_means_defaults(tmp_path):
    settings = load_settings(tmp_path / "nope.yaml")
    assert settings.forensics.moire_threshold == 0.45
    assert load_settings(None).ingestion.min_height == 240


def test_partial_override_merges_weights(tmp_path):
    cfg = tmp_path / "scanner.yaml"
    cfg.write_text(
        "ingestion:\n"
        "  min_width: 640\n"
        "forensics:\n"
        "  weights:\n"
        "    moire_detection: 40\n"
        "  focus_min_variance: 50\n",
        encoding="utf-8",
    )
    settings = load_settings(cfg)

    assert settings.ingestion.min_width == 640
    assert settings.ingestion.min_height == 240
    assert settings.forensics.weight("moire_detection") == 40
    assert settings.forensics.weight("document_edges") == 25
    assert settings.forensics.focus_min_variance == 50


def test_unknown_keys_are_ignored_with_a_warning(tmp_path, caplog):
    cfg = tmp_path / "scanner.yaml"
    cfg.write_text("extraction:\n  retries: 3\nserver:\n  port: 80\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        settings = load_settings(cfg)
    assert settings.extraction.default_confidence == 85
    assert "extraction.retries" in caplog.text
    assert "server" in caplog.text


def test_non_mapping_section_is_rejected(tmp_path):
    cfg = tmp_path / "scanner.yaml"
    cfg.write_text("forensics:\n  - a\n  - b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="forensics"):
        load_settings(cfg)


def test_empty_file_means_defaults(tmp_path):
    cfg = tmp_path / "scanner.yaml"
    cfg.write_text("", encoding="utf-8")
    assert load_settings(cfg).extraction.default_confidence == 85
