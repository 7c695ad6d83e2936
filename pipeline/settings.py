"""
ScannerSettings: tunables for ingestion, extraction and forensic scoring.

Defaults live on the dataclasses; ``configs/scanner.yaml`` overrides them
section by section:

    ingestion:   min_width, min_height, max_payload_bytes
    extraction:  default_confidence
    forensics:   any ForensicSettings field (weights, thresholds, ...)

A missing file means "all defaults".  Unknown keys are logged and ignored
so an older config never breaks a newer build.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from forensics.base import ForensicSettings

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent.parent / "configs" / "scanner.yaml"


@dataclass
class IngestionSettings:
    min_width: int = 320
    min_height: int = 240
    max_payload_bytes: int = 10 * 1024 * 1024


@dataclass
class ExtractionSettings:
    # Used by the combiner when a record carries no confidence of its own.
    default_confidence: int = 85


@dataclass
class ScannerSettings:
    ingestion: IngestionSettings = field(default_factory=IngestionSettings)
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    forensics: ForensicSettings = field(default_factory=ForensicSettings)


def _apply(target: Any, section: str, values: Optional[Dict[str, Any]]) -> None:
    if not values:
        return
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{section}' must be a mapping")
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %s.%s", section, key)
            continue
        if key == "weights":
            merged = dict(target.weights)
            merged.update({str(k): int(v) for k, v in value.items()})
            value = merged
        setattr(target, key, value)


def load_settings(path: Union[str, Path, None] = CONFIG_PATH) -> ScannerSettings:
    """Build :class:`ScannerSettings` from defaults plus the YAML file at *path*."""
    settings = ScannerSettings()
    if path is None:
        return settings
    p = Path(path)
    if not p.exists():
        logger.debug("No config at %s, using defaults", p)
        return settings

    with open(p, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    for key in cfg:
        if key not in ("ingestion", "extraction", "forensics"):
            logger.warning("Ignoring unknown config section %s", key)
    _apply(settings.ingestion, "ingestion", cfg.get("ingestion"))
    _apply(settings.extraction, "extraction", cfg.get("extraction"))
    _apply(settings.forensics, "forensics", cfg.get("forensics"))
    logger.debug("Loaded scanner settings from %s", p)
    return settings
