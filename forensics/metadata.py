"""
forensics.metadata — Capture-metadata authenticity check.

Reads the container header of the primary frame with Pillow and grades
how camera-like it is:

* Camera ``Make`` / ``Model`` and an original capture timestamp raise
  the score.
* No EXIF at all is a mild negative: browser capture paths
  (``getUserMedia`` + canvas) legitimately strip it.
* A ``Software`` tag or PNG text chunk naming an image editor or a
  screenshot tool is a strong negative and fails the check outright.
"""

from __future__ import annotations

import io
from typing import Any, Dict, Optional

from PIL import Image

from .base import EXIF_METADATA, AuthenticityCheck, ForensicSettings
from .utils import clamp_score

# EXIF tag ids
TAG_MAKE = 271
TAG_MODEL = 272
TAG_SOFTWARE = 305
TAG_DATETIME = 306
TAG_EXIF_IFD = 0x8769
TAG_DATETIME_ORIGINAL = 36867

BASE_SCORE = 50
SUSPICIOUS_CAP = 10


def read_capture_metadata(encoded: bytes) -> Dict[str, Any]:
    """Extract the metadata fields the check looks at.

    Returns
    -------
    dict
        * ``"format"`` — Pillow format tag (``"JPEG"``, ``"PNG"``, ...).
        * ``"has_exif"`` — Whether any EXIF tag is present.
        * ``"make"`` / ``"model"`` / ``"software"`` — EXIF strings or
          ``None``.
        * ``"datetime_original"`` — Capture timestamp string or ``None``.
        * ``"text_chunks"`` — Lower-cased textual ``info`` entries
          (PNG ``tEXt`` / XMP), used for screenshot markers.
    """
    with Image.open(io.BytesIO(encoded)) as im:
        exif = im.getexif()
        exif_ifd = exif.get_ifd(TAG_EXIF_IFD) if exif else {}
        text_chunks = " ".join(
            str(v).lower() for k, v in im.info.items()
            if isinstance(v, (str, bytes)) and k not in ("icc_profile", "exif")
        )
        return {
            "format": im.format,
            "has_exif": bool(exif) and len(exif) > 0,
            "make": _text(exif.get(TAG_MAKE)),
            "model": _text(exif.get(TAG_MODEL)),
            "software": _text(exif.get(TAG_SOFTWARE)),
            "datetime_original": _text(exif_ifd.get(TAG_DATETIME_ORIGINAL) or exif.get(TAG_DATETIME)),
            "text_chunks": text_chunks,
        }


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("latin-1", "replace")
    value = str(value).strip("\x00 ").strip()
    return value or None


def _suspicious_marker(meta: Dict[str, Any], settings: ForensicSettings) -> Optional[str]:
    haystacks = [(meta.get("software") or "").lower(), meta.get("text_chunks") or ""]
    for marker in settings.suspicious_software:
        for hay in haystacks:
            if marker in hay:
                return marker
    return None


def check_capture_metadata(artifact, settings: ForensicSettings) -> AuthenticityCheck:
    """Score the primary frame's capture metadata."""
    meta = read_capture_metadata(artifact.encoded)
    fmt = meta["format"] or "unknown"

    score = BASE_SCORE
    if fmt == "JPEG":
        score += 10
    elif fmt == "PNG":
        score -= 15
    if meta["make"] or meta["model"]:
        score += 25
    if meta["datetime_original"]:
        score += 10
    if not meta["has_exif"]:
        score -= 10

    camera = " ".join(p for p in (meta["make"], meta["model"]) if p) or "none"
    details = f"format={fmt}, exif={'yes' if meta['has_exif'] else 'no'}, camera={camera}"

    marker = _suspicious_marker(meta, settings)
    if marker is not None:
        return AuthenticityCheck(
            name=EXIF_METADATA,
            passed=False,
            score=min(clamp_score(score), SUSPICIOUS_CAP),
            details=f"{details}, edited or screenshot origin ({marker})",
        )

    score = clamp_score(score)
    return AuthenticityCheck(
        name=EXIF_METADATA,
        passed=score >= settings.metadata_pass_score,
        score=score,
        details=details,
    )
