import base64
import io
from typing import Optional

import numpy as np
import pytest
from PIL import Image

from extraction.mrz import compute_check_digit
from pipeline.ingestion import ImageArtifact


def noise_rgb(width: int = 640, height: int = 480, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def encode(arr: np.ndarray, fmt: str = "PNG", **save_kwargs) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def make_artifact(arr: np.ndarray, fmt: str = "PNG", encoded: Optional[bytes] = None) -> ImageArtifact:
    """Artifact built straight from pixels, bypassing ingestion validation."""
    if arr.ndim == 2:
        arr = np.stack([arr] * 3, axis=-1)
    arr = np.ascontiguousarray(arr, dtype=np.uint8)
    data = encoded if encoded is not None else encode(arr, fmt)
    pixels = arr.copy()
    pixels.setflags(write=False)
    return ImageArtifact(
        encoded=data,
        pixels=pixels,
        width=arr.shape[1],
        height=arr.shape[0],
        format=fmt,
        mode="RGB",
        byte_length=len(data),
    )


def build_td1(
    serial: str = "A12345678",
    location: str = "05001",
    birth: str = "900115",
    sex: str = "F",
    expiry: str = "320115",
    nuip: str = "1023456789",
    names: str = "PEREZ<GOMEZ<<MARIA<FERNANDA",
):
    """Three well-formed TD1 lines with valid check digits."""
    cd = compute_check_digit
    l1 = f"I<COL{serial}{cd(serial)}{location}".ljust(30, "<")
    head = f"{birth}{cd(birth)}{sex}{expiry}{cd(expiry)}COL{nuip.ljust(11, '<')}"
    composite = l1[5:30] + head[0:7] + head[8:15] + head[18:29]
    l2 = head + cd(composite)
    l3 = names.ljust(30, "<")
    return [l1, l2, l3]


@pytest.fixture
def noise_png() -> bytes:
    return encode(noise_rgb())


@pytest.fixture
def td1_lines():
    return build_td1()
