import numpy as np
import pytest
from PIL import Image

from conftest import b64, encode, noise_rgb
from documents.errors import DecodeError, ResolutionTooSmall
from pipeline.ingestion import decode_image, payload_bytes, try_decode_secondary
from pipeline.settings import IngestionSettings


def test_decode_base64_png(noise_png):
    art = decode_image(b64(noise_png))
    assert (art.width, art.height) == (640, 480)
    assert art.format == "PNG"
    assert art.pixels.shape == (480, 640, 3)
    assert art.pixels.dtype == np.uint8
    assert art.encoded == noise_png


def test_pixels_are_read_only(noise_png):
    art = decode_image(noise_png)
    with pytest.raises(ValueError):
        art.pixels[0, 0, 0] = 1


def test_data_url_prefix_is_stripped(noise_png):
    art = decode_image("data:image/png;base64," + b64(noise_png))
    assert art.byte_length == len(noise_png)


def test_payload_bytes_rejects_bad_base64():
    with pytest.raises(DecodeError):
        payload_bytes("this is not base64!")


def test_garbage_bytes_are_a_decode_error():
    with pytest.raises(DecodeError, match="decodable"):
        decode_image(b"\x89PNG" + bytes(4000))


def test_empty_payload_is_a_decode_error():
    with pytest.raises(DecodeError, match="empty"):
        decode_image(b"")


def test_small_garbage_is_a_decode_error():
    with pytest.raises(DecodeError, match="decodable"):
        decode_image(b64(b"x" * 50))


def test_small_flat_image_is_judged_on_resolution():
    data = encode(np.full((150, 200, 3), 200, np.uint8))
    assert len(data) < 1000
    with pytest.raises(ResolutionTooSmall) as exc_info:
        decode_image(data)
    assert (exc_info.value.width, exc_info.value.height) == (200, 150)


def test_flat_image_at_minimum_resolution_decodes():
    data = encode(np.full((240, 320, 3), 200, np.uint8))
    art = decode_image(b64(data))
    assert (art.width, art.height) == (320, 240)
    assert art.byte_length == len(data)


def test_oversized_payload_is_a_decode_error(noise_png):
    settings = IngestionSettings(max_payload_bytes=len(noise_png) - 1)
    with pytest.raises(DecodeError, match="exceeds"):
        decode_image(noise_png, settings)


def test_low_resolution_is_rejected():
    data = encode(noise_rgb(300, 200))
    with pytest.raises(ResolutionTooSmall) as exc_info:
        decode_image(data)
    assert exc_info.value.width == 300
    assert exc_info.value.height == 200


def test_exif_orientation_is_applied():
    exif = Image.Exif()
    exif[274] = 6  # rotate 90 CW on display
    data = encode(noise_rgb(480, 360), "JPEG", exif=exif)
    art = decode_image(data)
    assert (art.width, art.height) == (360, 480)
    assert art.format == "JPEG"


def test_alpha_is_composited_on_white():
    rgba = np.dstack([noise_rgb(400, 300)[..., :3], np.full((300, 400), 255, np.uint8)])
    rgba[:10, :10, 3] = 0
    art = decode_image(encode(rgba))
    assert art.mode == "RGBA"
    assert art.pixels[0, 0].tolist() == [255, 255, 255]


def test_secondary_frame_failure_is_dropped(caplog):
    assert try_decode_secondary(None) is None
    assert try_decode_secondary("   ") is None
    with caplog.at_level("WARNING"):
        assert try_decode_secondary("@@not-an-image@@") is None
    assert "Secondary frame unusable" in caplog.text
