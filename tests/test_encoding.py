import numpy as np
import pytest
from cropkit.domain.types import MIME_JPEG, MIME_PNG, MIME_WEBP
from cropkit.kernel.image.encoding import encode_rgba, extension_for, pil_format, pil_quality, to_data_uri
from image_helpers import decode_image


def test_pil_quality():
    assert pil_quality(0.85) == 85
    assert pil_quality(0.0) == 1
    assert pil_quality(1.0) == 100


def test_extension_for():
    assert extension_for(MIME_JPEG) == "jpg"
    assert extension_for(MIME_PNG) == "png"
    assert extension_for(MIME_WEBP) == "webp"
    assert extension_for("image/gif") == "gif"


def test_pil_format_rejects_unknown():
    with pytest.raises(ValueError):
        pil_format("image/bmp")


def test_jpeg_flattens_onto_background():
    transparent = np.zeros((16, 16, 4), dtype=np.uint8)

    black = np.asarray(decode_image(encode_rgba(transparent, MIME_JPEG, 0.9)))
    assert black.shape == (16, 16, 3)
    assert black.max() <= 5

    white = np.asarray(decode_image(encode_rgba(transparent, MIME_JPEG, 0.9, "#ffffff")))
    assert white.min() >= 250


def test_png_keeps_alpha():
    pixels = np.zeros((4, 4, 4), dtype=np.uint8)
    pixels[1, 2] = (10, 20, 30, 128)
    img = decode_image(encode_rgba(pixels, MIME_PNG, 0.5))
    assert img.mode == "RGBA"
    assert np.array_equal(np.asarray(img), pixels)


def test_webp_encodes():
    pixels = np.full((8, 8, 4), 255, dtype=np.uint8)
    img = decode_image(encode_rgba(pixels, MIME_WEBP, 0.8))
    assert img.format == "WEBP"
    assert img.size == (8, 8)


def test_to_data_uri():
    assert to_data_uri(b"abc", MIME_PNG) == "data:image/png;base64,YWJj"
