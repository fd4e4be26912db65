"""Tests for profile photo and logo optimization."""

import base64
import io
import random

import pytest
from PIL import Image

from card_photo_crop.models import FacePosition
from card_photo_crop.optimize import (
    compress_to_target_size, optimize_cropped_image, optimize_logo,
    optimize_profile_photo, square_crop_box, to_data_url,
)
from card_photo_crop.rasterizer import encode_image


def _noise(w, h, seed=7):
    """Incompressible-ish test image so JPEG sizes depend on quality."""
    rnd = random.Random(seed)
    return Image.frombytes("RGB", (w, h), bytes(rnd.randrange(256) for _ in range(w * h * 3)))


class TestSquareCropBox:
    def test_centered_without_face(self):
        assert square_crop_box(1000, 500) == (250, 0, 750, 500)

    def test_face_centered(self):
        assert square_crop_box(1000, 500, FacePosition(30, 50)) == (50, 0, 550, 500)

    def test_face_near_edge_is_clamped(self):
        assert square_crop_box(1000, 500, FacePosition(95, 50)) == (500, 0, 1000, 500)
        assert square_crop_box(500, 1000, FacePosition(50, 2)) == (0, 0, 500, 500)


class TestCompressToTargetSize:
    def test_small_image_stays_under_target(self):
        data = compress_to_target_size(Image.new("RGB", (64, 64), (200, 10, 10)), target_kb=200)
        assert len(data) / 1024 <= 200
        assert Image.open(io.BytesIO(data)).format == "JPEG"

    def test_noisy_image_searches_down(self):
        img = _noise(256, 256)
        high = encode_image(img, "JPEG", 92)
        target_kb = len(high) / 1024 * 0.6
        data = compress_to_target_size(img, target_kb=target_kb)
        assert len(data) < len(high)


class TestProfilePhoto:
    def test_output_is_square_jpeg(self):
        result = optimize_profile_photo(Image.new("RGB", (900, 600), "white"))
        assert (result.width, result.height) == (512, 512)
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.size == (512, 512)
            assert img.format == "JPEG"
        assert result.size_kb == round(len(result.data) / 1024)

    def test_face_side_is_kept(self):
        img = Image.new("RGB", (300, 100), (0, 0, 255))
        img.paste((255, 0, 0), (0, 0, 100, 100))
        result = optimize_profile_photo(img, FacePosition(10, 50), output_size=64)
        with Image.open(io.BytesIO(result.data)) as out:
            r, g, b = out.convert("RGB").getpixel((32, 32))
        assert r > 200 and b < 60


def test_optimize_cropped_image_reencodes_as_jpeg():
    webp = encode_image(Image.new("RGB", (512, 512), "green"), "WEBP", 85)
    result = optimize_cropped_image(webp)
    assert (result.width, result.height) == (512, 512)
    assert Image.open(io.BytesIO(result.data)).format == "JPEG"


class TestLogo:
    @pytest.mark.parametrize("size, expected", [
        ((1200, 300), (600, 150)),
        ((400, 600), (200, 300)),
        ((300, 100), (300, 100)),
    ])
    def test_fits_bounds_without_enlarging(self, size, expected):
        result = optimize_logo(Image.new("RGB", size, "white"))
        assert (result.width, result.height) == expected

    def test_png_keeps_transparency(self):
        result = optimize_logo(Image.new("RGBA", (800, 200), (0, 0, 0, 0)), keep_png=True)
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.format == "PNG"
            assert img.mode == "RGBA"
            assert img.size == (600, 150)


def test_data_url_is_downscaled_jpeg():
    url = to_data_url(Image.new("RGB", (3200, 1600), "white"))
    prefix = "data:image/jpeg;base64,"
    assert url.startswith(prefix)
    with Image.open(io.BytesIO(base64.b64decode(url[len(prefix):]))) as img:
        assert img.size == (1600, 800)
