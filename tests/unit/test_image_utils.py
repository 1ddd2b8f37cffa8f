"""Unit tests for image utility functions."""

import io

import pytest
from PIL import Image

from stylematch.utils.exceptions import ImageProcessingError
from stylematch.utils.image_utils import (
    extract_dominant_colors,
    hex_to_rgb,
    load_image_bytes,
    open_image,
    rgb_to_hex,
)


class TestLoadImageBytes:
    """Test image loading."""

    def test_bytes_passthrough(self, sample_image_bytes):
        assert load_image_bytes(sample_image_bytes) == sample_image_bytes

    def test_from_path(self, tmp_path, sample_image):
        path = tmp_path / "photo.jpg"
        sample_image.save(path)
        assert load_image_bytes(path) == path.read_bytes()
        assert load_image_bytes(str(path)) == path.read_bytes()

    def test_from_pil_image(self, sample_image):
        data = load_image_bytes(sample_image)
        assert open_image(data).size == (64, 64)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageProcessingError) as exc_info:
            load_image_bytes(tmp_path / "nope.png")
        assert "nope.png" in exc_info.value.context["image_path"]

    def test_empty(self):
        with pytest.raises(ImageProcessingError):
            load_image_bytes(b"")

    def test_too_large(self):
        with pytest.raises(ImageProcessingError):
            load_image_bytes(b"\x00" * 4096, max_image_mb=0.001)

    def test_unsupported_type(self):
        with pytest.raises(ImageProcessingError):
            load_image_bytes(12345)


class TestOpenImage:
    """Test decoding."""

    def test_converts_to_rgb(self):
        buffer = io.BytesIO()
        Image.new("L", (10, 10), color=128).save(buffer, format="PNG")
        assert open_image(buffer.getvalue()).mode == "RGB"

    def test_corrupted(self):
        with pytest.raises(ImageProcessingError):
            open_image(b"not an image")


class TestColors:
    """Test color helpers."""

    def test_hex_roundtrip_values(self):
        assert rgb_to_hex((212, 175, 55)) == "#d4af37"
        assert hex_to_rgb("#D4AF37") == (212, 175, 55)
        assert hex_to_rgb("#fff") == (255, 255, 255)

    def test_hex_invalid(self):
        with pytest.raises(ValueError):
            hex_to_rgb("#12")

    def test_dominant_colors_of_solid_image(self, sample_image_bytes):
        assert extract_dominant_colors(sample_image_bytes, count=3) == ["#c81e1e"]

    def test_dominant_colors_two_tone(self, two_tone_image_bytes):
        colors = extract_dominant_colors(two_tone_image_bytes, count=2)
        assert set(colors) == {"#000000", "#d4af37"}

    def test_zero_count(self, sample_image_bytes):
        assert extract_dominant_colors(sample_image_bytes, count=0) == []
