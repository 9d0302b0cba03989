"""
Tests for the image normalizer.

Bounds, aspect ratio, re-encoding and failure modes.
"""
import base64
import io

import pytest
from PIL import Image

from conftest import make_image_bytes
from errors import ImageLoadError, ImageReadError, ImageTooLargeError
from normalizer import REQUEST_ENVELOPE_BYTES, fit_within, normalize_image
from session import SourceImage


def decode(normalized):
    return Image.open(io.BytesIO(base64.b64decode(normalized.data)))


class TestFitWithin:
    """Pure dimension math."""

    @pytest.mark.parametrize("size,expected", [
        ((2000, 1000), (1024, 512)),
        ((1000, 2000), (512, 1024)),
        ((3000, 3000), (1024, 1024)),
        ((4032, 3024), (1024, 768)),
        ((1500, 1001), (1024, 683)),
        ((1100, 200), (1024, 186)),
        ((20000, 10), (1024, 1)),
    ])
    def test_scales_down(self, size, expected):
        assert fit_within(*size) == expected

    @pytest.mark.parametrize("size", [(1024, 1024), (800, 600), (1, 1), (1024, 10)])
    def test_within_bounds_unchanged(self, size):
        assert fit_within(*size) == size

    @pytest.mark.parametrize("size", [(5000, 400), (400, 5000), (1200, 1199), (1199, 1200), (777, 3333)])
    def test_never_exceeds_bounds_and_keeps_ratio(self, size):
        width, height = fit_within(*size)

        assert width <= 1024 and height <= 1024
        ratio = size[0] / size[1]
        assert abs(width / height - ratio) / ratio < 0.01

    def test_non_square_bounds(self):
        # Landscape but height is still the limiting side.
        assert fit_within(1600, 1200, max_width=1200, max_height=600) == (800, 600)
        assert fit_within(1000, 1200, max_width=500, max_height=1000) == (500, 600)


class TestNormalizeImage:
    """End-to-end behaviour on real encoded images."""

    def test_landscape_is_downsampled(self):
        result = normalize_image(make_image_bytes(2000, 1000))

        assert (result.width, result.height) == (1024, 512)
        assert decode(result).size == (1024, 512)
        assert decode(result).format == "JPEG"
        assert result.mime_type == "image/jpeg"

    def test_portrait_is_downsampled(self):
        result = normalize_image(make_image_bytes(900, 1800))

        assert decode(result).size == (512, 1024)

    def test_small_image_keeps_size_but_is_jpeg(self):
        result = normalize_image(make_image_bytes(320, 240, fmt="PNG"))

        img = decode(result)
        assert img.size == (320, 240)
        assert img.format == "JPEG"

    def test_output_has_no_data_uri_prefix(self):
        result = normalize_image(make_image_bytes(10, 10))

        assert not result.data.startswith("data:")
        base64.b64decode(result.data, validate=True)

    def test_transparency_is_flattened(self):
        result = normalize_image(make_image_bytes(50, 40, mode="RGBA", fmt="PNG"))

        img = decode(result)
        assert img.mode == "RGB"
        assert img.size == (50, 40)

    def test_accepts_path_file_object_and_source_image(self, tmp_path):
        raw = make_image_bytes(1200, 600)
        path = tmp_path / "me.jpg"
        path.write_bytes(raw)

        from_path = normalize_image(str(path))
        from_file = normalize_image(io.BytesIO(raw))
        from_source = normalize_image(SourceImage(data=raw, filename="me.jpg"))

        assert (from_path.width, from_path.height) == (1024, 512)
        assert from_file.data == from_path.data == from_source.data

    def test_custom_bounds(self):
        result = normalize_image(make_image_bytes(800, 400), max_width=200, max_height=200)

        assert decode(result).size == (200, 100)

    def test_exif_orientation_is_applied(self):
        img = Image.new("RGB", (400, 200), (10, 20, 30))
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 degrees clockwise
        buf = io.BytesIO()
        img.save(buf, format="JPEG", exif=exif)

        result = normalize_image(buf.getvalue())

        assert decode(result).size == (200, 400)


class TestNormalizeFailures:
    """Unreadable and undecodable sources."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageReadError, match="Failed to read file"):
            normalize_image(str(tmp_path / "nope.jpg"))

    def test_empty_source(self):
        with pytest.raises(ImageReadError, match="Failed to read file"):
            normalize_image(b"")

    def test_unreadable_object(self):
        with pytest.raises(ImageReadError):
            normalize_image(object())

    def test_garbage_bytes(self):
        with pytest.raises(ImageLoadError, match="Failed to load image for resizing"):
            normalize_image(b"definitely not an image")

    def test_truncated_image(self):
        raw = make_image_bytes(200, 200)

        with pytest.raises(ImageLoadError):
            normalize_image(raw[: len(raw) // 3])

    def test_payload_ceiling(self):
        with pytest.raises(ImageTooLargeError):
            normalize_image(make_image_bytes(100, 100), max_bytes=100)

    def test_ceiling_leaves_room_for_prompt(self):
        raw = make_image_bytes(300, 200)
        encoded = len(normalize_image(raw).data)

        with pytest.raises(ImageTooLargeError):
            normalize_image(raw, max_bytes=encoded + 1)
        assert normalize_image(raw, max_bytes=encoded + REQUEST_ENVELOPE_BYTES + 1).size_bytes == encoded
