"""Tests for image decode and render utilities."""

import io

import pytest
from PIL import Image

from image_ingest.core.exceptions import DecodeError
from image_ingest.core.image_utils import apply_greyscale, decode_image, render
from image_ingest.core.models import OutputFormat, RenditionRole, RenditionSpec
from image_ingest.testing.fakes import create_test_image, image_size


def _spec(width, height, fmt=OutputFormat.JPEG, quality=90):
    return RenditionSpec(
        role=RenditionRole.ORIGINAL, width=width, height=height, quality=quality, format=fmt
    )


def _open(data):
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class TestDecodeImage:
    """Tests for decode_image."""

    @pytest.mark.parametrize("fmt", ["JPEG", "PNG"])
    def test_decode_supported_formats(self, fmt):
        """Test that JPEG and PNG uploads decode with their dimensions."""
        img = decode_image(create_test_image(120, 80, format=fmt))
        assert img.size == (120, 80)

    def test_decode_empty_upload(self):
        """Test that an empty upload is a DecodeError."""
        with pytest.raises(DecodeError, match="empty"):
            decode_image(b"")

    def test_decode_garbage(self):
        """Test that non-image bytes are a DecodeError."""
        with pytest.raises(DecodeError):
            decode_image(b"definitely not an image" * 10)

    def test_decode_truncated_jpeg(self):
        """Test that a truncated JPEG is a DecodeError."""
        data = create_test_image(200, 200, format="JPEG")
        with pytest.raises(DecodeError):
            decode_image(data[: len(data) // 3])

    def test_decode_rejects_other_containers(self):
        """Test that formats other than JPEG and PNG are rejected."""
        with pytest.raises(DecodeError):
            decode_image(create_test_image(20, 20, format="GIF"))

    def test_decode_applies_exif_orientation(self):
        """Test that EXIF orientation 6 (rotate 90) swaps width and height."""
        exif = Image.Exif()
        exif[0x0112] = 6
        buffer = io.BytesIO()
        Image.new("RGB", (40, 20), "green").save(buffer, format="JPEG", exif=exif)

        img = decode_image(buffer.getvalue())

        assert img.size == (20, 40)


class TestRender:
    """Tests for render."""

    def test_render_resizes(self):
        """Test output has exactly the planned dimensions."""
        img = decode_image(create_test_image(200, 100))

        data = render(img, _spec(26, 13))

        assert image_size(data) == (26, 13)
        assert _open(data).format == "JPEG"

    def test_render_keeps_source_untouched(self):
        """Test that rendering does not modify the decoded image."""
        img = decode_image(create_test_image(200, 100))

        render(img, _spec(10, 5))

        assert img.size == (200, 100)

    def test_render_png(self):
        """Test PNG output."""
        img = decode_image(create_test_image(64, 64, format="PNG"))

        data = render(img, _spec(32, 32, fmt=OutputFormat.PNG))

        assert _open(data).format == "PNG"
        assert image_size(data) == (32, 32)

    def test_render_rgba_to_jpeg_flattens_alpha(self):
        """Test that transparent PNG input can be stored as JPEG."""
        img = decode_image(create_test_image(50, 50, format="PNG", mode="RGBA"))

        data = render(img, _spec(50, 50))

        assert _open(data).mode == "RGB"

    def test_render_rgba_png_keeps_alpha(self):
        """Test that PNG output keeps the alpha channel."""
        img = decode_image(create_test_image(50, 50, format="PNG", mode="RGBA"))

        data = render(img, _spec(25, 25, fmt=OutputFormat.PNG))

        assert _open(data).mode == "RGBA"

    def test_render_greyscale(self):
        """Test the greyscale option."""
        img = decode_image(create_test_image(60, 60))

        data = render(img, _spec(30, 30), greyscale=True)

        assert _open(data).mode == "L"

    def test_render_quality_affects_jpeg_size(self):
        """Test that a lower quality yields a smaller JPEG."""
        noisy = Image.effect_noise((300, 300), 64).convert("RGB")

        low = render(noisy, _spec(300, 300, quality=10))
        high = render(noisy, _spec(300, 300, quality=95))

        assert len(low) < len(high)


class TestApplyGreyscale:
    """Tests for apply_greyscale."""

    def test_greyscale_rgb(self):
        assert apply_greyscale(Image.new("RGB", (4, 4))).mode == "L"

    def test_greyscale_keeps_alpha(self):
        assert apply_greyscale(Image.new("RGBA", (4, 4))).mode == "LA"
