"""Tests for receipt upload checks and image quality heuristics."""

from io import BytesIO

import pytest
from PIL import Image, ImageDraw

from cedar.config import AppSettings
from cedar.models import ImageQuality
from cedar.services.image import ReceiptImageInspector, ReceiptRejectedError


def png_bytes(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def receipt_image(width=800, height=1200) -> bytes:
    """White paper with dark text lines: good contrast, good size."""
    image = Image.new("L", (width, height), color=235)
    draw = ImageDraw.Draw(image)
    for y in range(40, height - 40, 12):
        draw.rectangle([40, y, width - 40, y + 5], fill=20)
    return png_bytes(image)


def flat_image(color: int, width=800, height=1200) -> bytes:
    return png_bytes(Image.new("L", (width, height), color=color))


@pytest.fixture
def inspector():
    return ReceiptImageInspector(AppSettings())


class TestCheckUpload:
    """Tests for upload metadata checks."""

    def test_accepts_supported_image(self, inspector):
        """Test a normal PNG upload passes."""
        upload = inspector.check_upload(b"abc", "receipt.png", "image/png")
        assert upload.original_filename == "receipt.png"
        assert upload.file_size_bytes == 3

    def test_rejects_unsupported_extension(self, inspector):
        """Test PDFs are refused."""
        with pytest.raises(ReceiptRejectedError, match="Unsupported file type"):
            inspector.check_upload(b"abc", "receipt.pdf", "application/pdf")

    def test_rejects_unsupported_mime(self, inspector):
        """Test a mislabelled file is refused by MIME type."""
        with pytest.raises(ReceiptRejectedError, match="Unsupported image type"):
            inspector.check_upload(b"abc", "receipt.png", "text/plain")

    def test_rejects_empty_file(self, inspector):
        """Test empty uploads are refused."""
        with pytest.raises(ReceiptRejectedError, match="empty"):
            inspector.check_upload(b"", "receipt.jpg", "image/jpeg")

    def test_rejects_oversized_file(self):
        """Test the size limit comes from settings."""
        inspector = ReceiptImageInspector(AppSettings(max_upload_size_mb=1))
        with pytest.raises(ReceiptRejectedError, match="too large"):
            inspector.check_upload(b"x" * (1024 * 1024 + 1), "receipt.jpg", "image/jpeg")


class TestAssess:
    """Tests for image quality heuristics."""

    def test_good_receipt(self, inspector):
        """Test a sharp, well-lit receipt scores well."""
        data = receipt_image()
        upload = inspector.check_upload(data, "r.png", "image/png")
        assessment = inspector.assess(data, upload)
        assert assessment.quality == ImageQuality.GOOD
        assert assessment.issues == []
        assert assessment.upload_id == upload.upload_id

    def test_dark_image(self, inspector):
        """Test very dark photos are flagged."""
        data = flat_image(10)
        assessment = inspector.assess(data, inspector.check_upload(data, "r.png", "image/png"))
        assert any("dark" in issue for issue in assessment.issues)
        assert assessment.quality_score < 0.7

    def test_overexposed_image(self, inspector):
        """Test washed-out photos are flagged."""
        data = flat_image(250)
        assessment = inspector.assess(data, inspector.check_upload(data, "r.png", "image/png"))
        assert any("overexposed" in issue for issue in assessment.issues)

    def test_low_resolution(self, inspector):
        """Test tiny images lose points for resolution."""
        image = Image.new("L", (200, 250), color=235)
        ImageDraw.Draw(image).rectangle([10, 10, 150, 30], fill=20)
        data = png_bytes(image)
        assessment = inspector.assess(data, inspector.check_upload(data, "r.png", "image/png"))
        assert any("resolution too low" in issue for issue in assessment.issues)

    def test_unreadable_bytes(self, inspector):
        """Test garbage bytes are unusable, not an exception."""
        upload = inspector.check_upload(b"not an image", "r.png", "image/png")
        assessment = inspector.assess(b"not an image", upload)
        assert assessment.quality == ImageQuality.UNUSABLE
        assert assessment.quality_score == 0.0


class TestInspect:
    """Tests for the combined gate."""

    def test_good_receipt_passes(self, inspector):
        """Test a good receipt returns upload and assessment."""
        data = receipt_image()
        upload, assessment = inspector.inspect(data, "r.png", "image/png")
        assert assessment.quality == ImageQuality.GOOD
        assert upload.mime_type == "image/png"

    def test_unusable_rejected_with_issues(self, inspector):
        """Test tiny, dark, flat images are rejected with reasons."""
        data = flat_image(5, width=100, height=100)
        with pytest.raises(ReceiptRejectedError) as exc_info:
            inspector.inspect(data, "r.png", "image/png")
        assert exc_info.value.issues

    def test_quality_floor_from_settings(self):
        """Test the minimum score is configurable."""
        strict = ReceiptImageInspector(AppSettings(min_receipt_quality_score=0.9))
        data = flat_image(10)
        with pytest.raises(ReceiptRejectedError):
            strict.inspect(data, "r.png", "image/png")
