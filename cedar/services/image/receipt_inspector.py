"""
Receipt Image Inspection

Local checks that run before a receipt photo is sent to the assistant:
1. Upload checks (format, size)
2. Quality heuristics on the pixel histogram

CRITICAL: We do NOT send unusable images for analysis.
A receipt the user cannot read is a receipt the model will misread, and
the user is asked to retake the photo instead.

DESIGN DECISION: Simple Pillow heuristics rather than ML-based quality
assessment. They are fast, predictable and free.
"""

from io import BytesIO
from typing import Optional

import structlog
from PIL import Image, UnidentifiedImageError

from cedar.config import AppSettings, get_settings
from cedar.models.media import ImageQuality, ReceiptAssessment, ReceiptUpload

logger = structlog.get_logger(__name__)

MIN_DIMENSION_PX = 300
LOW_DIMENSION_PX = 500
MAX_ASPECT_RATIO = 5
DARK_LEVEL = 50
BRIGHT_LEVEL = 200
EXPOSURE_SHARE = 0.7
MIN_CONTRAST_RANGE = 50


class ReceiptRejectedError(Exception):
    """The receipt upload cannot be analyzed. Message is user-facing."""

    def __init__(self, message: str, issues: Optional[list[str]] = None):
        self.issues = issues or []
        super().__init__(message)


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _contrast_range(histogram: list[int], total_pixels: int) -> int:
    """Width of the band holding the middle 90% of pixels."""
    cumsum = 0
    low_percentile = 0
    high_percentile = 255
    for i, count in enumerate(histogram):
        cumsum += count
        if cumsum >= total_pixels * 0.05 and low_percentile == 0:
            low_percentile = i
        if cumsum >= total_pixels * 0.95:
            high_percentile = i
            break
    return high_percentile - low_percentile


def _quality_for(score: float) -> ImageQuality:
    if score >= 0.7:
        return ImageQuality.GOOD
    if score >= 0.5:
        return ImageQuality.ACCEPTABLE
    if score >= 0.3:
        return ImageQuality.POOR
    return ImageQuality.UNUSABLE


class ReceiptImageInspector:
    """
    Gatekeeper for receipt photos.

    Flow:
    1. check_upload: build a ReceiptUpload, enforce format and size
    2. assess: score the image
    3. inspect: both, rejecting anything below the quality floor
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def check_upload(
        self,
        image_bytes: bytes,
        filename: str,
        mime_type: str,
    ) -> ReceiptUpload:
        """
        Validate upload metadata.

        Raises:
            ReceiptRejectedError: unsupported format, empty or oversized file
        """
        if _extension(filename) not in self._settings.supported_formats_list:
            raise ReceiptRejectedError(
                f"Unsupported file type. Please upload one of: "
                f"{', '.join(self._settings.supported_formats_list)}"
            )
        if not image_bytes:
            raise ReceiptRejectedError("The uploaded file is empty.")
        if len(image_bytes) > self._settings.max_upload_size_bytes:
            raise ReceiptRejectedError(
                f"File too large. Maximum size is {self._settings.max_upload_size_mb} MB."
            )

        try:
            return ReceiptUpload(
                original_filename=filename,
                file_size_bytes=len(image_bytes),
                mime_type=mime_type,
            )
        except ValueError as e:
            raise ReceiptRejectedError(f"Unsupported image type: {mime_type}") from e

    def assess(self, image_bytes: bytes, upload: ReceiptUpload) -> ReceiptAssessment:
        """
        Score image quality from resolution, exposure and contrast.

        Never raises; an unreadable file scores 0.
        """
        issues = []
        score = 1.0

        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            logger.info("receipt_unreadable", upload_id=str(upload.upload_id), error=str(e))
            return ReceiptAssessment(
                upload_id=upload.upload_id,
                quality=ImageQuality.UNUSABLE,
                quality_score=0.0,
                issues=["Could not read the image file"],
            )

        width, height = img.size
        min_dimension = min(width, height)
        if min_dimension < MIN_DIMENSION_PX:
            issues.append(f"Image resolution too low (minimum {MIN_DIMENSION_PX}px on smallest side)")
            score -= 0.4
        elif min_dimension < LOW_DIMENSION_PX:
            issues.append("Image resolution is low, text may be hard to read")
            score -= 0.2

        if max(width, height) / max(min_dimension, 1) > MAX_ASPECT_RATIO:
            issues.append("Unusual aspect ratio - image may be cropped incorrectly")
            score -= 0.2

        gray = img if img.mode == "L" else img.convert("L")
        histogram = gray.histogram()
        total_pixels = sum(histogram)

        if sum(histogram[:DARK_LEVEL]) / total_pixels > EXPOSURE_SHARE:
            issues.append("Image is very dark - please take photo in better lighting")
            score -= 0.3

        if sum(histogram[BRIGHT_LEVEL:]) / total_pixels > EXPOSURE_SHARE:
            issues.append("Image is overexposed - please reduce lighting or angle")
            score -= 0.3

        if _contrast_range(histogram, total_pixels) < MIN_CONTRAST_RANGE:
            issues.append("Image has very low contrast - text may be hard to read")
            score -= 0.25

        score = max(0.0, min(1.0, score))
        return ReceiptAssessment(
            upload_id=upload.upload_id,
            quality=_quality_for(score),
            quality_score=score,
            issues=issues,
        )

    def inspect(
        self,
        image_bytes: bytes,
        filename: str,
        mime_type: str,
    ) -> tuple[ReceiptUpload, ReceiptAssessment]:
        """
        Run upload checks and quality assessment.

        Raises:
            ReceiptRejectedError: upload invalid, or the image is unusable
                or scores below `min_receipt_quality_score`
        """
        upload = self.check_upload(image_bytes, filename, mime_type)
        assessment = self.assess(image_bytes, upload)

        if (
            assessment.quality == ImageQuality.UNUSABLE
            or assessment.quality_score < self._settings.min_receipt_quality_score
        ):
            raise ReceiptRejectedError(
                "This receipt photo is too hard to read. Please retake it.",
                issues=assessment.issues,
            )

        return upload, assessment
