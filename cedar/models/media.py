"""
Media Models for Cedar Budget

Receipt uploads, receipt image quality, and generated video status.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from cedar.models.transaction import utc_now


class ImageQuality(str, Enum):
    """Receipt image quality assessment result."""
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"          # Sent, but the user is warned
    UNUSABLE = "unusable"  # Hard reject


class ReceiptUpload(BaseModel):
    """Represents an uploaded receipt image before analysis."""

    upload_id: UUID = Field(
        default_factory=uuid4,
        description="Unique upload identifier"
    )
    uploaded_at: datetime = Field(
        default_factory=utc_now
    )
    original_filename: str
    file_size_bytes: int = Field(ge=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types."""
        allowed = {'image/jpeg', 'image/png', 'image/webp'}
        if v.lower() not in allowed:
            raise ValueError(f"Unsupported image type: {v}. Allowed: {sorted(allowed)}")
        return v.lower()


class ReceiptAssessment(BaseModel):
    """Result of the local receipt image quality check."""

    upload_id: UUID
    quality: ImageQuality
    quality_score: float = Field(
        ge=0.0,
        le=1.0,
        description="Quality score (0-1)"
    )
    issues: list[str] = Field(
        default_factory=list,
        description="Detected quality issues"
    )


class VideoAspectRatio(str, Enum):
    """Aspect ratios supported by video generation."""
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class VideoStatus(BaseModel):
    """
    One observation of a video generation operation.

    `done` is the terminal flag the poller waits for.
    """

    done: bool = False
    video_bytes: Optional[bytes] = None
    mime_type: str = "video/mp4"
    error: Optional[str] = None
