"""
Common API response models.
"""

from pydantic import BaseModel, Field

from shared.models import SlideDetail


class ConversionResponse(BaseModel):
    """Response returned by the upload endpoint once the video is ready."""

    message: str = Field(default="Processing completed", description="Response message")
    job_id: str = Field(..., description="Job identifier")
    video_url: str = Field(..., description="Retrievable location of the final video")
    duration: float | None = Field(None, description="Final video duration in seconds")
    details: list[SlideDetail] = Field(default_factory=list, description="Per-slide narration and clip detail")


class ErrorResponse(BaseModel):
    """Standard API error response."""

    success: bool = Field(default=False, description="Always false for errors")
    message: str = Field(..., description="Error message")
    stage: str | None = Field(None, description="Pipeline stage that failed")
    slide_index: int | None = Field(None, description="Failing slide, for per-slide failures")
    cause: str | None = Field(None, description="Underlying provider or encoder diagnostic")
    stack: str | None = Field(None, description="Stack trace, only outside production")


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    message: str = Field(..., description="Health check message")
    version: str | None = Field(None, description="Service version")
    dependencies: dict[str, str] | None = Field(None, description="Dependency status")
