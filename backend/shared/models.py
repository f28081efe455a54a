from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.enums import JobStatus, PipelineStage

PLACEHOLDER_NARRATION = "Let's continue."
PLACEHOLDER_TTS_PROMPT = "Calm, steady, neutral delivery."


class Slide(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Zero-based position in the deck")
    image_path: str


class NarrationPlanEntry(BaseModel):
    index: int = Field(..., ge=0)
    content: str = Field(..., min_length=1, description="Narration text for the slide")
    tts_prompt: str = Field(default=PLACEHOLDER_TTS_PROMPT, description="Delivery-style hint")
    placeholder: bool = Field(default=False, description="True when the analysis service gave no entry")

    @classmethod
    def fallback(cls, index: int) -> "NarrationPlanEntry":
        return cls(
            index=index,
            content=PLACEHOLDER_NARRATION,
            tts_prompt=PLACEHOLDER_TTS_PROMPT,
            placeholder=True,
        )


class AudioAsset(BaseModel):
    index: int
    path: str
    duration: float | None = None


class Clip(BaseModel):
    index: int
    path: str
    duration: float | None = None


class FinalVideo(BaseModel):
    path: str
    slide_count: int
    duration: float | None = None


class SlideDetail(BaseModel):
    index: int
    image: str
    content: str
    tts_prompt: str
    audio: str | None = None
    clip: str | None = None
    duration: float | None = None
    degraded: bool = False
    error: str | None = None


class ConversionResult(BaseModel):
    job_id: str
    video_path: str
    video_url: str | None = None
    duration: float | None = None
    details: list[SlideDetail]


class Job(BaseModel):
    job_id: str
    root: str
    voice: str | None = None
    status: JobStatus = JobStatus.RECEIVED
    failed_stage: PipelineStage | None = None
    total_slides: int = 0
    completed_slides: int = 0
    error: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime | None = None

    @property
    def images_dir(self) -> Path:
        return Path(self.root) / "images"

    @property
    def audio_dir(self) -> Path:
        return Path(self.root) / "audio"

    @property
    def clips_dir(self) -> Path:
        return Path(self.root) / "clips"

    @property
    def final_video_path(self) -> Path:
        return Path(self.root) / "final_video.mp4"
