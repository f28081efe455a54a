"""
Error taxonomy for the slide-to-video pipeline.
"""

import traceback
from typing import Any

from shared.enums import PipelineStage


class PipelineError(Exception):
    """Base class for every failure surfaced by the conversion pipeline."""

    stage: PipelineStage = PipelineStage.EXTRACTING

    def __init__(
        self,
        message: str,
        *,
        slide_index: int | None = None,
        cause: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.slide_index = slide_index
        self.cause = cause

    def to_payload(self, include_stack: bool = False) -> dict[str, Any]:
        """Build the structured error body returned to callers."""
        payload: dict[str, Any] = {"message": self.message, "stage": self.stage.value}
        if self.slide_index is not None:
            payload["slide_index"] = self.slide_index
        if self.cause:
            payload["cause"] = self.cause
        if include_stack:
            payload["stack"] = "".join(traceback.format_exception(type(self), self, self.__traceback__))
        return payload


class InputError(PipelineError):
    """The uploaded deck or request parameters cannot be processed."""

    stage = PipelineStage.EXTRACTING


class EmptyDeckError(InputError):
    """No slide images could be extracted from the deck."""


class UnsupportedDeckError(InputError):
    """The deck format is not one of the supported formats."""


class InvalidVoiceError(InputError):
    """The requested voice is not offered by the speech provider."""


class PlanningFailure(PipelineError):
    """The analysis call failed, timed out or returned an unusable body."""

    stage = PipelineStage.PLANNING


class SynthesisFailure(PipelineError):
    """The speech call for one slide failed."""

    stage = PipelineStage.SYNTHESIZING

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        payload: str | None = None,
        slide_index: int | None = None,
        cause: str | None = None,
    ) -> None:
        super().__init__(message, slide_index=slide_index, cause=cause or payload)
        self.status = status
        self.payload = payload


class RenderFailure(PipelineError):
    """The encoder could not build the clip for one slide."""

    stage = PipelineStage.RENDERING

    def __init__(
        self,
        message: str,
        *,
        diagnostic: str | None = None,
        slide_index: int | None = None,
    ) -> None:
        super().__init__(message, slide_index=slide_index, cause=diagnostic)
        self.diagnostic = diagnostic


class AssemblyFailure(PipelineError):
    """The encoder could not concatenate the clips into the final video."""

    stage = PipelineStage.ASSEMBLING

    def __init__(self, message: str, *, diagnostic: str | None = None) -> None:
        super().__init__(message, cause=diagnostic)
        self.diagnostic = diagnostic


class EncoderError(Exception):
    """ffmpeg/ffprobe exited with an error or did not finish in time."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

    @property
    def diagnostic(self) -> str:
        tail = self.stderr.strip().splitlines()[-10:]
        return "\n".join(tail) if tail else str(self)


class InternalError(PipelineError):
    """The service failed outside the provider and encoder taxonomy, during ``stage``."""

    def __init__(
        self,
        message: str,
        *,
        stage: PipelineStage,
        slide_index: int | None = None,
        cause: str | None = None,
    ) -> None:
        super().__init__(message, slide_index=slide_index, cause=cause)
        self.stage = stage


class ConfigurationError(InternalError):
    """A provider is selected but cannot be built (unknown name or missing API key)."""
