"""Sequence assembler: concatenate per-slide clips into the final video."""

from __future__ import annotations

from pathlib import Path

from shared.config import PipelineSettings
from shared.errors import AssemblyFailure, EncoderError
from shared.models import Clip, FinalVideo
from shared.utils import setup_logging

from .encoder import FFmpegEncoder

MANIFEST_NAME = "clips.txt"


def build_manifest(clips: list[Clip]) -> str:
    """Build an ffmpeg concat manifest, one ``file '<abs path>'`` line per clip."""
    lines = []
    for clip in clips:
        escaped = str(Path(clip.path).resolve()).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines) + "\n"


class SequenceAssembler:
    """Re-encode ordered clips into one constant-frame-rate video."""

    def __init__(self, encoder: FFmpegEncoder, settings: PipelineSettings) -> None:
        self.logger = setup_logging("sequence-assembler")
        self.encoder = encoder
        self.frame_rate = settings.frame_rate

    async def assemble(self, clips: list[Clip], output_path: str | Path) -> FinalVideo:
        """Concatenate ``clips`` in the order given. Clips are not re-sorted."""
        if not clips:
            raise AssemblyFailure("Cannot assemble a video from zero clips")

        output_path = Path(output_path)
        manifest_path = output_path.parent / MANIFEST_NAME
        manifest_path.write_text(build_manifest(clips), encoding="utf-8")

        try:
            await self.encoder.concat(manifest_path, output_path)
        except EncoderError as exc:
            self.logger.error("Concatenating %d clips failed: %s", len(clips), exc)
            raise AssemblyFailure(f"Failed to assemble final video: {exc}", diagnostic=exc.diagnostic) from exc

        duration = await self._probe(output_path)
        self._check_duration(clips, duration)
        self.logger.info("Assembled %d clips into %s", len(clips), output_path)
        return FinalVideo(path=str(output_path), slide_count=len(clips), duration=duration)

    def _check_duration(self, clips: list[Clip], duration: float | None) -> None:
        clip_durations = [clip.duration for clip in clips]
        if duration is None or any(value is None for value in clip_durations):
            return
        expected = sum(clip_durations)
        tolerance = max(len(clips) - 1, 1) / self.frame_rate
        if abs(duration - expected) > tolerance:
            self.logger.warning(
                "Final video is %.3fs but clips sum to %.3fs (tolerance %.3fs)",
                duration,
                expected,
                tolerance,
            )

    async def _probe(self, media_path: Path) -> float | None:
        try:
            return await self.encoder.probe_duration(media_path)
        except EncoderError as exc:
            self.logger.warning("Could not probe duration of %s: %s", media_path, exc)
            return None
