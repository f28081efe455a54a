"""Clip renderer: one slide image plus its narration audio into a video clip."""

from __future__ import annotations

from pathlib import Path

from shared.config import PipelineSettings
from shared.errors import EncoderError, RenderFailure
from shared.models import AudioAsset, Clip
from shared.utils import setup_logging

from .encoder import FFmpegEncoder


class ClipRenderer:
    """Render still-image clips whose length is dictated by the audio track."""

    def __init__(self, encoder: FFmpegEncoder, settings: PipelineSettings) -> None:
        self.logger = setup_logging("clip-renderer")
        self.encoder = encoder
        self.placeholder_duration = settings.placeholder_duration

    async def render(self, image_path: str, audio: AudioAsset, output_path: str | Path) -> Clip:
        """Render ``image_path`` looped for the full duration of ``audio``.

        Raises:
            RenderFailure: the encoder failed or timed out; the encoder's
                diagnostic is attached.
        """
        try:
            await self.encoder.render_still_clip(image_path, audio.path, output_path)
        except EncoderError as exc:
            self.logger.error("Rendering clip for slide %s failed: %s", audio.index, exc)
            raise RenderFailure(
                f"Failed to render clip for slide {audio.index}: {exc}",
                diagnostic=exc.diagnostic,
                slide_index=audio.index,
            ) from exc

        duration = await self._probe(output_path)
        self.logger.info("Rendered clip %s (%.2fs)", Path(output_path).name, duration or 0.0)
        return Clip(index=audio.index, path=str(output_path), duration=duration)

    async def render_placeholder(
        self,
        index: int,
        image_path: str,
        audio_path: str | Path,
        output_path: str | Path,
    ) -> tuple[AudioAsset, Clip]:
        """Render a degraded clip: the slide image over a short fixed tone."""
        try:
            await self.encoder.generate_tone(audio_path, self.placeholder_duration)
        except EncoderError as exc:
            raise RenderFailure(
                f"Failed to build placeholder audio for slide {index}: {exc}",
                diagnostic=exc.diagnostic,
                slide_index=index,
            ) from exc

        audio = AudioAsset(index=index, path=str(audio_path), duration=self.placeholder_duration)
        clip = await self.render(image_path, audio, output_path)
        return audio, clip

    async def _probe(self, media_path: str | Path) -> float | None:
        try:
            return await self.encoder.probe_duration(media_path)
        except EncoderError as exc:
            self.logger.warning("Could not probe duration of %s: %s", media_path, exc)
            return None
