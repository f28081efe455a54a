"""Speech synthesizer: narration text into a playable audio asset."""

from __future__ import annotations

import asyncio
from pathlib import Path

from shared.config import PipelineSettings
from shared.enums import PipelineStage
from shared.errors import (
    ConfigurationError,
    EncoderError,
    InputError,
    InvalidVoiceError,
    PipelineError,
    SynthesisFailure,
)
from shared.models import AudioAsset
from shared.utils import scoped_file, setup_logging

from services.video_composer.encoder import FFmpegEncoder

from .drivers import GeminiTTSEngine, OpenAITTSEngine, StubTTSEngine, TTSEngine

logger = setup_logging("speech-synthesizer")


def build_tts_engine(settings: PipelineSettings) -> TTSEngine:
    """Instantiate the configured TTS driver."""
    provider = settings.tts_provider.lower()
    if provider == "gemini":
        if not settings.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key not configured. Set GEMINI_API_KEY environment variable.",
                stage=PipelineStage.SYNTHESIZING,
            )
        return GeminiTTSEngine(settings.gemini_api_key, model=settings.tts_model, timeout=settings.tts_timeout)
    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key not configured. Set OPENAI_API_KEY environment variable.",
                stage=PipelineStage.SYNTHESIZING,
            )
        return OpenAITTSEngine(settings.openai_api_key, model=settings.tts_model, base_url=settings.openai_base_url)
    if provider == "stub":
        return StubTTSEngine()
    raise ConfigurationError(
        f"TTS driver '{settings.tts_provider}' is not configured",
        stage=PipelineStage.SYNTHESIZING,
    )


class SpeechSynthesizer:
    """Turn one slide's narration into raw PCM and wrap it into an audio file."""

    def __init__(
        self,
        settings: PipelineSettings,
        encoder: FFmpegEncoder,
        engine: TTSEngine | None = None,
    ) -> None:
        self.engine = engine or build_tts_engine(settings)
        self.encoder = encoder
        self.timeout = settings.tts_timeout
        self.sample_rate = settings.sample_rate
        self.default_voice = settings.default_voice or self.engine.DEFAULT_VOICE
        if self.default_voice not in self.engine.SUPPORTED_VOICES:
            logger.warning(
                "Default voice '%s' is not offered by %s; using '%s'",
                self.default_voice,
                type(self.engine).__name__,
                self.engine.DEFAULT_VOICE,
            )
            self.default_voice = self.engine.DEFAULT_VOICE

    @property
    def voices(self) -> list[str]:
        return list(self.engine.SUPPORTED_VOICES)

    def resolve_voice(self, voice: str | None) -> str:
        """Return ``voice`` or the default; reject voices the engine does not offer."""
        selected = voice or self.default_voice
        if selected not in self.engine.SUPPORTED_VOICES:
            raise InvalidVoiceError(
                f"Voice '{selected}' is not supported",
                cause=f"Supported voices: {', '.join(self.engine.SUPPORTED_VOICES)}",
            )
        return selected

    async def synthesize(
        self,
        text: str,
        style_hint: str | None,
        voice: str | None = None,
        slide_index: int | None = None,
    ) -> bytes:
        """Return raw headerless PCM for ``text``; never substitutes other audio.

        Raises:
            InputError: empty text or unsupported voice.
            SynthesisFailure: the provider failed, returned nothing, or timed out.
        """
        if not text or not text.strip():
            raise InputError("Narration text must not be empty", slide_index=slide_index)
        selected_voice = self.resolve_voice(voice)

        try:
            pcm = await asyncio.wait_for(
                self.engine.synthesize(text, selected_voice, style_hint),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Speech synthesis for slide %s timed out after %ss", slide_index, self.timeout)
            raise SynthesisFailure(
                f"Speech synthesis timed out after {self.timeout:g}s",
                slide_index=slide_index,
            ) from exc
        except SynthesisFailure as exc:
            exc.slide_index = slide_index
            logger.error("Speech synthesis for slide %s failed: %s", slide_index, exc)
            raise
        except PipelineError:
            raise
        except Exception as exc:
            logger.error("Speech synthesis for slide %s failed: %s", slide_index, exc)
            raise SynthesisFailure(f"Speech synthesis failed: {exc}", slide_index=slide_index) from exc

        if not pcm:
            raise SynthesisFailure("Speech provider returned empty audio", slide_index=slide_index)
        return pcm

    async def synthesize_to_file(
        self,
        index: int,
        text: str,
        style_hint: str | None,
        voice: str | None,
        output_path: str | Path,
    ) -> AudioAsset:
        """Synthesize and wrap the PCM into ``output_path`` (container chosen by extension)."""
        pcm = await self.synthesize(text, style_hint, voice, slide_index=index)
        output_path = Path(output_path)

        with scoped_file(f"{output_path}.pcm") as pcm_path:
            pcm_path.write_bytes(pcm)
            try:
                await self.encoder.wrap_pcm(pcm_path, output_path)
            except EncoderError as exc:
                raise SynthesisFailure(
                    f"Failed to wrap narration audio: {exc}",
                    slide_index=index,
                    cause=exc.diagnostic,
                ) from exc

        duration = len(pcm) / (2 * self.sample_rate)
        logger.info("Synthesized narration for slide %s (%.2fs)", index, duration)
        return AudioAsset(index=index, path=str(output_path), duration=round(duration, 3))
