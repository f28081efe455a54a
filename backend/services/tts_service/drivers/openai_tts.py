from typing import ClassVar

from openai import APIStatusError, AsyncOpenAI

from shared.errors import SynthesisFailure

from .base import TTSEngine


class OpenAITTSEngine(TTSEngine):
    """OpenAI TTS implementation using their text-to-speech API."""

    SUPPORTED_MODELS: ClassVar[list[str]] = ["gpt-4o-mini-tts", "tts-1", "tts-1-hd"]
    SUPPORTED_VOICES: ClassVar[list[str]] = [
        "alloy", "ash", "ballad", "coral", "echo", "fable", "nova", "onyx", "sage", "shimmer", "verse",
    ]
    DEFAULT_VOICE: ClassVar[str] = "alloy"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini-tts", base_url: str | None = None):
        """
        Initialize OpenAI TTS engine.

        Args:
            api_key: OpenAI API key
            model: TTS model; only ``gpt-4o-mini-tts`` honours style instructions
            base_url: Optional OpenAI-compatible endpoint
        """
        self.api_key = api_key
        self.model = model if model in self.SUPPORTED_MODELS else "gpt-4o-mini-tts"
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def synthesize(self, text: str, voice: str, style_hint: str | None = None) -> bytes:
        """
        Synthesize speech from text using OpenAI TTS.

        ``response_format="pcm"`` yields raw 24 kHz 16-bit mono little-endian
        samples, the same layout the pipeline expects from every engine.
        """
        options = {}
        if style_hint and self.model == "gpt-4o-mini-tts":
            options["instructions"] = style_hint

        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=voice,
                input=text,
                response_format="pcm",
                **options,
            )
        except APIStatusError as exc:
            raise SynthesisFailure(
                f"OpenAI TTS failed ({exc.status_code})",
                status=exc.status_code,
                payload=exc.response.text if exc.response is not None else str(exc),
            ) from exc

        return response.content
