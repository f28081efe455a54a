"""Stub TTS engine producing silence, for offline runs."""

from typing import ClassVar

from .base import TTSEngine


class StubTTSEngine(TTSEngine):
    """Generate deterministic silent PCM without external services."""

    SUPPORTED_VOICES: ClassVar[list[str]] = ["silent"]
    DEFAULT_VOICE: ClassVar[str] = "silent"
    SECONDS_PER_WORD: ClassVar[float] = 0.4

    async def synthesize(self, text: str, voice: str, style_hint: str | None = None) -> bytes:
        duration = max(1.0, len(text.split()) * self.SECONDS_PER_WORD)
        frames = int(self.SAMPLE_RATE * duration)
        return b"\x00\x00" * frames
