from abc import ABC, abstractmethod
from typing import ClassVar


class TTSEngine(ABC):
    """Abstract base class for TTS engines.

    Engines return raw headerless PCM (s16le, mono) at ``SAMPLE_RATE``; wrapping
    into a container is the caller's job.
    """

    SAMPLE_RATE: ClassVar[int] = 24000
    SUPPORTED_VOICES: ClassVar[list[str]] = []
    DEFAULT_VOICE: ClassVar[str] = ""

    @abstractmethod
    async def synthesize(self, text: str, voice: str, style_hint: str | None = None) -> bytes:
        """Synthesize ``text`` with ``voice``, following the delivery ``style_hint``."""
        pass
