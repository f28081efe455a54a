"""TTS driver implementations"""

from .base import TTSEngine
from .gemini_tts import GeminiTTSEngine
from .openai_tts import OpenAITTSEngine
from .stub import StubTTSEngine

__all__ = ["GeminiTTSEngine", "OpenAITTSEngine", "StubTTSEngine", "TTSEngine"]
