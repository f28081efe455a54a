"""Text-to-speech synthesis for slide narration."""

from .service import SpeechSynthesizer, build_tts_engine

__all__ = ["SpeechSynthesizer", "build_tts_engine"]
