"""Analysis driver registry."""

from .base import AnalysisProvider
from .gemini import GeminiAnalysisProvider
from .openai import OpenAIVisionProvider
from .stub import StubAnalysisProvider

__all__ = [
    "AnalysisProvider",
    "GeminiAnalysisProvider",
    "OpenAIVisionProvider",
    "StubAnalysisProvider",
]
