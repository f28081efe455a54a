"""Base classes for narration analysis providers."""

from __future__ import annotations

import base64
import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path


class AnalysisProvider(ABC):
    """Abstract multimodal provider: one directive plus slide images in, text out."""

    @abstractmethod
    async def generate(self, directive: str, image_paths: list[str]) -> str:
        """Return the provider's raw text answer for ``directive`` over ``image_paths``."""

    @staticmethod
    def encode_image(image_path: str) -> tuple[str, str]:
        """Return ``(mime_type, base64_data)`` for an image file."""
        mime_type = mimetypes.guess_type(image_path)[0] or "image/png"
        data = base64.b64encode(Path(image_path).read_bytes()).decode("ascii")
        return mime_type, data
