"""Base class for deck image sources."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ImageSource(ABC):
    """Turn a deck file into slide images, one per slide, in slide order."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def extract(self, source_path: str, output_dir: str) -> list[str]:
        """Write slide images into ``output_dir`` (created if absent) and return their absolute paths."""
