"""Pick the image source for a deck by its format and run it off the event loop."""

from __future__ import annotations

import asyncio
from pathlib import Path

from shared.config import PipelineSettings
from shared.errors import UnsupportedDeckError
from shared.utils import setup_logging

from .drivers import ImageSource, PdfRasterImageSource, PptxMediaImageSource


class DeckExtractor:
    """Dispatch deck files to the matching image source."""

    def __init__(self, settings: PipelineSettings, sources: list[ImageSource] | None = None) -> None:
        self.logger = setup_logging("deck-extractor")
        self.sources = sources or [PptxMediaImageSource(), PdfRasterImageSource(dpi=settings.pdf_render_dpi)]

    @property
    def supported_extensions(self) -> list[str]:
        return [extension for source in self.sources for extension in source.extensions]

    def source_for(self, filename: str) -> ImageSource:
        extension = Path(filename).suffix.lower()
        for source in self.sources:
            if extension in source.extensions:
                return source
        raise UnsupportedDeckError(
            f"Unsupported file format '{extension or filename}'. "
            f"Please upload one of: {', '.join(self.supported_extensions)}"
        )

    async def extract(self, source_path: str, output_dir: str, filename: str | None = None) -> list[str]:
        """Extract ordered slide images; ``filename`` overrides ``source_path`` for format detection."""
        source = self.source_for(filename or source_path)
        return await asyncio.to_thread(source.extract, source_path, output_dir)
