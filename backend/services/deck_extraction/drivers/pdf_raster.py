"""Slide images rasterized from PDF pages."""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF

from shared.errors import InputError
from shared.utils import ensure_directory, setup_logging

from .base import ImageSource

logger = setup_logging("pdf-rasterizer")


class PdfRasterImageSource(ImageSource):
    """Render every PDF page to ``page_{i}.png``.

    A page that fails to render is an input error: dropping it would silently
    shift every later slide.
    """

    extensions = (".pdf",)

    def __init__(self, dpi: int = 150) -> None:
        self.dpi = dpi

    def extract(self, source_path: str, output_dir: str) -> list[str]:
        ensure_directory(output_dir)
        try:
            document = fitz.open(source_path)
        except (RuntimeError, OSError) as exc:
            raise InputError(f"Could not open PDF: {exc}") from exc

        image_paths = []
        with document:
            for index, page in enumerate(document):
                target = Path(output_dir) / f"page_{index}.png"
                try:
                    page.get_pixmap(dpi=self.dpi).save(str(target))
                except RuntimeError as exc:
                    target.unlink(missing_ok=True)
                    raise InputError(f"Failed to rasterize PDF page {index + 1}: {exc}") from exc
                image_paths.append(str(target.resolve()))

        logger.info("Rasterized %d PDF pages from %s", len(image_paths), Path(source_path).name)
        return image_paths
