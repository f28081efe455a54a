"""Deck image source drivers."""

from .base import ImageSource
from .pdf_raster import PdfRasterImageSource
from .pptx_media import PptxMediaImageSource

__all__ = ["ImageSource", "PdfRasterImageSource", "PptxMediaImageSource"]
