"""Deck decoding into ordered slide images."""

from .service import DeckExtractor

__all__ = ["DeckExtractor"]
