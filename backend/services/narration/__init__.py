"""Narration service for slide decks.

This service orchestrates the complete deck-to-video pipeline:
- Slide image extraction from PPTX or PDF
- Narration planning with a vision model
- Text-to-speech synthesis per slide
- Clip rendering and final assembly
"""

__version__ = "1.0.0"
