"""Narration planning over whole decks."""

from .service import NarrationPlanner, parse_plan

__all__ = ["NarrationPlanner", "parse_plan"]
