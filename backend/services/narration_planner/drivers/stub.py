"""Stub analysis provider with deterministic narration."""

from __future__ import annotations

import json
from pathlib import Path

from .base import AnalysisProvider


class StubAnalysisProvider(AnalysisProvider):
    """Generate narration from slide positions without external services."""

    async def generate(self, directive: str, image_paths: list[str]) -> str:
        entries = []
        for position, image_path in enumerate(image_paths, start=1):
            opener = "Welcome." if position == 1 else "Following on from the previous slide,"
            entries.append(
                {
                    "content": f"{opener} This is slide {position}, {Path(image_path).stem}.",
                    "tts_prompt": "Friendly, clear, moderate pace.",
                }
            )
        if len(entries) == 1 and "JSON object" in directive:
            return json.dumps(entries[0])
        return json.dumps(entries)
