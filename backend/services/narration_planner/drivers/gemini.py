"""Gemini multimodal analysis provider."""

from __future__ import annotations

from typing import Any

from shared.http_client import AsyncHTTPClient

from .base import AnalysisProvider

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAnalysisProvider(AnalysisProvider):
    """Send the directive and inline images to Gemini ``generateContent``."""

    def __init__(self, api_key: str, model: str = "gemini-3-flash-preview", timeout: float = 180) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    async def generate(self, directive: str, image_paths: list[str]) -> str:
        parts: list[dict[str, Any]] = [{"text": directive}]
        for image_path in image_paths:
            mime_type, data = self.encode_image(image_path)
            parts.append({"inlineData": {"mimeType": mime_type, "data": data}})

        url = f"{GEMINI_API_BASE}/models/{self.model}:generateContent"
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        async with AsyncHTTPClient(timeout=self.timeout) as client:
            response = await client.post(url, data={"contents": [{"parts": parts}]}, headers=headers)

        candidates = response.get("candidates") or []
        if not candidates:
            raise RuntimeError(f"Gemini returned no candidates: {response.get('promptFeedback')}")
        content_parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in content_parts)
