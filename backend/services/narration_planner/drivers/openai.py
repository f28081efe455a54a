"""OpenAI vision analysis provider."""

from __future__ import annotations

from typing import Any, ClassVar

from openai import AsyncOpenAI

from .base import AnalysisProvider


class OpenAIVisionProvider(AnalysisProvider):
    """OpenAI chat completions with image parts (any OpenAI-compatible endpoint)."""

    SUPPORTED_MODELS: ClassVar[list[str]] = ["gpt-4o-mini", "gpt-4o", "gpt-4.1-mini", "gpt-4.1"]
    DEFAULT_MODEL: ClassVar[str] = "gpt-4o-mini"

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, base_url: str | None = None) -> None:
        # Compatible endpoints serve their own model names
        if not base_url and model not in self.SUPPORTED_MODELS:
            model = self.DEFAULT_MODEL
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def generate(self, directive: str, image_paths: list[str]) -> str:
        content: list[dict[str, Any]] = [{"type": "text", "text": directive}]
        for image_path in image_paths:
            mime_type, data = self.encode_image(image_path)
            content.append({"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{data}"}})

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": content}],
        )
        return response.choices[0].message.content or ""
