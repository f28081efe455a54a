"""Narration planner: per-slide narration text and delivery hints for a whole deck."""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

from shared.config import PipelineSettings
from shared.enums import NarrationMode, PipelineStage
from shared.errors import ConfigurationError, InputError, PlanningFailure
from shared.models import PLACEHOLDER_TTS_PROMPT, NarrationPlanEntry
from shared.utils import setup_logging

from .drivers import AnalysisProvider, GeminiAnalysisProvider, OpenAIVisionProvider, StubAnalysisProvider
from .prompts import build_batched_directive, build_rolling_directive

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def build_analysis_provider(settings: PipelineSettings) -> AnalysisProvider:
    """Instantiate the configured analysis provider."""
    provider = settings.analysis_provider.lower()
    if provider == "gemini":
        if not settings.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key not configured. Set GEMINI_API_KEY environment variable.",
                stage=PipelineStage.PLANNING,
            )
        return GeminiAnalysisProvider(
            settings.gemini_api_key,
            model=settings.analysis_model,
            timeout=settings.analysis_timeout,
        )
    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key not configured. Set OPENAI_API_KEY environment variable.",
                stage=PipelineStage.PLANNING,
            )
        return OpenAIVisionProvider(
            settings.openai_api_key,
            model=settings.analysis_model,
            base_url=settings.openai_base_url,
        )
    if provider == "stub":
        return StubAnalysisProvider()
    raise ConfigurationError(
        f"Analysis provider '{settings.analysis_provider}' is not configured",
        stage=PipelineStage.PLANNING,
    )


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text).strip()


def parse_plan(raw_text: str, count: int) -> list[NarrationPlanEntry]:
    """Parse the analysis answer into exactly ``count`` entries in slide order.

    Raises:
        PlanningFailure: the answer is not a JSON array of entries.
    """
    cleaned = strip_code_fences(raw_text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise PlanningFailure("Analysis response was not valid JSON", cause=cleaned[:500]) from exc

    if isinstance(payload, dict):
        payload = payload.get("slides", payload.get("narration"))
    if not isinstance(payload, list):
        raise PlanningFailure("Analysis response was not a JSON array", cause=cleaned[:500])

    return [_entry_from_item(index, payload[index] if index < len(payload) else None) for index in range(count)]


def _entry_from_item(index: int, item: Any) -> NarrationPlanEntry:
    if not isinstance(item, dict):
        return NarrationPlanEntry.fallback(index)
    content = str(item.get("content") or "").strip()
    if not content:
        return NarrationPlanEntry.fallback(index)
    tts_prompt = str(item.get("tts_prompt") or "").strip() or PLACEHOLDER_TTS_PROMPT
    return NarrationPlanEntry(index=index, content=content, tts_prompt=tts_prompt)


class NarrationPlanner:
    """Ask the analysis service for narration covering every slide, in order."""

    def __init__(self, settings: PipelineSettings, provider: AnalysisProvider | None = None) -> None:
        self.logger = setup_logging("narration-planner")
        self.provider = provider or build_analysis_provider(settings)
        self.mode = settings.narration_mode
        self.timeout = settings.analysis_timeout
        self.context_window = settings.rolling_context_window

    async def plan(self, images: list[str]) -> list[NarrationPlanEntry]:
        """Return one entry per image, same count and order as ``images``."""
        if not images:
            raise InputError("Cannot plan narration for an empty deck")

        if self.mode == NarrationMode.ROLLING:
            entries = await self._plan_rolling(images)
        else:
            entries = await self._plan_batched(images)

        placeholders = sum(1 for entry in entries if entry.placeholder)
        if placeholders:
            self.logger.warning("%d of %d slides received placeholder narration", placeholders, len(entries))
        return entries

    async def _plan_batched(self, images: list[str]) -> list[NarrationPlanEntry]:
        self.logger.info("Planning narration for %d slides in one batched call", len(images))
        raw = await self._call(build_batched_directive(len(images)), images)
        entries = parse_plan(raw, len(images))
        self.logger.info("Narration plan ready for %d slides", len(entries))
        return entries

    async def _plan_rolling(self, images: list[str]) -> list[NarrationPlanEntry]:
        entries: list[NarrationPlanEntry] = []
        for index, image in enumerate(images):
            start = max(0, index - self.context_window) if self.context_window else index
            previous = [entry.content for entry in entries[start:index]]
            directive = build_rolling_directive(index + 1, len(images), previous)
            try:
                raw = await self._call(directive, [image])
                cleaned = strip_code_fences(raw)
                if cleaned.startswith("{"):
                    cleaned = f"[{cleaned}]"
                entry = parse_plan(cleaned, 1)[0]
                entries.append(entry.model_copy(update={"index": index}))
            except PlanningFailure as exc:
                self.logger.warning("Rolling narration for slide %d failed, using placeholder: %s", index, exc)
                entries.append(NarrationPlanEntry.fallback(index))
        return entries

    async def _call(self, directive: str, images: list[str]) -> str:
        try:
            return await asyncio.wait_for(self.provider.generate(directive, images), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            self.logger.error("Analysis call timed out after %ss", self.timeout)
            raise PlanningFailure(f"Analysis service timed out after {self.timeout:g}s") from exc
        except PlanningFailure:
            raise
        except Exception as exc:
            self.logger.error("Analysis call failed: %s", exc)
            raise PlanningFailure(f"Analysis service call failed: {exc}", cause=str(exc)) from exc
