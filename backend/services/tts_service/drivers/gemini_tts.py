import base64
import json
from typing import Any, ClassVar

from shared.errors import SynthesisFailure
from shared.http_client import AsyncHTTPClient, HTTPRequestError

from .base import TTSEngine

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiTTSEngine(TTSEngine):
    """Gemini speech generation through the ``generateContent`` REST endpoint."""

    SUPPORTED_VOICES: ClassVar[list[str]] = [
        "Zephyr", "Puck", "Charon", "Kore", "Fenrir", "Leda", "Orus", "Aoede",
        "Callirrhoe", "Autonoe", "Enceladus", "Iapetus", "Umbriel", "Algieba",
        "Despina", "Erinome", "Algenib", "Rasalgethi", "Laomedeia", "Achernar",
        "Alnilam", "Schedar", "Gacrux", "Pulcherrima", "Achird", "Zubenelgenubi",
        "Vindemiatrix", "Sadachbia", "Sadaltager", "Sulafat",
    ]
    DEFAULT_VOICE: ClassVar[str] = "Aoede"

    def __init__(self, api_key: str, model: str = "gemini-2.5-pro-preview-tts", timeout: float = 120):
        """
        Initialize Gemini TTS engine.

        Args:
            api_key: Gemini API key
            model: Speech generation model id
            timeout: HTTP timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_API_BASE}/models/{self.model}:generateContent"

    async def synthesize(self, text: str, voice: str, style_hint: str | None = None) -> bytes:
        payload = self._build_payload(text, voice, style_hint)
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        try:
            async with AsyncHTTPClient(timeout=self.timeout) as client:
                data = await client.post(self.endpoint, data=payload, headers=headers)
        except HTTPRequestError as exc:
            raise SynthesisFailure(
                f"Gemini TTS failed ({exc.status})",
                status=exc.status,
                payload=exc.body,
            ) from exc

        return self._decode_audio(data)

    @staticmethod
    def _build_payload(text: str, voice: str, style_hint: str | None) -> dict[str, Any]:
        # Gemini TTS takes delivery instructions inline, ahead of the spoken text
        prompt = f"{style_hint.strip().rstrip('.:')}:\n{text}" if style_hint and style_hint.strip() else text
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
                },
            },
        }

    @staticmethod
    def _decode_audio(data: dict[str, Any]) -> bytes:
        candidates = data.get("candidates") or []
        try:
            encoded = candidates[0]["content"]["parts"][0]["inlineData"]["data"]
        except (IndexError, KeyError, TypeError) as exc:
            raise SynthesisFailure(
                "Gemini TTS returned no audio",
                status=200,
                payload=json.dumps(data)[:2000],
            ) from exc
        return base64.b64decode(encoded)
