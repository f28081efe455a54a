"""
Configuration management for services.
"""

import json
import os
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from shared.enums import FailurePolicy, NarrationMode


class ServiceConfig:
    """Configuration management for services using environment variables."""

    def __init__(self) -> None:
        """Initialize configuration by loading environment variables."""
        # Always load .env from backend directory (where app.py is located)
        env_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.env"))
        load_dotenv(dotenv_path=env_path, override=True)
        self.config: dict[str, Any] = {}
        self.pipeline_config: dict[str, Any] = {}
        self.pipeline_config_path = os.getenv(
            "PIPELINE_CONFIG_PATH",
            os.path.join(os.path.dirname(__file__), "../../config/pipeline.yaml"),
        )
        self.load_from_env()
        self.load_pipeline_config()

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.config = {
            "gemini_api_key": os.getenv("GEMINI_API_KEY"),
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "openai_base_url": os.getenv("OPENAI_BASE_URL") or None,
            "uploads_root": os.getenv("UPLOADS_ROOT", "./uploads"),
            "debug": os.getenv("DEBUG", "false").lower() == "true",
            "allowed_origins": json.loads(os.getenv("ALLOWED_ORIGINS", '["*"]')),
            "analysis_provider": os.getenv("ANALYSIS_PROVIDER", "gemini"),
            "tts_provider": os.getenv("TTS_PROVIDER", "gemini"),
            "default_voice": os.getenv("DEFAULT_VOICE") or None,
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config.get(key, default)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value

    def load_pipeline_config(self) -> None:
        """Load pipeline configuration from YAML file."""
        path = os.path.abspath(self.pipeline_config_path)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                data = yaml.safe_load(stream) or {}
        except FileNotFoundError:
            data = {}
        self.pipeline_config = data

    def get_pipeline_value(self, path: str, default: Any = None) -> Any:
        """Retrieve a pipeline configuration value via dotted path."""
        env_override_key = f"PIPELINE_FLAG_{path.replace('.', '_').upper()}"
        env_value = os.getenv(env_override_key)
        if env_value is not None:
            return self._coerce_env_value(env_value, default)

        node: Any = self.pipeline_config
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node if node is not None else default

    def set_pipeline_config(self, pipeline_config: dict[str, Any]) -> None:
        """Override pipeline configuration (useful for tests)."""
        self.pipeline_config = pipeline_config

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered.replace(".", "", 1).isdigit():
            try:
                return float(lowered) if "." in lowered else int(lowered)
            except ValueError:
                return raw
        return raw or default


class PipelineSettings(BaseModel):
    """Typed view of the video pipeline configuration, passed into each component."""

    uploads_root: str = "./uploads"
    analysis_provider: str = "gemini"
    tts_provider: str = "gemini"
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    default_voice: str | None = None
    analysis_model: str = "gemini-3-flash-preview"
    tts_model: str = "gemini-2.5-pro-preview-tts"
    narration_mode: NarrationMode = NarrationMode.BATCHED
    rolling_context_window: int = Field(default=2, ge=0)
    failure_policy: FailurePolicy = FailurePolicy.ABORT
    max_concurrency: int = Field(default=3, ge=1)
    analysis_timeout: float = Field(default=180.0, gt=0)
    tts_timeout: float = Field(default=120.0, gt=0)
    encoder_timeout: float = Field(default=600.0, gt=0)
    frame_rate: int = Field(default=25, gt=0)
    sample_rate: int = Field(default=24000, gt=0)
    placeholder_duration: float = Field(default=3.0, gt=0)
    pdf_render_dpi: int = Field(default=150, gt=0)
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    debug: bool = False

    @classmethod
    def from_config(cls, service_config: ServiceConfig) -> "PipelineSettings":
        """Build settings from the environment-backed config and pipeline YAML."""
        values: dict[str, Any] = {}
        for key in (
            "uploads_root",
            "analysis_provider",
            "tts_provider",
            "gemini_api_key",
            "openai_api_key",
            "openai_base_url",
            "default_voice",
            "debug",
        ):
            value = service_config.get(key)
            if value is not None:
                values[key] = value

        for field_name in cls.model_fields:
            if field_name in values:
                continue
            value = service_config.get_pipeline_value(f"pipelines.video.{field_name}")
            if value is not None:
                values[field_name] = value
        return cls(**values)


# Global configuration instance
config = ServiceConfig()
