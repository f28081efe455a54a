import asyncio
import json
import os
import sys
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, ClassVar, Generator

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = ROOT_DIR.parent
for path in (PROJECT_ROOT, ROOT_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# Keep module-level app setup away from the working directory
os.environ.setdefault("UPLOADS_ROOT", tempfile.mkdtemp(prefix="slidereel-uploads-"))

from services.deck_extraction import DeckExtractor
from services.deck_extraction.drivers import ImageSource
from services.narration.orchestrator import VideoOrchestrator
from services.narration_planner import NarrationPlanner
from services.narration_planner.drivers import AnalysisProvider
from services.tts_service import SpeechSynthesizer
from services.tts_service.drivers import TTSEngine
from shared.config import PipelineSettings
from shared.errors import EncoderError, SynthesisFailure
from shared.utils import config as service_config, ensure_directory

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class FakeAnalysisProvider(AnalysisProvider):
    """Analysis provider returning canned answers and recording every call."""

    def __init__(self, response: str | Callable[[str, list[str]], str] = "[]", delay: float = 0) -> None:
        self.response = response
        self.delay = delay
        self.calls: list[tuple[str, list[str]]] = []

    async def generate(self, directive: str, image_paths: list[str]) -> str:
        self.calls.append((directive, list(image_paths)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if callable(self.response):
            return self.response(directive, image_paths)
        return self.response


class FakeTTSEngine(TTSEngine):
    """Speech engine producing 0.5s of silence per word.

    Text containing ``FAIL`` raises a provider failure; ``delays`` maps a text
    fragment to a sleep so tests can control completion order.
    """

    SUPPORTED_VOICES: ClassVar[list[str]] = ["Aoede", "Puck"]
    DEFAULT_VOICE: ClassVar[str] = "Aoede"

    def __init__(self, delays: dict[str, float] | None = None) -> None:
        self.delays = delays or {}
        self.calls: list[tuple[str, str, str | None]] = []
        self.cancelled: list[str] = []
        self.active = 0
        self.max_active = 0

    async def synthesize(self, text: str, voice: str, style_hint: str | None = None) -> bytes:
        self.calls.append((text, voice, style_hint))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for fragment, delay in self.delays.items():
                if fragment in text:
                    await asyncio.sleep(delay)
            if "FAIL" in text:
                raise SynthesisFailure("Speech provider rejected the request", status=500, payload="boom")
            return b"\x00\x00" * int(self.SAMPLE_RATE * 0.5 * len(text.split()))
        except asyncio.CancelledError:
            self.cancelled.append(text)
            raise
        finally:
            self.active -= 1


class FakeEncoder:
    """Stand-in for FFmpegEncoder that writes marker files and tracks durations."""

    def __init__(self, sample_rate: int = 24000, fail_render: set[str] | None = None) -> None:
        self.sample_rate = sample_rate
        self.fail_render = fail_render or set()
        self.durations: dict[str, float] = {}
        self.calls: list[tuple[str, str]] = []
        self.manifests: list[str] = []

    def _record(self, path, duration: float) -> None:
        Path(path).write_bytes(b"media")
        self.durations[str(Path(path).resolve())] = duration

    async def wrap_pcm(self, pcm_path, output_path, channels: int = 1) -> Path:
        self.calls.append(("wrap_pcm", str(output_path)))
        size = Path(pcm_path).stat().st_size
        self._record(output_path, size / (2 * self.sample_rate))
        return Path(output_path)

    async def render_still_clip(self, image_path, audio_path, output_path) -> Path:
        self.calls.append(("render_still_clip", str(output_path)))
        if Path(image_path).name in self.fail_render:
            raise EncoderError("ffmpeg exited with code 1", returncode=1, stderr="Invalid data found\n")
        self._record(output_path, self.durations[str(Path(audio_path).resolve())])
        return Path(output_path)

    async def concat(self, manifest_path, output_path) -> Path:
        self.calls.append(("concat", str(output_path)))
        manifest = Path(manifest_path).read_text(encoding="utf-8")
        self.manifests.append(manifest)
        listed = [line[len("file '"):-1] for line in manifest.splitlines() if line]
        self._record(output_path, sum(self.durations[path] for path in listed))
        return Path(output_path)

    async def generate_tone(self, output_path, duration: float, frequency: int = 440, volume: float = 0.2) -> Path:
        self.calls.append(("generate_tone", str(output_path)))
        self._record(output_path, duration)
        return Path(output_path)

    async def probe_duration(self, media_path) -> float:
        try:
            return self.durations[str(Path(media_path).resolve())]
        except KeyError as exc:
            raise EncoderError(f"ffprobe returned no duration for {media_path}") from exc


class FakeImageSource(ImageSource):
    """Image source that writes ``count`` PNG pages regardless of the input file."""

    extensions = (".pptx", ".pdf")

    def __init__(self, count: int) -> None:
        self.count = count

    def extract(self, source_path: str, output_dir: str) -> list[str]:
        ensure_directory(output_dir)
        paths = []
        for index in range(self.count):
            target = Path(output_dir) / f"page_{index}.png"
            target.write_bytes(PNG_BYTES)
            paths.append(str(target.resolve()))
        return paths


def narration_json(*contents: str) -> str:
    """Build an analysis answer with one entry per content string."""
    return json.dumps([{"content": text, "tts_prompt": "warm"} for text in contents])


@pytest.fixture
def settings(tmp_path: Path) -> PipelineSettings:
    return PipelineSettings(
        uploads_root=str(tmp_path / "uploads"),
        analysis_provider="stub",
        tts_provider="stub",
        max_concurrency=3,
        analysis_timeout=5,
        tts_timeout=5,
        encoder_timeout=5,
    )


@pytest.fixture
def fake_encoder(settings: PipelineSettings) -> FakeEncoder:
    return FakeEncoder(sample_rate=settings.sample_rate)


@pytest.fixture
def fake_engine() -> FakeTTSEngine:
    return FakeTTSEngine()


@pytest.fixture
def build_orchestrator(
    settings: PipelineSettings,
    fake_encoder: FakeEncoder,
    fake_engine: FakeTTSEngine,
) -> Callable[..., VideoOrchestrator]:
    """Factory wiring a VideoOrchestrator to fake collaborators."""

    def _build(
        slide_count: int = 3,
        response: str | Callable[[str, list[str]], str] | None = None,
        **overrides,
    ) -> VideoOrchestrator:
        job_settings = settings.model_copy(update=overrides)
        provider = FakeAnalysisProvider(
            response if response is not None else narration_json(*(f"Slide number {i}" for i in range(slide_count)))
        )
        return VideoOrchestrator(
            job_settings,
            encoder=fake_encoder,
            extractor=DeckExtractor(job_settings, sources=[FakeImageSource(slide_count)]),
            planner=NarrationPlanner(job_settings, provider=provider),
            synthesizer=SpeechSynthesizer(job_settings, fake_encoder, engine=fake_engine),
        )

    return _build


@pytest.fixture
def pptx_factory(tmp_path: Path) -> Callable[..., Path]:
    """Write a minimal PPTX archive whose slides each reference one picture.

    ``slide_media`` lists, in presentation order, the media file each slide
    points at (``None`` for a slide without a picture); ``slide_files`` lists
    the slide part numbers in that same order.
    """

    def _build(
        slide_media: list[str | None],
        slide_files: list[int] | None = None,
        extra_media: list[str] | None = None,
        name: str = "deck.pptx",
    ) -> Path:
        slide_files = slide_files or list(range(1, len(slide_media) + 1))
        path = tmp_path / name
        rel_ns = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
        pkg_ns = "http://schemas.openxmlformats.org/package/2006/relationships"
        with zipfile.ZipFile(path, "w") as archive:
            sld_ids = "".join(
                f'<p:sldId id="{256 + i}" r:id="rId{i + 1}"/>' for i in range(len(slide_files))
            )
            archive.writestr(
                "ppt/presentation.xml",
                '<p:presentation xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main" '
                f'xmlns:r="{rel_ns}"><p:sldIdLst>{sld_ids}</p:sldIdLst></p:presentation>',
            )
            rels = "".join(
                f'<Relationship Id="rId{i + 1}" Type="{rel_ns}/slide" Target="slides/slide{number}.xml"/>'
                for i, number in enumerate(slide_files)
            )
            archive.writestr("ppt/_rels/presentation.xml.rels", f'<Relationships xmlns="{pkg_ns}">{rels}</Relationships>')
            for number, media in zip(slide_files, slide_media):
                archive.writestr(f"ppt/slides/slide{number}.xml", "<p:sld/>")
                if media is None:
                    continue
                archive.writestr(
                    f"ppt/slides/_rels/slide{number}.xml.rels",
                    f'<Relationships xmlns="{pkg_ns}">'
                    f'<Relationship Id="rId2" Type="{rel_ns}/image" Target="../media/{media}"/>'
                    "</Relationships>",
                )
                archive.writestr(f"ppt/media/{media}", PNG_BYTES + media.encode())
            for media in extra_media or []:
                archive.writestr(f"ppt/media/{media}", PNG_BYTES + media.encode())
        return path

    return _build


@pytest.fixture(autouse=True)
def test_environment(tmp_path: Path) -> Generator:
    """Point storage paths at a per-test directory."""
    uploads_root = tmp_path / "uploads"
    ensure_directory(str(uploads_root))
    original = service_config.get("uploads_root")
    service_config.set("uploads_root", str(uploads_root))
    try:
        yield
    finally:
        service_config.set("uploads_root", original)
