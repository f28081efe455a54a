"""Tests for the ffmpeg encoder wrapper, clip renderer and sequence assembler."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.video_composer import ClipRenderer, FFmpegEncoder, SequenceAssembler
from services.video_composer.assembler import build_manifest
from shared.errors import AssemblyFailure, EncoderError, RenderFailure
from shared.models import AudioAsset, Clip


def make_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"", delay: float = 0) -> MagicMock:
    process = MagicMock()
    process.returncode = None

    async def communicate():
        if delay:
            await asyncio.sleep(delay)
        process.returncode = returncode
        return stdout, stderr

    async def wait():
        return process.returncode

    def kill():
        process.returncode = -9

    process.communicate = communicate
    process.wait = AsyncMock(side_effect=wait)
    process.kill = MagicMock(side_effect=kill)
    return process


class TestFFmpegEncoder:
    """Subprocess handling with asyncio.create_subprocess_exec patched."""

    @pytest.mark.asyncio
    async def test_render_still_clip_arguments(self, settings, tmp_path: Path) -> None:
        encoder = FFmpegEncoder(settings)
        output = tmp_path / "clip.mp4"

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process())) as exec_mock:
            result = await encoder.render_still_clip("slide.png", "audio.mp3", output)

        assert result == output
        args = exec_mock.call_args.args
        assert args[0] == "ffmpeg"
        assert args[-1] == str(output)
        assert ["-loop", "1", "-i", "slide.png", "-i", "audio.mp3"] == list(args[5:11])
        for flag, value in (("-c:v", "libx264"), ("-c:a", "aac"), ("-pix_fmt", "yuv420p"), ("-r", "25")):
            assert args[args.index(flag) + 1] == value
        assert "-shortest" in args
        assert "+faststart" in args

    @pytest.mark.asyncio
    async def test_wrap_pcm_declares_raw_format(self, settings, tmp_path: Path) -> None:
        encoder = FFmpegEncoder(settings)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process())) as exec_mock:
            await encoder.wrap_pcm(tmp_path / "a.pcm", tmp_path / "a.mp3")

        args = exec_mock.call_args.args
        assert args[args.index("-f") + 1] == "s16le"
        assert args[args.index("-ar") + 1] == "24000"
        assert args[args.index("-ac") + 1] == "1"

    @pytest.mark.asyncio
    async def test_concat_uses_manifest(self, settings, tmp_path: Path) -> None:
        encoder = FFmpegEncoder(settings)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process())) as exec_mock:
            await encoder.concat(tmp_path / "clips.txt", tmp_path / "final.mp4")

        args = exec_mock.call_args.args
        assert args[args.index("-f") + 1] == "concat"
        assert args[args.index("-safe") + 1] == "0"
        assert args[args.index("-fps_mode") + 1] == "cfr"

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_and_removes_output(self, settings, tmp_path: Path) -> None:
        encoder = FFmpegEncoder(settings)
        output = tmp_path / "clip.mp4"
        output.write_bytes(b"partial")
        process = make_process(returncode=1, stderr=b"line 1\nInvalid data found when processing input\n")

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(EncoderError) as exc_info:
                await encoder.render_still_clip("slide.png", "audio.mp3", output)

        assert exc_info.value.returncode == 1
        assert exc_info.value.diagnostic.endswith("Invalid data found when processing input")
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, settings, tmp_path: Path) -> None:
        encoder = FFmpegEncoder(settings.model_copy(update={"encoder_timeout": 0.05}))
        output = tmp_path / "clip.mp4"
        process = make_process(delay=5)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(EncoderError) as exc_info:
                await encoder.render_still_clip("slide.png", "audio.mp3", output)

        assert "timed out" in str(exc_info.value)
        process.kill.assert_called_once()
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_cancellation_kills_process(self, settings, tmp_path: Path) -> None:
        encoder = FFmpegEncoder(settings)
        output = tmp_path / "final.mp4"
        process = make_process(delay=5)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            task = asyncio.create_task(encoder.concat(tmp_path / "clips.txt", output))
            await asyncio.sleep(0.05)
            output.write_bytes(b"partial")
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        process.kill.assert_called_once()
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_missing_binary(self, settings, tmp_path: Path) -> None:
        encoder = FFmpegEncoder(settings.model_copy(update={"ffmpeg_path": "/nonexistent/ffmpeg"}))

        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError())):
            with pytest.raises(EncoderError, match="not found"):
                await encoder.generate_tone(tmp_path / "tone.wav", 3.0)

    @pytest.mark.asyncio
    async def test_probe_duration(self, settings) -> None:
        encoder = FFmpegEncoder(settings)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process(stdout=b"12.480000\n"))) as exec_mock:
            duration = await encoder.probe_duration("clip.mp4")

        assert duration == pytest.approx(12.48)
        assert exec_mock.call_args.args[0] == "ffprobe"

    @pytest.mark.asyncio
    async def test_probe_duration_without_value(self, settings) -> None:
        encoder = FFmpegEncoder(settings)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process(stdout=b"N/A\n"))):
            with pytest.raises(EncoderError):
                await encoder.probe_duration("clip.mp4")


def test_manifest_lists_absolute_paths_in_order(tmp_path: Path) -> None:
    clips = [Clip(index=i, path=str(tmp_path / f"page_{i}.mp4")) for i in (0, 1, 2)]

    manifest = build_manifest(clips)

    assert manifest.endswith("\n")
    lines = manifest.splitlines()
    assert lines == [f"file '{(tmp_path / f'page_{i}.mp4').resolve()}'" for i in (0, 1, 2)]


def test_manifest_escapes_single_quotes(tmp_path: Path) -> None:
    clip = Clip(index=0, path=str(tmp_path / "it's.mp4"))

    manifest = build_manifest([clip])

    assert manifest.strip().endswith("it'\\''s.mp4'")


@pytest.mark.asyncio
async def test_renderer_clip_matches_audio(settings, fake_encoder, tmp_path: Path) -> None:
    renderer = ClipRenderer(fake_encoder, settings)
    audio_path = tmp_path / "page_0.mp3"
    fake_encoder._record(audio_path, 4.2)

    clip = await renderer.render("page_0.png", AudioAsset(index=0, path=str(audio_path)), tmp_path / "page_0.mp4")

    assert clip.index == 0
    assert clip.duration == pytest.approx(4.2)


@pytest.mark.asyncio
async def test_renderer_maps_encoder_error(settings, fake_encoder, tmp_path: Path) -> None:
    fake_encoder.fail_render = {"page_2.png"}
    renderer = ClipRenderer(fake_encoder, settings)

    with pytest.raises(RenderFailure) as exc_info:
        await renderer.render("page_2.png", AudioAsset(index=2, path=str(tmp_path / "a.mp3")), tmp_path / "c.mp4")

    assert exc_info.value.slide_index == 2
    assert exc_info.value.diagnostic == "Invalid data found"


@pytest.mark.asyncio
async def test_renderer_tolerates_probe_failure(settings, tmp_path: Path) -> None:
    encoder = MagicMock()
    encoder.render_still_clip = AsyncMock()
    encoder.probe_duration = AsyncMock(side_effect=EncoderError("ffprobe exited with code 1", 1))
    renderer = ClipRenderer(encoder, settings)

    clip = await renderer.render("p.png", AudioAsset(index=0, path="a.mp3"), tmp_path / "c.mp4")

    assert clip.duration is None


@pytest.mark.asyncio
async def test_placeholder_uses_tone(settings, fake_encoder, tmp_path: Path) -> None:
    renderer = ClipRenderer(fake_encoder, settings)

    audio, clip = await renderer.render_placeholder(1, "page_1.png", tmp_path / "page_1.mp3", tmp_path / "page_1.mp4")

    assert audio.duration == settings.placeholder_duration
    assert clip.duration == pytest.approx(settings.placeholder_duration)
    assert [name for name, _ in fake_encoder.calls] == ["generate_tone", "render_still_clip"]


@pytest.mark.asyncio
async def test_assembler_sums_clip_durations(settings, fake_encoder, tmp_path: Path) -> None:
    clips = []
    for index, duration in enumerate((1.5, 2.0, 3.25)):
        path = tmp_path / f"page_{index}.mp4"
        fake_encoder._record(path, duration)
        clips.append(Clip(index=index, path=str(path), duration=duration))
    assembler = SequenceAssembler(fake_encoder, settings)

    final = await assembler.assemble(clips, tmp_path / "final_video.mp4")

    assert final.slide_count == 3
    assert final.duration == pytest.approx(6.75)
    assert (tmp_path / "clips.txt").read_text(encoding="utf-8") == build_manifest(clips)


@pytest.mark.asyncio
async def test_assembler_keeps_given_order(settings, fake_encoder, tmp_path: Path) -> None:
    clips = []
    for index in (2, 0, 1):
        path = tmp_path / f"page_{index}.mp4"
        fake_encoder._record(path, 1.0)
        clips.append(Clip(index=index, path=str(path), duration=1.0))

    await SequenceAssembler(fake_encoder, settings).assemble(clips, tmp_path / "final.mp4")

    names = [Path(line[len("file '"):-1]).name for line in fake_encoder.manifests[-1].splitlines()]
    assert names == ["page_2.mp4", "page_0.mp4", "page_1.mp4"]


@pytest.mark.asyncio
async def test_assembler_rejects_empty(settings, fake_encoder, tmp_path: Path) -> None:
    with pytest.raises(AssemblyFailure):
        await SequenceAssembler(fake_encoder, settings).assemble([], tmp_path / "final.mp4")


@pytest.mark.asyncio
async def test_assembler_maps_encoder_error(settings, tmp_path: Path) -> None:
    encoder = MagicMock()
    encoder.concat = AsyncMock(side_effect=EncoderError("ffmpeg exited with code 1", 1, "moov atom not found"))
    clip = Clip(index=0, path=str(tmp_path / "page_0.mp4"), duration=1.0)

    with pytest.raises(AssemblyFailure) as exc_info:
        await SequenceAssembler(encoder, settings).assemble([clip], tmp_path / "final.mp4")

    assert exc_info.value.diagnostic == "moov atom not found"
