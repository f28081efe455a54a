"""ffmpeg/ffprobe wrapper used for audio wrapping, clip rendering and concatenation."""

from __future__ import annotations

import asyncio
from pathlib import Path

from shared.config import PipelineSettings
from shared.errors import EncoderError
from shared.utils import remove_file, setup_logging


class FFmpegEncoder:
    """Run ffmpeg as an async subprocess with a per-call timeout.

    Every operation either leaves a complete output file behind or raises
    ``EncoderError``; partial outputs are deleted on failure, timeout and
    cancellation.
    """

    def __init__(self, settings: PipelineSettings) -> None:
        self.logger = setup_logging("ffmpeg-encoder")
        self.ffmpeg_path = settings.ffmpeg_path
        self.ffprobe_path = settings.ffprobe_path
        self.timeout = settings.encoder_timeout
        self.frame_rate = settings.frame_rate
        self.sample_rate = settings.sample_rate

    async def wrap_pcm(self, pcm_path: str | Path, output_path: str | Path, channels: int = 1) -> Path:
        """Wrap headerless s16le PCM into a standard audio container (picked by extension)."""
        await self._ffmpeg(
            [
                "-f", "s16le",
                "-ar", str(self.sample_rate),
                "-ac", str(channels),
                "-i", str(pcm_path),
                str(output_path),
            ],
            output_path,
        )
        return Path(output_path)

    async def render_still_clip(
        self,
        image_path: str | Path,
        audio_path: str | Path,
        output_path: str | Path,
    ) -> Path:
        """Loop one still image for exactly the length of the audio track."""
        await self._ffmpeg(
            [
                "-loop", "1",
                "-i", str(image_path),
                "-i", str(audio_path),
                "-c:v", "libx264",
                "-tune", "stillimage",
                "-c:a", "aac",
                "-r", str(self.frame_rate),
                # libx264 + yuv420p needs even dimensions
                "-vf", "scale=trunc(iw/2)*2:trunc(ih/2)*2",
                "-pix_fmt", "yuv420p",
                # Looped image ends with the audio
                "-shortest",
                "-fflags", "+shortest",
                "-max_interleave_delta", "100M",
                "-movflags", "+faststart",
                str(output_path),
            ],
            output_path,
        )
        return Path(output_path)

    async def concat(self, manifest_path: str | Path, output_path: str | Path) -> Path:
        """Re-encode the clips listed in a concat manifest into one constant-frame-rate video."""
        await self._ffmpeg(
            [
                "-f", "concat",
                "-safe", "0",
                "-i", str(manifest_path),
                "-c:v", "libx264",
                "-c:a", "aac",
                "-pix_fmt", "yuv420p",
                "-r", str(self.frame_rate),
                "-fps_mode", "cfr",
                "-movflags", "+faststart",
                str(output_path),
            ],
            output_path,
        )
        return Path(output_path)

    async def generate_tone(
        self,
        output_path: str | Path,
        duration: float,
        frequency: int = 440,
        volume: float = 0.2,
    ) -> Path:
        """Write a short fixed-tone track, used for degraded placeholder slides."""
        await self._ffmpeg(
            [
                "-f", "lavfi",
                "-i", f"sine=frequency={frequency}:duration={duration}:sample_rate={self.sample_rate}",
                "-af", f"volume={volume}",
                "-ac", "1",
                str(output_path),
            ],
            output_path,
        )
        return Path(output_path)

    async def probe_duration(self, media_path: str | Path) -> float:
        """Return the container duration in seconds as reported by ffprobe."""
        stdout = await self._exec(
            [
                self.ffprobe_path,
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(media_path),
            ]
        )
        try:
            return float(stdout.strip())
        except ValueError as exc:
            raise EncoderError(f"ffprobe returned no duration for {media_path}", stderr=stdout) from exc

    async def _ffmpeg(self, args: list[str], output_path: str | Path) -> None:
        command = [self.ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error", *args]
        try:
            await self._exec(command)
        except BaseException:
            remove_file(output_path)
            raise

    async def _exec(self, command: list[str]) -> str:
        self.logger.debug("Running %s", " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise EncoderError(f"Encoder binary not found: {command[0]}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            await self._terminate(process)
            raise EncoderError(f"{Path(command[0]).name} timed out after {self.timeout:g}s") from exc
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        stderr_text = stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            self.logger.debug("Encoder stderr: %s", stderr_text)
            raise EncoderError(
                f"{Path(command[0]).name} exited with code {process.returncode}",
                returncode=process.returncode,
                stderr=stderr_text,
            )
        return stdout.decode("utf-8", errors="replace")

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()
