"""Video orchestrator driving a deck through extraction, planning, per-slide rendering and assembly."""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any

from services.deck_extraction import DeckExtractor
from services.narration_planner import NarrationPlanner
from services.tts_service.service import SpeechSynthesizer
from services.video_composer import ClipRenderer, FFmpegEncoder, SequenceAssembler
from shared.config import PipelineSettings
from shared.enums import FailurePolicy, JobStatus, PipelineStage
from shared.errors import EmptyDeckError, InternalError, PipelineError, RenderFailure, SynthesisFailure
from shared.models import Clip, ConversionResult, Job, NarrationPlanEntry, Slide, SlideDetail
from shared.utils import Cache, ensure_directory, remove_file, setup_logging

logger = setup_logging("video-orchestrator")

JOB_TTL_SECONDS = 24 * 3600

# Stage an unexpected error is attributed to, by the status the job was in
STAGE_FOR_STATUS = {
    JobStatus.RECEIVED: PipelineStage.EXTRACTING,
    JobStatus.EXTRACTING: PipelineStage.EXTRACTING,
    JobStatus.PLANNING: PipelineStage.PLANNING,
    JobStatus.PROCESSING_SLIDES: PipelineStage.SYNTHESIZING,
    JobStatus.ASSEMBLING: PipelineStage.ASSEMBLING,
}


class VideoOrchestrator:
    """Orchestrates the complete deck-to-video pipeline for one job at a time.

    Stages run strictly in order: extraction, one narration planning call,
    bounded-concurrency synthesis and rendering per slide, then assembly of
    the clips in slide-index order.
    """

    def __init__(
        self,
        settings: PipelineSettings,
        *,
        encoder: FFmpegEncoder | None = None,
        extractor: DeckExtractor | None = None,
        planner: NarrationPlanner | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        renderer: ClipRenderer | None = None,
        assembler: SequenceAssembler | None = None,
    ) -> None:
        self.settings = settings
        self.jobs_root = Path(settings.uploads_root)
        self.encoder = encoder or FFmpegEncoder(settings)
        self.extractor = extractor or DeckExtractor(settings)
        self.renderer = renderer or ClipRenderer(self.encoder, settings)
        self.assembler = assembler or SequenceAssembler(self.encoder, settings)

        # Cache for storing job status and progress
        self.cache = Cache()

        # Provider-backed services need credentials; build them on first use
        self._planner = planner
        self._synthesizer = synthesizer

    @property
    def planner(self) -> NarrationPlanner:
        """Lazy load narration planner."""
        if self._planner is None:
            self._planner = NarrationPlanner(self.settings)
        return self._planner

    @planner.setter
    def planner(self, planner: NarrationPlanner) -> None:
        self._planner = planner

    @property
    def synthesizer(self) -> SpeechSynthesizer:
        """Lazy load speech synthesizer."""
        if self._synthesizer is None:
            self._synthesizer = SpeechSynthesizer(self.settings, self.encoder)
        return self._synthesizer

    @synthesizer.setter
    def synthesizer(self, synthesizer: SpeechSynthesizer) -> None:
        self._synthesizer = synthesizer

    def job_root(self, job_id: str) -> Path:
        return self.jobs_root / f"{job_id}_processed"

    async def convert(
        self,
        source_path: str,
        job_id: str,
        voice: str | None = None,
        filename: str | None = None,
    ) -> ConversionResult:
        """Convert one deck into a narrated video.

        Raises:
            PipelineError: any stage failed; the job is left in ``failed``.
        """
        job = Job(job_id=job_id, root=str(self.job_root(job_id)), voice=voice)
        self._save_job(job)

        try:
            job.voice = self.synthesizer.resolve_voice(voice)
            ensure_directory(job.root)

            self._transition(job, JobStatus.EXTRACTING)
            slides = await self._extract(job, source_path, filename)
            job.total_slides = len(slides)

            self._transition(job, JobStatus.PLANNING)
            plan = await self.planner.plan([slide.image_path for slide in slides])

            ensure_directory(str(job.audio_dir))
            ensure_directory(str(job.clips_dir))
            self._transition(job, JobStatus.PROCESSING_SLIDES)
            details, clips = await self._process_slides(job, slides, plan)

            self._transition(job, JobStatus.ASSEMBLING)
            final_video = await self.assembler.assemble(clips, job.final_video_path)
        except PipelineError as exc:
            self._fail(job, exc)
            raise
        except Exception as exc:
            logger.error(f"Job {job_id} failed unexpectedly: {exc}", exc_info=True)
            stage = STAGE_FOR_STATUS.get(job.status, PipelineStage.EXTRACTING)
            failure = InternalError(f"Unexpected error during {stage.value}", stage=stage, cause=str(exc))
            self._fail(job, failure)
            raise failure from exc

        self._transition(job, JobStatus.DONE)
        degraded = sum(1 for detail in details if detail.degraded)
        logger.info(
            f"Completed job {job_id}: {len(details)} slides, {degraded} degraded, "
            f"{final_video.duration or 0.0:.2f}s"
        )
        return ConversionResult(
            job_id=job_id,
            video_path=final_video.path,
            duration=final_video.duration,
            details=details,
        )

    def get_job_status(self, job_id: str) -> dict[str, Any] | None:
        """Return the stored job snapshot, or None for unknown/expired jobs."""
        return self.cache.get(f"job:{job_id}")

    async def _extract(self, job: Job, source_path: str, filename: str | None) -> list[Slide]:
        images_dir = job.images_dir
        images = await self.extractor.extract(source_path, str(images_dir), filename=filename)
        if not images:
            if images_dir.exists() and not any(images_dir.iterdir()):
                images_dir.rmdir()
            raise EmptyDeckError("No slide images could be extracted from the deck")
        logger.info(f"Job {job.job_id}: extracted {len(images)} slide images")
        return [Slide(index=index, image_path=path) for index, path in enumerate(images)]

    async def _process_slides(
        self,
        job: Job,
        slides: list[Slide],
        plan: list[NarrationPlanEntry],
    ) -> tuple[list[SlideDetail], list[Clip]]:
        """Synthesize and render every slide with bounded concurrency, then reorder by index."""
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def run(index: int) -> tuple[SlideDetail, Clip]:
            async with semaphore:
                return await self._process_slide(job, slides[index], plan[index])

        tasks = {asyncio.create_task(run(index), name=f"{job.job_id}-slide-{index}"): index for index in range(len(slides))}
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            await self._cancel(tasks)
            raise

        if pending:
            logger.warning(f"Job {job.job_id}: cancelling {len(pending)} in-flight slides after a failure")
            await self._cancel(pending)

        failures = sorted(
            (tasks[task], task.exception())
            for task in done
            if not task.cancelled() and task.exception() is not None
        )
        if failures:
            raise failures[0][1]

        # Reorder buffer: completion order is irrelevant, assembly follows slide index
        completed = {tasks[task]: task.result() for task in done}
        for index in range(len(slides)):
            if index not in completed:
                raise RenderFailure(f"No clip was produced for slide {index}", slide_index=index)
        ordered = [completed[index] for index in range(len(slides))]
        return [detail for detail, _ in ordered], [clip for _, clip in ordered]

    async def _process_slide(
        self,
        job: Job,
        slide: Slide,
        entry: NarrationPlanEntry,
    ) -> tuple[SlideDetail, Clip]:
        index, image_path = slide.index, slide.image_path
        audio_path = job.audio_dir / f"page_{index}.mp3"
        clip_path = job.clips_dir / f"page_{index}.mp4"
        detail = SlideDetail(
            index=index,
            image=Path(image_path).name,
            content=entry.content,
            tts_prompt=entry.tts_prompt,
        )

        try:
            audio = await self.synthesizer.synthesize_to_file(
                index, entry.content, entry.tts_prompt, job.voice, audio_path
            )
            clip = await self.renderer.render(image_path, audio, clip_path)
        except (SynthesisFailure, RenderFailure) as exc:
            if self.settings.failure_policy != FailurePolicy.SKIP:
                remove_file(audio_path)
                remove_file(clip_path)
                raise
            logger.warning(f"Job {job.job_id}: slide {index} degraded to placeholder: {exc}")
            audio, clip = await self.renderer.render_placeholder(index, image_path, audio_path, clip_path)
            detail.degraded = True
            detail.error = exc.message
        except asyncio.CancelledError:
            remove_file(audio_path)
            remove_file(clip_path)
            raise

        detail.audio = audio.path
        detail.clip = clip.path
        detail.duration = clip.duration if clip.duration is not None else audio.duration

        job.completed_slides += 1
        self._save_job(job)
        logger.info(f"Job {job.job_id}: slide {index} ready ({job.completed_slides}/{job.total_slides})")
        return detail, clip

    @staticmethod
    async def _cancel(tasks) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _transition(self, job: Job, status: JobStatus) -> None:
        job.status = status
        self._save_job(job)
        logger.info(f"Job {job.job_id} -> {status.value}")

    def _fail(self, job: Job, exc: PipelineError) -> None:
        job.status = JobStatus.FAILED
        job.failed_stage = exc.stage
        job.error = exc.to_payload()
        self._save_job(job)
        where = f" at slide {exc.slide_index}" if exc.slide_index is not None else ""
        logger.error(f"Job {job.job_id} failed during {exc.stage.value}{where}: {exc.message}")

    def _save_job(self, job: Job) -> None:
        job.updated_at = datetime.now()
        self.cache.set(f"job:{job.job_id}", job.model_dump(mode="json"), ttl=JOB_TTL_SECONDS)
