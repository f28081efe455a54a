"""Narration service API endpoints for slide deck to video conversion."""

from pathlib import Path
from uuid import uuid4

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.narration import __version__
from services.narration.orchestrator import VideoOrchestrator
from shared.config import PipelineSettings
from shared.errors import ConfigurationError, InputError, InternalError, PipelineError
from shared.response_models import ConversionResponse, ErrorResponse, HealthResponse
from shared.utils import config, ensure_directory, sanitize_filename, setup_logging

logger = setup_logging("narration-service")

app = FastAPI(
    title="Narration Service",
    description="Turns PPTX and PDF decks into narrated MP4 videos",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize orchestrator
settings = PipelineSettings.from_config(config)
orchestrator = VideoOrchestrator(settings)


def video_url_for(job_id: str) -> str:
    return f"/uploads/{job_id}_processed/final_video.mp4"


def error_response(exc: PipelineError, status_code: int) -> JSONResponse:
    body = ErrorResponse(**exc.to_payload(include_stack=orchestrator.settings.debug))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Render pipeline failures as structured error bodies."""
    if isinstance(exc, InputError):
        return error_response(exc, 400)
    if isinstance(exc, InternalError):
        return error_response(exc, 500)
    return error_response(exc, 502)


app.add_exception_handler(PipelineError, pipeline_error_handler)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for the narration service."""
    return HealthResponse(
        status="healthy",
        message="Narration Service is healthy",
        version=__version__,
        dependencies={
            "analysis_provider": orchestrator.settings.analysis_provider,
            "tts_provider": orchestrator.settings.tts_provider,
        },
    )


@app.get("/voices", response_model=dict)
async def list_voices() -> dict:
    """List the voices offered by the configured speech provider."""
    try:
        synthesizer = orchestrator.synthesizer
    except ConfigurationError as e:
        return error_response(e, 503)
    return {"voices": synthesizer.voices, "default": synthesizer.default_voice}


@app.post("/convert", response_model=ConversionResponse)
async def convert_deck(
    pptx: UploadFile = File(..., description="PPTX or PDF deck"),
    voice: str | None = Form(None, description="Speech voice name"),
) -> ConversionResponse:
    """Convert an uploaded deck into a narrated video.

    The request completes when the final video has been assembled:
    1. Slide images are extracted from the deck
    2. Narration is planned for all slides in one analysis call
    3. Each slide is voiced and rendered into a clip
    4. Clips are concatenated in slide order
    """
    if not pptx.filename:
        raise InputError("No file uploaded")

    # Reject unsupported formats before anything touches the disk
    orchestrator.extractor.source_for(pptx.filename)

    uploads_root = Path(orchestrator.settings.uploads_root)
    ensure_directory(str(uploads_root))
    stored_name = f"{uuid4().hex}_{sanitize_filename(Path(pptx.filename).name)}"
    source_path = uploads_root / stored_name
    source_path.write_bytes(await pptx.read())

    job_id = Path(stored_name).stem
    logger.info(f"Received {pptx.filename} as job {job_id} (voice={voice or 'default'})")

    result = await orchestrator.convert(str(source_path), job_id, voice=voice, filename=pptx.filename)

    return ConversionResponse(
        job_id=job_id,
        video_url=video_url_for(job_id),
        duration=result.duration,
        details=result.details,
    )


@app.get("/status/{job_id}", response_model=dict)
async def get_job_status(job_id: str) -> dict:
    """Get the current status and progress of a conversion job."""
    job_status = orchestrator.get_job_status(job_id)
    if not job_status:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job_status
