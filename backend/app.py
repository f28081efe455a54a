"""
SlideReel Backend - Unified Application Entry Point
Mounts the narration service under a single FastAPI application
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from services.narration import __version__
from services.narration import app as narration_module
from shared.errors import PipelineError
from shared.utils import config, ensure_directory, setup_logging

logger = setup_logging("slidereel-backend")

narration_app = narration_module.app

app = FastAPI(
    title="SlideReel Backend API",
    description="""
    Unified API for converting slide decks into narrated videos.

    Upload a PPTX or PDF deck to `/api/convert`; the finished video is served under `/uploads`.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Narration",
            "description": "Deck to video conversion - mounted at /api",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(PipelineError, narration_module.pipeline_error_handler)

# Routes to exclude (internal FastAPI docs routes)
EXCLUDED_PATHS = {"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc"}

# Include Narration routes with prefix
for route in narration_app.routes:
    if hasattr(route, "path") and hasattr(route, "endpoint"):
        # Skip internal documentation routes
        if route.path in EXCLUDED_PATHS:
            continue
        route_kwargs = {
            "path": f"/api{route.path}",
            "endpoint": route.endpoint,
            "methods": route.methods,
            "tags": ["Narration"],
        }
        if hasattr(route, "name"):
            route_kwargs["name"] = f"narration_{route.name}"
        if hasattr(route, "response_model"):
            route_kwargs["response_model"] = route.response_model
        app.add_api_route(**route_kwargs)

# Final videos and intermediate assets are retrievable under /uploads
uploads_root = narration_module.orchestrator.settings.uploads_root
ensure_directory(uploads_root)
app.mount("/uploads", StaticFiles(directory=uploads_root), name="uploads")


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service information and API navigation"""
    return {
        "service": "SlideReel Backend API",
        "version": __version__,
        "services": {
            "narration": {
                "convert": "/api/convert",
                "voices": "/api/voices",
                "status": "/api/status/{job_id}",
                "health": "/api/health",
            },
            "uploads": "/uploads",
        },
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json",
        },
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for all services"""
    return {
        "status": "healthy",
        "services": {
            "api_gateway": "operational",
            "narration": "operational",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting SlideReel Backend on http://0.0.0.0:8000")
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
