"""
Enums and constants used across the application.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle states of a deck-to-video conversion job."""

    RECEIVED = "received"
    EXTRACTING = "extracting"
    PLANNING = "planning"
    PROCESSING_SLIDES = "processing_slides"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


class PipelineStage(str, Enum):
    """Pipeline stage a failure is attributed to."""

    EXTRACTING = "extracting"
    PLANNING = "planning"
    SYNTHESIZING = "synthesizing"
    RENDERING = "rendering"
    ASSEMBLING = "assembling"


class FailurePolicy(str, Enum):
    """What to do when a single slide cannot be synthesized or rendered."""

    ABORT = "abort"
    SKIP = "skip"


class NarrationMode(str, Enum):
    """Narration planning strategy.

    ``batched`` sends the whole deck in one analysis call for narrative coherence;
    ``rolling`` calls once per slide with the previous narrations as context.
    """

    BATCHED = "batched"
    ROLLING = "rolling"
