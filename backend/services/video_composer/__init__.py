"""Video composition: ffmpeg encoder, clip renderer and sequence assembler."""

from .assembler import SequenceAssembler
from .encoder import FFmpegEncoder
from .renderer import ClipRenderer

__all__ = ["ClipRenderer", "FFmpegEncoder", "SequenceAssembler"]
