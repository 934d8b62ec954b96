"""
Video processing infrastructure.

Handles frame extraction using FFmpeg:
- Raw H.264 segments (with SPS/PPS repair)
- Container files, from disk or piped from memory
- Continuous extraction from a live byte source
"""

from .ffmpeg import FFmpegDecoder, quality_to_qscale
from .processor import (
    StreamProcessor,
    VideoProcessor,
    create_stream_processor,
    create_video_processor,
)
from .runner import PopenRunner, ProcessResult, SubprocessRunner
from .stream import (
    ChunkError,
    ClosableQueue,
    ExtractionState,
    QueueClosed,
    StreamFrameExtractor,
    create_stream_extractor,
)

__all__ = [
    "ChunkError",
    "ClosableQueue",
    "ExtractionState",
    "FFmpegDecoder",
    "PopenRunner",
    "ProcessResult",
    "QueueClosed",
    "StreamFrameExtractor",
    "StreamProcessor",
    "SubprocessRunner",
    "VideoProcessor",
    "create_stream_extractor",
    "create_stream_processor",
    "create_video_processor",
    "quality_to_qscale",
]
