"""
Frame extraction building blocks.

Parameter-set injection, JPEG demuxing, configuration, cancellation and
the error taxonomy shared by every stage.
"""

from .cancellation import CancellationToken
from .demux import find_frame_positions, split_jpeg_frames, split_jpeg_frames_concurrent
from .errors import (
    DecodeFailedError,
    ExtractionCancelledError,
    ExtractionIOError,
    FrameExtractionError,
    InvalidParameterSetError,
    NoFramesFoundError,
    ProbeFailedError,
)
from .models import FrameMetadata, FramePosition, ProcessorConfig
from .nal import START_CODE, inject_parameter_sets, repair_stream

__all__ = [
    "CancellationToken",
    "DecodeFailedError",
    "ExtractionCancelledError",
    "ExtractionIOError",
    "FrameExtractionError",
    "FrameMetadata",
    "FramePosition",
    "InvalidParameterSetError",
    "NoFramesFoundError",
    "ProbeFailedError",
    "ProcessorConfig",
    "START_CODE",
    "find_frame_positions",
    "inject_parameter_sets",
    "repair_stream",
    "split_jpeg_frames",
    "split_jpeg_frames_concurrent",
]
