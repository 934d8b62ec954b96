"""
Value objects for the extraction pipeline.

ProcessorConfig is frozen: a processor holds one instance and swaps it
wholesale when settings change, so an extraction that is already running
keeps the configuration it started with.
"""

import base64
import os
from dataclasses import dataclass, field, replace
from typing import Union

# Known-good parameter sets for the streams the pipeline was built against.
DEFAULT_SPS = "Z0LADJoFAAABMA=="
DEFAULT_PPS = "aM48gA=="

# Vision models tile images in 28px patches.
DIMENSION_MULTIPLE = 28

MIN_QUALITY = 1
MAX_QUALITY = 100


def round_up_to_multiple(value: int, multiple: int = DIMENSION_MULTIPLE) -> int:
    """Smallest multiple of `multiple` that is >= value."""
    return -(-value // multiple) * multiple


def clamp_quality(quality: int) -> int:
    return max(MIN_QUALITY, min(MAX_QUALITY, quality))


def _encode_parameter_set(value: Union[str, bytes]) -> str:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


@dataclass(frozen=True)
class ProcessorConfig:
    """
    Parameters for one processor.

    Width and height are rounded up to multiples of 28 and quality is
    clamped to [1, 100] at construction, so every instance is already
    normalized. SPS/PPS are kept base64-encoded; they are only decoded
    when a stream is repaired.
    """
    frame_rate: int = 2
    target_width: int = 1120
    target_height: int = 1120
    quality: int = 90
    sps: str = DEFAULT_SPS
    pps: str = DEFAULT_PPS
    max_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    buffer_capacity: int = 100
    hardware_accel: bool = False

    def __post_init__(self) -> None:
        if self.frame_rate < 1:
            raise ValueError("frame_rate must be positive")
        if self.target_width < 1 or self.target_height < 1:
            raise ValueError("target resolution must be positive")
        if self.max_workers < 1:
            raise ValueError("max_workers must be positive")
        if self.buffer_capacity < 1:
            raise ValueError("buffer_capacity must be positive")

        # frozen, so normalize through object.__setattr__
        object.__setattr__(self, "target_width", round_up_to_multiple(self.target_width))
        object.__setattr__(self, "target_height", round_up_to_multiple(self.target_height))
        object.__setattr__(self, "quality", clamp_quality(self.quality))
        object.__setattr__(self, "sps", _encode_parameter_set(self.sps))
        object.__setattr__(self, "pps", _encode_parameter_set(self.pps))

    def with_frame_rate(self, frame_rate: int) -> "ProcessorConfig":
        return replace(self, frame_rate=frame_rate)

    def with_resolution(self, width: int, height: int) -> "ProcessorConfig":
        return replace(self, target_width=width, target_height=height)

    def with_quality(self, quality: int) -> "ProcessorConfig":
        return replace(self, quality=quality)

    def with_parameter_sets(
        self,
        sps: Union[str, bytes],
        pps: Union[str, bytes],
    ) -> "ProcessorConfig":
        """Override SPS/PPS. Accepts base64 text or raw NAL payload bytes."""
        return replace(self, sps=sps, pps=pps)

    def with_max_workers(self, workers: int) -> "ProcessorConfig":
        return replace(self, max_workers=workers)

    def with_buffer_capacity(self, capacity: int) -> "ProcessorConfig":
        return replace(self, buffer_capacity=capacity)

    def with_hardware_accel(self, enabled: bool) -> "ProcessorConfig":
        return replace(self, hardware_accel=enabled)


@dataclass(frozen=True)
class FramePosition:
    """Where one JPEG sits inside a larger buffer. `end` is exclusive."""
    start: int
    end: int
    index: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError("Frame position must satisfy end > start >= 0")

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class FrameMetadata:
    """Summary of one container-mode extraction."""
    total_frames: int
    frame_rate: int
    duration_seconds: float
    width: int
    height: int

    @property
    def valid_dimension(self) -> bool:
        """True if both dimensions fit the vision model's 28px grid."""
        return self.width % DIMENSION_MULTIPLE == 0 and self.height % DIMENSION_MULTIPLE == 0
