"""
Sending extracted frames to a vision model.

The analyzer glues extraction to whatever model consumes the frames.
It doesn't know about HTTP or any particular vendor; the model sits
behind the FrameConsumer protocol, so tests can hand in a fake.

Extraction is blocking (ffmpeg runs as a subprocess), so the async
methods push it onto a worker thread with asyncio.to_thread.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol
from uuid import UUID, uuid4

from ..extraction.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when the vision model call fails."""
    pass


# ---------------------------------------------------------------------------
# Data Models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisOptions:
    """
    Sampling options passed through to the model.

    None means "use the consumer's default".
    """
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: bool = False

    def __post_init__(self) -> None:
        if self.temperature is not None and not 0 <= self.temperature <= 1:
            raise ValueError("temperature must be between 0 and 1")
        if self.top_p is not None and not 0 <= self.top_p <= 1:
            raise ValueError("top_p must be between 0 and 1")
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")


@dataclass
class AnalysisResult:
    """What the model said about a set of frames."""
    content: str
    model: str
    id: UUID = field(default_factory=uuid4)
    stop_reason: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    frame_count: int = 0
    analyzed_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class FrameConsumer(Protocol):
    """
    Interface for vision-capable models.

    Takes JPEG frames in order plus a prompt, returns the model's answer
    or raises AnalysisError.
    """

    async def analyze_frames(
        self,
        prompt: str,
        frames: list[bytes],
        options: Optional[AnalysisOptions] = None,
    ) -> AnalysisResult:
        ...


class FrameSource(Protocol):
    """The slice of VideoProcessor the analyzer needs."""

    def extract_frames(
        self,
        video_path: Path,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[bytes]:
        ...

    def extract_frames_from_bytes(
        self,
        video_data: bytes,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[bytes]:
        ...


class H264FrameSource(Protocol):
    """The slice of StreamProcessor the analyzer needs."""

    def process_h264_stream(
        self,
        h264_data: bytes,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[bytes]:
        ...


# ---------------------------------------------------------------------------
# Analyzer Service
# ---------------------------------------------------------------------------

class VideoAnalyzer:
    """
    Extracts frames and hands them to a FrameConsumer.

    Stateless apart from its dependencies; safe to share between tasks.
    """

    def __init__(
        self,
        consumer: FrameConsumer,
        video_processor: Optional[FrameSource] = None,
        stream_processor: Optional[H264FrameSource] = None,
    ) -> None:
        self._consumer = consumer
        self._video_processor = video_processor
        self._stream_processor = stream_processor

    async def analyze_frames(
        self,
        prompt: str,
        frames: list[bytes],
        options: Optional[AnalysisOptions] = None,
    ) -> AnalysisResult:
        """Send already-extracted frames to the model."""
        if not frames:
            raise ValueError("At least one frame is required")
        if not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        logger.info("Analyzing frames", extra={"frame_count": len(frames)})

        result = await self._consumer.analyze_frames(prompt, frames, options)
        result.frame_count = len(frames)
        return result

    async def analyze_video(
        self,
        video_path: Path,
        prompt: str,
        options: Optional[AnalysisOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalysisResult:
        """Extract frames from a video file, then analyze them."""
        processor = self._require(self._video_processor, "video processor")
        frames = await asyncio.to_thread(processor.extract_frames, video_path, cancel_token)
        return await self.analyze_frames(prompt, frames, options)

    async def analyze_video_bytes(
        self,
        video_data: bytes,
        prompt: str,
        options: Optional[AnalysisOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalysisResult:
        """Extract frames from an in-memory container, then analyze them."""
        processor = self._require(self._video_processor, "video processor")
        frames = await asyncio.to_thread(
            processor.extract_frames_from_bytes, video_data, cancel_token
        )
        return await self.analyze_frames(prompt, frames, options)

    async def analyze_h264_stream(
        self,
        h264_data: bytes,
        prompt: str,
        options: Optional[AnalysisOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalysisResult:
        """Extract frames from raw H.264 data, then analyze them."""
        processor = self._require(self._stream_processor, "stream processor")
        frames = await asyncio.to_thread(
            processor.process_h264_stream, h264_data, cancel_token
        )
        return await self.analyze_frames(prompt, frames, options)

    @staticmethod
    def _require(processor, name: str):
        if processor is None:
            raise RuntimeError(f"VideoAnalyzer was created without a {name}")
        return processor
