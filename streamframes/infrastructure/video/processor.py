"""
Frame extraction processors.

Two entry points, one per kind of input:
1. StreamProcessor - raw H.264 elementary streams (live sources, chunks)
2. VideoProcessor - container files (mp4, mkv, ...) on disk or in memory

Both hold a ProcessorConfig behind a lock. The lock covers swapping the
config and (for StreamProcessor) creating the temp directory; the actual
decode and demux run outside it, so concurrent calls on one processor
only serialize on setup.

Raw H.264 goes to ffmpeg through a per-call temp file; container bytes
go over stdin.
"""

import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import BinaryIO, Optional

from ...config.settings import Settings, get_settings
from ...core.extraction.cancellation import CancellationToken
from ...core.extraction.demux import split_jpeg_frames, split_jpeg_frames_concurrent
from ...core.extraction.errors import ExtractionIOError, NoFramesFoundError
from ...core.extraction.models import FrameMetadata, ProcessorConfig
from ...core.extraction.nal import repair_stream
from .ffmpeg import PIPE_INPUT, FFmpegDecoder

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "h264stream-"


class _ConfiguredProcessor:
    """Shared config/lock handling for both processors."""

    def __init__(
        self,
        config: Optional[ProcessorConfig] = None,
        decoder: Optional[FFmpegDecoder] = None,
    ) -> None:
        self._config = config or ProcessorConfig()
        self._decoder = decoder or FFmpegDecoder()
        self._lock = threading.Lock()

    @property
    def config(self) -> ProcessorConfig:
        with self._lock:
            return self._config

    @config.setter
    def config(self, value: ProcessorConfig) -> None:
        with self._lock:
            self._config = value

    @property
    def decoder(self) -> FFmpegDecoder:
        return self._decoder


class StreamProcessor(_ConfiguredProcessor):
    """
    Extracts frames from raw H.264 data.

    Every call re-injects SPS/PPS, so each segment decodes on its own
    whether or not it contains the stream's original parameter sets.

    The temp directory is created on first use and kept until cleanup()
    is called. Callers that never call cleanup() leave it behind.
    """

    def __init__(
        self,
        config: Optional[ProcessorConfig] = None,
        decoder: Optional[FFmpegDecoder] = None,
    ) -> None:
        super().__init__(config, decoder)
        self._temp_dir: Optional[str] = None

    @property
    def temp_dir(self) -> Optional[str]:
        with self._lock:
            return self._temp_dir

    def process_h264_stream(
        self,
        h264_data: bytes,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[bytes]:
        """
        Decode one raw H.264 segment into JPEG frames.

        Args:
            h264_data: Raw Annex B H.264 bytes
            cancel_token: Aborts the ffmpeg run when cancelled

        Returns:
            JPEG frames in decode order (never empty)
        """
        config, temp_dir = self._prepare()

        repaired = repair_stream(h264_data, config)

        try:
            fd, h264_path = tempfile.mkstemp(prefix="stream_", suffix=".h264", dir=temp_dir)
            with os.fdopen(fd, "wb") as f:
                f.write(repaired)
        except OSError as e:
            raise ExtractionIOError(f"failed to write h264 file: {e}") from e

        try:
            output = self._decoder.decode_h264_file(h264_path, config, cancel_token)
        finally:
            try:
                os.unlink(h264_path)
            except OSError as e:
                logger.warning(f"Failed to remove temp file {h264_path}: {e}")

        frames = split_jpeg_frames(output)

        logger.debug(
            "Extracted frames from H.264 segment",
            extra={"input_bytes": len(h264_data), "frame_count": len(frames)},
        )
        return frames

    def process_h264_reader(
        self,
        reader: BinaryIO,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[bytes]:
        """Read a whole H.264 source (pipe, socket file, ...) and decode it."""
        try:
            data = reader.read()
        except OSError as e:
            raise ExtractionIOError(f"failed to read stream: {e}") from e

        return self.process_h264_stream(data, cancel_token)

    def cleanup(self) -> None:
        """Remove the temp directory, if one was created."""
        with self._lock:
            if self._temp_dir is None:
                return
            temp_dir, self._temp_dir = self._temp_dir, None

        try:
            shutil.rmtree(temp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ExtractionIOError(f"failed to remove temp dir {temp_dir}: {e}") from e

        logger.info("Removed stream temp directory", extra={"temp_dir": temp_dir})

    def _prepare(self) -> tuple[ProcessorConfig, str]:
        """Snapshot config and make sure the temp dir exists."""
        with self._lock:
            if self._temp_dir is None:
                try:
                    self._temp_dir = tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX)
                except OSError as e:
                    raise ExtractionIOError(f"failed to create temp dir: {e}") from e
                logger.info("Created stream temp directory", extra={"temp_dir": self._temp_dir})
            return self._config, self._temp_dir


class VideoProcessor(_ConfiguredProcessor):
    """
    Extracts frames from container files.

    File input is probed for its duration first so obviously empty
    videos fail before ffmpeg spends time on them.
    """

    def extract_frames(
        self,
        video_path: Path,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[bytes]:
        """
        Extract frames from a video file at the configured frame rate.

        Returns JPEG frames in presentation order.
        """
        frames, _ = self.extract_frames_with_metadata(video_path, cancel_token)
        return frames

    def extract_frames_with_metadata(
        self,
        video_path: Path,
        cancel_token: Optional[CancellationToken] = None,
    ) -> tuple[list[bytes], FrameMetadata]:
        """Like extract_frames, also returning a FrameMetadata summary."""
        video_path = Path(video_path)
        if not video_path.exists():
            raise ExtractionIOError(f"Video file not found: {video_path}")

        config = self.config

        duration = self._decoder.probe_duration(str(video_path), cancel_token)
        expected_frames = int(duration) * config.frame_rate
        if expected_frames == 0:
            raise NoFramesFoundError("video too short or invalid")

        output = self._decoder.decode_container(str(video_path), config, cancel_token)
        frames = split_jpeg_frames_concurrent(
            output,
            max_workers=config.max_workers,
            buffer_capacity=config.buffer_capacity,
        )

        metadata = self.describe(frames, duration, config)

        logger.info(
            "Extracted frames from video file",
            extra={
                "path": str(video_path),
                "duration": duration,
                "expected_frames": expected_frames,
                "frame_count": len(frames),
            },
        )
        return frames, metadata

    def extract_frames_from_bytes(
        self,
        video_data: bytes,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[bytes]:
        """
        Extract frames from an in-memory container, piped over stdin.

        Formats that need a seekable input (mp4 with moov at the end)
        may fail here; use extract_frames with a file for those.
        """
        config = self.config

        output = self._decoder.decode_container(
            PIPE_INPUT, config, cancel_token, input_data=video_data
        )
        frames = split_jpeg_frames(output)

        logger.info(
            "Extracted frames from video bytes",
            extra={"input_bytes": len(video_data), "frame_count": len(frames)},
        )
        return frames

    @staticmethod
    def describe(
        frames: list[bytes],
        duration_seconds: float,
        config: ProcessorConfig,
    ) -> FrameMetadata:
        return FrameMetadata(
            total_frames=len(frames),
            frame_rate=config.frame_rate,
            duration_seconds=duration_seconds,
            width=config.target_width,
            height=config.target_height,
        )


# ---------------------------------------------------------------------------
# Factory Functions
# ---------------------------------------------------------------------------

def _decoder_from_settings(settings: Settings) -> FFmpegDecoder:
    return FFmpegDecoder(
        ffmpeg_path=settings.ffmpeg_path,
        ffprobe_path=settings.ffprobe_path,
    )


def create_stream_processor(settings: Optional[Settings] = None) -> StreamProcessor:
    """Build a StreamProcessor from settings (environment by default)."""
    settings = settings or get_settings()
    return StreamProcessor(
        config=settings.processor_config(),
        decoder=_decoder_from_settings(settings),
    )


def create_video_processor(settings: Optional[Settings] = None) -> VideoProcessor:
    """Build a VideoProcessor from settings (environment by default)."""
    settings = settings or get_settings()
    return VideoProcessor(
        config=settings.processor_config(),
        decoder=_decoder_from_settings(settings),
    )
