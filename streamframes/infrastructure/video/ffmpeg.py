"""
ffmpeg/ffprobe invocation.

Builds the command lines for decoding a video into a stream of JPEG
images and for probing a container's duration, then runs them through a
SubprocessRunner and turns failures into extraction errors.

Decode output is always image2pipe + mjpeg on stdout: one JPEG after
another, which the demuxer splits apart. Stream-mode input is forced to
raw H.264 (a headerless stream gives ffmpeg nothing to sniff); container
input lets ffmpeg detect the format.
"""

import logging
import math
from typing import Optional

from ...core.extraction.cancellation import CancellationToken
from ...core.extraction.errors import DecodeFailedError, ProbeFailedError
from ...core.extraction.models import MAX_QUALITY, MIN_QUALITY, ProcessorConfig
from .runner import PopenRunner, SubprocessRunner

logger = logging.getLogger(__name__)

# mjpeg qscale range; lower is better
MIN_QSCALE = 2
MAX_QSCALE = 31

PIPE_INPUT = "pipe:0"
STDOUT_OUTPUT = "-"


def quality_to_qscale(quality: int) -> int:
    """
    Map 1-100 quality (higher is better) onto ffmpeg's 2-31 qscale.

    Linear and inverted: quality 1 -> 31, quality 100 -> 2.
    """
    span = MAX_QUALITY - MIN_QUALITY
    qscale = round(MAX_QSCALE - (quality - MIN_QUALITY) / span * (MAX_QSCALE - MIN_QSCALE))
    return max(MIN_QSCALE, min(MAX_QSCALE, qscale))


def build_filter_chain(config: ProcessorConfig) -> str:
    """Sample at the frame rate, then scale-to-fit with letterbox padding."""
    w, h = config.target_width, config.target_height
    return (
        f"fps={config.frame_rate},"
        f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2"
    )


def _output_args(config: ProcessorConfig) -> list[str]:
    return [
        "-f", "image2pipe",
        "-vcodec", "mjpeg",
        "-q:v", str(quality_to_qscale(config.quality)),
    ]


def build_stream_decode_args(
    ffmpeg_path: str,
    input_path: str,
    config: ProcessorConfig,
) -> list[str]:
    """Command line for decoding a raw H.264 file into piped JPEGs."""
    args = [ffmpeg_path]
    if config.hardware_accel:
        args += ["-hwaccel", "auto"]
    args += [
        "-f", "h264",  # raw Annex B input
        "-i", input_path,
        "-vf", build_filter_chain(config),
    ]
    args += _output_args(config)
    args.append(STDOUT_OUTPUT)
    return args


def build_container_decode_args(
    ffmpeg_path: str,
    source: str,
    config: ProcessorConfig,
) -> list[str]:
    """
    Command line for decoding a container (mp4, mkv, ...) into piped JPEGs.

    `source` is a file path or PIPE_INPUT.
    """
    args = [ffmpeg_path]
    if config.hardware_accel:
        # videotoolbox on macOS, vaapi on Linux, dxva2 on Windows
        args += ["-hwaccel", "auto"]
    args += [
        "-i", source,
        "-vf", build_filter_chain(config),
    ]
    args += _output_args(config)
    args += ["-threads", str(config.max_workers)]
    args.append(STDOUT_OUTPUT)
    return args


def build_duration_probe_args(ffprobe_path: str, video_path: str) -> list[str]:
    return [
        ffprobe_path,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        video_path,
    ]


def parse_duration(output: str) -> float:
    """Parse ffprobe's bare duration output (e.g. "12.345000")."""
    text = output.strip()
    try:
        duration = float(text)
    except ValueError as e:
        raise ProbeFailedError(f"ffprobe returned a non-numeric duration: {text!r}") from e

    if not math.isfinite(duration):
        raise ProbeFailedError(f"ffprobe returned a non-finite duration: {text!r}")
    return duration


class FFmpegDecoder:
    """
    Runs ffmpeg/ffprobe and checks their results.

    Holds no per-call state, so one instance can serve many processors
    and threads at once.
    """

    def __init__(
        self,
        runner: Optional[SubprocessRunner] = None,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
    ) -> None:
        self._runner = runner or PopenRunner()
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path

    @property
    def runner(self) -> SubprocessRunner:
        return self._runner

    def decode_h264_file(
        self,
        h264_path: str,
        config: ProcessorConfig,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bytes:
        """Decode a raw H.264 file; returns concatenated JPEG bytes."""
        args = build_stream_decode_args(self._ffmpeg, h264_path, config)
        return self._decode(args, None, cancel_token)

    def decode_container(
        self,
        source: str,
        config: ProcessorConfig,
        cancel_token: Optional[CancellationToken] = None,
        input_data: Optional[bytes] = None,
    ) -> bytes:
        """
        Decode a container file or piped container bytes.

        Pass source=PIPE_INPUT together with input_data to feed the video
        over stdin instead of from disk.
        """
        args = build_container_decode_args(self._ffmpeg, source, config)
        return self._decode(args, input_data, cancel_token)

    def probe_duration(
        self,
        video_path: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> float:
        """Container duration in seconds."""
        args = build_duration_probe_args(self._ffprobe, video_path)
        result = self._runner.run(args, cancel_token=cancel_token)

        if result.returncode != 0:
            raise ProbeFailedError(f"ffprobe failed: {result.stderr_text.strip()}")

        return parse_duration(result.stdout.decode("utf-8", errors="replace"))

    def _decode(
        self,
        args: list[str],
        input_data: Optional[bytes],
        cancel_token: Optional[CancellationToken],
    ) -> bytes:
        logger.debug("Running ffmpeg", extra={"args": args})

        result = self._runner.run(args, input_data=input_data, cancel_token=cancel_token)

        if result.returncode != 0:
            logger.warning(
                f"ffmpeg exited with status {result.returncode}",
                extra={"stderr": result.stderr_text[-2000:]},
            )
            raise DecodeFailedError(result.returncode, result.stderr_text)

        return result.stdout
