"""
Errors raised by the frame-extraction pipeline.

Every failure derives from FrameExtractionError so callers can catch the
whole family at once, or pick out the stage they care about.
"""


class FrameExtractionError(Exception):
    """Raised when frame extraction fails."""
    pass


class InvalidParameterSetError(FrameExtractionError):
    """The configured SPS or PPS could not be decoded."""
    pass


class DecodeFailedError(FrameExtractionError):
    """
    The external decoder exited with a non-zero status.

    Carries the exit code and whatever the process wrote to stderr,
    which is usually the only useful diagnostic ffmpeg gives.
    """

    def __init__(self, returncode: int, stderr: str) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"ffmpeg exited with status {returncode}, stderr: {stderr.strip()}")


class ExtractionCancelledError(FrameExtractionError):
    """The cancellation token fired while the decoder was running."""
    pass


class NoFramesFoundError(FrameExtractionError):
    """Demuxing found zero complete JPEG frames."""
    pass


class ExtractionIOError(FrameExtractionError):
    """A temp file, input file, or source read failed."""
    pass


class ProbeFailedError(FrameExtractionError):
    """The duration probe did not produce a number."""
    pass
