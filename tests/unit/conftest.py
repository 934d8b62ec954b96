"""
Shared fixtures for the unit tests.

Nothing here runs ffmpeg. FakeRunner stands in for the subprocess layer
and answers with canned JPEG output, so the processors can be exercised
end to end without any binaries installed.
"""

from typing import Callable, Optional

import pytest

from streamframes.core.extraction.cancellation import CancellationToken
from streamframes.core.extraction.nal import START_CODE, decode_parameter_set
from streamframes.core.extraction.models import DEFAULT_PPS, DEFAULT_SPS
from streamframes.infrastructure.video.ffmpeg import FFmpegDecoder
from streamframes.infrastructure.video.runner import ProcessResult


def make_jpeg(tag: int, payload_size: int = 16) -> bytes:
    """
    A fake JPEG: SOI, an APP0-ish marker, filler, EOI.

    The filler byte never equals 0xFF so no stray markers appear inside.
    """
    filler = bytes([tag % 200]) * payload_size
    return b"\xff\xd8\xff\xe0" + filler + b"\xff\xd9"


def repaired_prefix() -> bytes:
    """What the default SPS/PPS injection puts in front of a segment."""
    return (
        START_CODE + decode_parameter_set(DEFAULT_SPS)
        + START_CODE + decode_parameter_set(DEFAULT_PPS)
    )


def input_path_from_args(args: list[str]) -> str:
    return args[args.index("-i") + 1]


Handler = Callable[[list[str], Optional[bytes]], ProcessResult]


class FakeRunner:
    """
    SubprocessRunner that records calls and delegates to a handler.

    For file input the handler can open the path while the call is in
    flight; the processor deletes it afterwards.
    """

    def __init__(self, handler: Handler) -> None:
        self._handler = handler
        self.calls: list[list[str]] = []
        self.inputs_seen: list[bytes] = []

    def run(
        self,
        args: list[str],
        input_data: Optional[bytes] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessResult:
        self.calls.append(list(args))
        if "-i" in args:
            source = input_path_from_args(args)
            if source == "pipe:0":
                self.inputs_seen.append(input_data or b"")
            else:
                with open(source, "rb") as f:
                    self.inputs_seen.append(f.read())
        return self._handler(args, input_data)


def ok(stdout: bytes) -> ProcessResult:
    return ProcessResult(returncode=0, stdout=stdout, stderr=b"")


def failed(stderr: bytes = b"Invalid data found when processing input") -> ProcessResult:
    return ProcessResult(returncode=1, stdout=b"", stderr=stderr)


@pytest.fixture
def three_frames() -> list[bytes]:
    return [make_jpeg(i) for i in range(3)]


@pytest.fixture
def jpeg_runner(three_frames) -> FakeRunner:
    """Runner whose ffmpeg always emits three frames and ffprobe 10s."""

    def handler(args, input_data):
        if "format=duration" in args:
            return ok(b"10.000000\n")
        return ok(b"".join(three_frames))

    return FakeRunner(handler)


@pytest.fixture
def jpeg_decoder(jpeg_runner) -> FFmpegDecoder:
    return FFmpegDecoder(runner=jpeg_runner)
