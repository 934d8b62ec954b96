"""
Subprocess execution behind a narrow interface.

The processors never call subprocess directly. They go through a
SubprocessRunner, which tests replace with a fake so no real ffmpeg
binary is needed.
"""

import logging
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Optional, Protocol

from ...core.extraction.cancellation import CancellationToken
from ...core.extraction.errors import ExtractionCancelledError, ExtractionIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and captured output of one subprocess run."""
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


class SubprocessRunner(Protocol):
    """Runs a command to completion, optionally feeding stdin."""

    def run(
        self,
        args: list[str],
        input_data: Optional[bytes] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessResult:
        ...


class PopenRunner:
    """
    SubprocessRunner backed by subprocess.Popen.

    communicate() is called with a short timeout in a loop so the
    cancellation token gets checked while the process runs. Retrying
    communicate() after TimeoutExpired does not lose output.

    Input is spooled to a temp file and handed to the child as stdin,
    so communicate() never has to feed it and the child can read it at
    its own pace.
    """

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._poll_interval = poll_interval

    def run(
        self,
        args: list[str],
        input_data: Optional[bytes] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessResult:
        if cancel_token is not None and cancel_token.cancelled:
            raise ExtractionCancelledError(f"cancelled before starting {args[0]}")

        if input_data is None:
            return self._run(args, subprocess.DEVNULL, cancel_token)

        try:
            spool = tempfile.TemporaryFile(prefix="stdin-")
        except OSError as e:
            raise ExtractionIOError(f"failed to spool input for {args[0]}: {e}") from e

        with spool:
            try:
                spool.write(input_data)
                spool.flush()
                spool.seek(0)
            except OSError as e:
                raise ExtractionIOError(f"failed to spool input for {args[0]}: {e}") from e
            return self._run(args, spool, cancel_token)

    def _run(self, args, stdin, cancel_token: Optional[CancellationToken]) -> ProcessResult:
        try:
            proc = subprocess.Popen(
                args,
                stdin=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            # FileNotFoundError when the binary isn't installed
            raise ExtractionIOError(f"failed to start {args[0]}: {e}") from e

        timeout = self._poll_interval if cancel_token is not None else None
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=timeout)
                break
            except subprocess.TimeoutExpired:
                if cancel_token.cancelled:
                    proc.kill()
                    proc.communicate()
                    logger.info("Subprocess cancelled", extra={"command": args[0], "pid": proc.pid})
                    raise ExtractionCancelledError(f"{args[0]} was cancelled")

        return ProcessResult(returncode=proc.returncode, stdout=stdout, stderr=stderr)

