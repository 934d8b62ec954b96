"""
Continuous frame extraction from a live H.264 source.

A StreamFrameExtractor reads the source in fixed-size chunks on one
background thread, runs every chunk through StreamProcessor, and
publishes the results on two bounded queues: one for frames, one for
errors. A bad chunk is reported and skipped; it does not end the session.

Flow control comes from the queues. When nobody drains the frame queue
it fills up, the worker blocks on it, and stops reading the source.

Chunks are decoded independently. A picture split across a chunk
boundary is not stitched back together; the chunk that holds it may
simply yield no frames.
"""

import asyncio
import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, BinaryIO, Iterator, Optional

from ...config.settings import Settings, get_settings
from ...core.extraction.cancellation import CancellationToken
from ...core.extraction.errors import ExtractionCancelledError, FrameExtractionError
from .processor import StreamProcessor, create_stream_processor

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_FRAME_QUEUE_SIZE = 100
DEFAULT_ERROR_QUEUE_SIZE = 10

# how often a blocked publish re-checks the token
PUBLISH_POLL_SECONDS = 0.1

# how often aiter_frames checks an empty queue
AITER_POLL_SECONDS = 0.02


class QueueClosed(Exception):
    """Raised by ClosableQueue once it is closed and drained."""
    pass


class ClosableQueue(queue.Queue):
    """
    A bounded queue that can be closed.

    After close(), put() raises QueueClosed and get() keeps returning
    queued items until the queue is empty, then raises QueueClosed.
    Closing never blocks, even when the queue is full.
    """

    def __init__(self, maxsize: int = 0) -> None:
        super().__init__(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        with self.mutex:
            return self._closed

    def close(self) -> None:
        with self.mutex:
            self._closed = True
            self.not_empty.notify_all()
            self.not_full.notify_all()

    def put(self, item, block=True, timeout=None):
        with self.not_full:
            if self._closed:
                raise QueueClosed()
            if self.maxsize > 0:
                if not block:
                    if self._qsize() >= self.maxsize:
                        raise queue.Full
                elif timeout is None:
                    while self._qsize() >= self.maxsize and not self._closed:
                        self.not_full.wait()
                else:
                    if timeout < 0:
                        raise ValueError("'timeout' must be a non-negative number")
                    if self._qsize() >= self.maxsize and not self._closed:
                        self.not_full.wait(timeout)
                    if self._qsize() >= self.maxsize and not self._closed:
                        raise queue.Full
                if self._closed:
                    raise QueueClosed()
            self._put(item)
            self.unfinished_tasks += 1
            self.not_empty.notify()

    def get(self, block=True, timeout=None):
        with self.not_empty:
            if not block:
                if not self._qsize():
                    if self._closed:
                        raise QueueClosed()
                    raise queue.Empty
            elif timeout is None:
                while not self._qsize() and not self._closed:
                    self.not_empty.wait()
            else:
                if timeout < 0:
                    raise ValueError("'timeout' must be a non-negative number")
                if not self._qsize() and not self._closed:
                    self.not_empty.wait(timeout)
            if not self._qsize():
                if self._closed:
                    raise QueueClosed()
                raise queue.Empty
            item = self._get()
            self.not_full.notify()
            return item

    def drain(self) -> Iterator:
        """Yield items until the queue is closed and empty."""
        while True:
            try:
                yield self.get()
            except QueueClosed:
                return


class ExtractionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ChunkError:
    """A failure tied to one chunk of the source (-1 for read errors)."""
    chunk_index: int
    error: Exception

    def __str__(self) -> str:
        return f"chunk {self.chunk_index}: {self.error}"


class StreamFrameExtractor:
    """
    One streaming extraction session.

    Usage:
        extractor = StreamFrameExtractor(StreamProcessor())
        extractor.start(source)
        for frame in extractor.iter_frames():
            ...
        extractor.stop()

    stop() must be called (or the extractor used as a context manager)
    to guarantee the worker has exited.
    """

    def __init__(
        self,
        processor: StreamProcessor,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        frame_queue_size: int = DEFAULT_FRAME_QUEUE_SIZE,
        error_queue_size: int = DEFAULT_ERROR_QUEUE_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")

        self._processor = processor
        self._chunk_size = chunk_size
        self._frames = ClosableQueue(maxsize=frame_queue_size)
        self._errors = ClosableQueue(maxsize=error_queue_size)
        self._token = CancellationToken()
        self._worker: Optional[threading.Thread] = None
        self._state = ExtractionState.IDLE
        self._state_lock = threading.Lock()

    # ────────── lifecycle ────────── #
    @property
    def state(self) -> ExtractionState:
        with self._state_lock:
            return self._state

    @property
    def cancel_token(self) -> CancellationToken:
        return self._token

    def start(self, source: BinaryIO, timeout: Optional[float] = None) -> None:
        """
        Begin extracting from `source` on a background thread.

        Args:
            source: Anything with a binary read(n) method
            timeout: Optional deadline in seconds; the session cancels
                itself when it passes
        """
        with self._state_lock:
            if self._state is not ExtractionState.IDLE:
                raise RuntimeError(f"cannot start extractor in state {self._state.value}")
            self._state = ExtractionState.RUNNING

        if timeout is not None:
            self._token.set_timeout(timeout)

        self._worker = threading.Thread(
            target=self._run, args=(source,), name="StreamFrameExtractor", daemon=True
        )
        self._worker.start()
        logger.info("Stream extraction started", extra={"chunk_size": self._chunk_size})

    def stop(self) -> None:
        """Cancel the session and wait for the worker to exit."""
        with self._state_lock:
            if self._state is ExtractionState.RUNNING:
                self._state = ExtractionState.STOPPING
            elif self._state is ExtractionState.IDLE:
                # never started; close the queues so consumers don't hang
                self._state = ExtractionState.STOPPED
                self._frames.close()
                self._errors.close()
                return

        self._token.cancel()
        if self._worker is not None:
            self._worker.join()

    def __enter__(self) -> "StreamFrameExtractor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ────────── stream access ────────── #
    @property
    def frames(self) -> ClosableQueue:
        return self._frames

    @property
    def errors(self) -> ClosableQueue:
        return self._errors

    def iter_frames(self) -> Iterator[bytes]:
        return self._frames.drain()

    def iter_errors(self) -> Iterator[ChunkError]:
        return self._errors.drain()

    async def aiter_frames(self) -> AsyncIterator[bytes]:
        """
        Drain frames from an event loop without blocking it.

        Frames are only taken off the queue on the loop thread, so a
        consumer cancelled while waiting leaves the next frame queued.
        """
        while True:
            try:
                frame = self._frames.get_nowait()
            except queue.Empty:
                await asyncio.sleep(AITER_POLL_SECONDS)
                continue
            except QueueClosed:
                return
            yield frame

    # ────────── worker ────────── #
    def _run(self, source: BinaryIO) -> None:
        chunk_index = 0
        frame_count = 0
        try:
            while not self._token.cancelled:
                try:
                    chunk = source.read(self._chunk_size)
                except OSError as e:
                    logger.error(f"Stream read failed: {e}")
                    self._publish(self._errors, ChunkError(-1, e))
                    return

                if not chunk:
                    logger.info("Stream source exhausted", extra={"chunks": chunk_index})
                    return

                try:
                    frames = self._processor.process_h264_stream(chunk, self._token)
                except ExtractionCancelledError:
                    return
                except FrameExtractionError as e:
                    logger.debug(f"Chunk {chunk_index} failed: {e}")
                    if not self._publish(self._errors, ChunkError(chunk_index, e)):
                        return
                else:
                    for frame in frames:
                        if not self._publish(self._frames, frame):
                            return
                    frame_count += len(frames)

                chunk_index += 1
        except Exception:
            logger.exception("Stream extraction worker failed")
        finally:
            self._frames.close()
            self._errors.close()
            with self._state_lock:
                self._state = ExtractionState.STOPPED
            logger.info(
                "Stream extraction stopped",
                extra={"chunks": chunk_index, "frames": frame_count},
            )

    def _publish(self, target: ClosableQueue, item) -> bool:
        """Blocking put that gives up when the session is cancelled."""
        while not self._token.cancelled:
            try:
                target.put(item, timeout=PUBLISH_POLL_SECONDS)
                return True
            except queue.Full:
                continue
            except QueueClosed:
                return False
        return False


def create_stream_extractor(
    processor: Optional[StreamProcessor] = None,
    settings: Optional[Settings] = None,
) -> StreamFrameExtractor:
    """Build an extractor sized from settings (environment by default)."""
    settings = settings or get_settings()
    return StreamFrameExtractor(
        processor or create_stream_processor(settings),
        chunk_size=settings.stream_chunk_size,
        frame_queue_size=settings.frame_queue_size,
        error_queue_size=settings.error_queue_size,
    )
