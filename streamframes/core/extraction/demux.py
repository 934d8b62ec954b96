"""
Splitting concatenated JPEG output into individual frames.

ffmpeg's image2pipe/mjpeg output is just JPEG after JPEG with no framing,
so we find frames by their markers: each one starts at SOI (FFD8) and ends
at the first EOI (FFD9) after it. Trailing data without a complete pair
is dropped.

Two splitters share the same boundary scan:
- split_jpeg_frames copies each frame as it is found
- split_jpeg_frames_concurrent scans first, then copies on a thread pool

Both return identical results. The concurrent one only pays off for large
buffers.
"""

import logging
import queue
import threading
from typing import Optional, Union

from .errors import NoFramesFoundError
from .models import FramePosition

logger = logging.getLogger(__name__)

SOI_MARKER = b"\xff\xd8"
EOI_MARKER = b"\xff\xd9"

BytesLike = Union[bytes, bytearray, memoryview]


def _as_bytes(data: BytesLike) -> Union[bytes, bytearray]:
    if isinstance(data, memoryview):
        return data.tobytes()
    return data


def find_frame_positions(data: BytesLike) -> list[FramePosition]:
    """
    Locate every complete SOI..EOI range, in order.

    The scan is strictly left to right; the index assigned here is the
    frame's slot in the final result.
    """
    data = _as_bytes(data)
    positions: list[FramePosition] = []
    cursor = 0

    while cursor < len(data):
        start = data.find(SOI_MARKER, cursor)
        if start == -1:
            break

        eoi = data.find(EOI_MARKER, start + len(SOI_MARKER))
        if eoi == -1:
            break

        end = eoi + len(EOI_MARKER)
        positions.append(FramePosition(start=start, end=end, index=len(positions)))
        cursor = end

    return positions


def split_jpeg_frames(data: BytesLike) -> list[bytes]:
    """Split concatenated JPEG data into frames, copying sequentially."""
    data = _as_bytes(data)
    frames = [bytes(data[pos.start:pos.end]) for pos in find_frame_positions(data)]

    if not frames:
        raise NoFramesFoundError("no valid JPEG frames found")

    return frames


def split_jpeg_frames_concurrent(
    data: BytesLike,
    max_workers: int,
    buffer_capacity: int = 100,
) -> list[bytes]:
    """
    Split concatenated JPEG data, copying frames on a worker pool.

    Positions are found single-threaded first. Workers then pull positions
    off a bounded job queue and write each copy into its pre-allocated
    slot, so output order never depends on which worker finishes first.
    All workers are joined before returning.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be positive")

    data = _as_bytes(data)
    positions = find_frame_positions(data)
    if not positions:
        raise NoFramesFoundError("no valid JPEG frames found")

    view = memoryview(data)
    frames: list[Optional[bytes]] = [None] * len(positions)
    jobs: "queue.Queue[Optional[FramePosition]]" = queue.Queue(maxsize=max(buffer_capacity, 1))

    def worker() -> None:
        while True:
            pos = jobs.get()
            if pos is None:
                return
            frames[pos.index] = view[pos.start:pos.end].tobytes()

    pool_size = min(max_workers, len(positions))
    workers = [
        threading.Thread(target=worker, name=f"jpeg-copy-{i}", daemon=True)
        for i in range(pool_size)
    ]
    for w in workers:
        w.start()

    try:
        for pos in positions:
            jobs.put(pos)
    finally:
        # one stop marker per worker
        for _ in workers:
            jobs.put(None)
        for w in workers:
            w.join()

    logger.debug(
        "Split JPEG frames concurrently",
        extra={"frame_count": len(frames), "workers": pool_size, "bytes": len(data)},
    )

    return frames  # type: ignore[return-value]
