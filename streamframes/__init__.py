"""
streamframes - JPEG frame extraction from H.264 streams and video files.

This package contains:
- core: Framework-agnostic extraction logic (NAL repair, JPEG demuxing)
- infrastructure: ffmpeg processes, streaming sessions, model clients
- config: Settings and logging
"""

__version__ = "0.1.0"
