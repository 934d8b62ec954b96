"""
Infrastructure layer - external process and service integrations.

Each subdirectory wraps an external dependency:
- video: ffmpeg/ffprobe subprocesses and streaming sessions
- anthropic: Claude API client
"""
