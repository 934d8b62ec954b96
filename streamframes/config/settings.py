"""
Library configuration using Pydantic settings.

Values come from environment variables or a .env file; every field has a
default, and invalid values fail at load time.

The extraction fields feed ProcessorConfig; the anthropic_* fields are
only needed when frames are sent to Claude.
"""

import os
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.extraction.models import DEFAULT_PPS, DEFAULT_SPS, ProcessorConfig


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    All settings can be overridden via environment variables
    (case-insensitive, e.g. FRAME_RATE=4) or a .env file.
    """

    # External binaries
    ffmpeg_path: str = Field(
        default="ffmpeg",
        description="ffmpeg binary. Defaults to whatever is on PATH."
    )
    ffprobe_path: str = Field(
        default="ffprobe",
        description="ffprobe binary, used to probe container duration."
    )

    # Extraction
    frame_rate: int = Field(
        default=2,
        gt=0,
        description="Frames per second to sample. 2 fps is plenty for most vision prompts."
    )
    target_width: int = Field(
        default=1120,
        gt=0,
        description="Output width. Rounded up to a multiple of 28."
    )
    target_height: int = Field(
        default=1120,
        gt=0,
        description="Output height. Rounded up to a multiple of 28."
    )
    jpeg_quality: int = Field(
        default=90,
        description="JPEG quality 1-100, higher is better. Values outside the range are clamped."
    )
    h264_sps: str = Field(
        default=DEFAULT_SPS,
        description="Base64 SPS injected in front of every raw H.264 segment."
    )
    h264_pps: str = Field(
        default=DEFAULT_PPS,
        description="Base64 PPS injected in front of every raw H.264 segment."
    )
    max_workers: int = Field(
        default_factory=lambda: os.cpu_count() or 1,
        gt=0,
        description="Worker threads for splitting large JPEG outputs; also passed to ffmpeg -threads."
    )
    buffer_capacity: int = Field(
        default=100,
        gt=0,
        description="Capacity of the job queue feeding the frame-copy workers."
    )
    hardware_accel: bool = Field(
        default=False,
        description="Pass -hwaccel auto to ffmpeg."
    )

    # Streaming
    stream_chunk_size: int = Field(
        default=64 * 1024,
        gt=0,
        description="Bytes read from a live source per decode."
    )
    frame_queue_size: int = Field(
        default=100,
        gt=0,
        description="Frames buffered before the stream worker blocks."
    )
    error_queue_size: int = Field(
        default=10,
        gt=0,
        description="Chunk errors buffered before the stream worker blocks."
    )

    # Anthropic Configuration
    anthropic_api_key: str = Field(
        default="",
        description="Claude API key. Only required when frames are analyzed."
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model to send frames to."
    )
    anthropic_max_tokens: int = Field(
        default=4096,
        description="Max tokens for Claude responses."
    )
    anthropic_temperature: float = Field(
        default=0.7,
        description="Default sampling temperature for analysis requests."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def processor_config(self) -> ProcessorConfig:
        """Build the (normalized) extraction config these settings describe."""
        return ProcessorConfig(
            frame_rate=self.frame_rate,
            target_width=self.target_width,
            target_height=self.target_height,
            quality=self.jpeg_quality,
            sps=self.h264_sps,
            pps=self.h264_pps,
            max_workers=self.max_workers,
            buffer_capacity=self.buffer_capacity,
            hardware_accel=self.hardware_accel,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Return the names of required settings that are missing.

        Extraction works with defaults alone; only analysis needs a key.
        """
        missing = []
        if not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")
        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Settings for this process, loaded once.

    Call get_settings.cache_clear() to reload.
    """
    return Settings()
