"""
Anthropic Claude API client wrapper.

This module provides a thin wrapper around the Anthropic SDK that:
1. Implements our FrameConsumer protocol
2. Handles API-specific details (base64 encoding, message format)
3. Provides consistent error handling

The wrapper is intentionally thin: frames in, text out.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Any, Optional

import anthropic
from anthropic import APIError, RateLimitError

from ...config.settings import Settings, get_settings
from ...core.analysis.analyzer import (
    AnalysisError,
    AnalysisOptions,
    AnalysisResult,
    FrameConsumer,
)


logger = logging.getLogger(__name__)


class RateLimitExceeded(AnalysisError):
    """Raised when we hit rate limits."""
    pass


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic client."""
    api_key: str
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    temperature: float = 0.7

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key is required")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if not 0 <= self.temperature <= 1:
            raise ValueError("temperature must be between 0 and 1")


class AnthropicFrameConsumer(FrameConsumer):
    """
    FrameConsumer backed by Claude.

    Knows the Messages API format but nothing about video. Frames go in
    first, in order, followed by the prompt.
    """

    def __init__(
        self,
        config: AnthropicConfig,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ) -> None:
        self._config = config
        self._client = client or anthropic.AsyncAnthropic(api_key=config.api_key)

    async def analyze_frames(
        self,
        prompt: str,
        frames: list[bytes],
        options: Optional[AnalysisOptions] = None,
    ) -> AnalysisResult:
        if not frames:
            raise ValueError("At least one frame is required")

        options = options or AnalysisOptions()
        request = self._build_request(prompt, frames, options)

        try:
            if options.stream:
                async with self._client.messages.stream(**request) as stream:
                    response = await stream.get_final_message()
            else:
                response = await self._client.messages.create(**request)

        except RateLimitError as e:
            logger.warning("Rate limit hit", extra={"error": str(e)})
            raise RateLimitExceeded("API rate limit exceeded. Please try again later.") from e
        except APIError as e:
            logger.error("API error", extra={"error": str(e)})
            raise AnalysisError(f"API error: {e.message}") from e

        return AnalysisResult(
            content=self._extract_text_response(response),
            model=getattr(response, "model", self._config.model),
            stop_reason=getattr(response, "stop_reason", None),
            input_tokens=getattr(response.usage, "input_tokens", 0),
            output_tokens=getattr(response.usage, "output_tokens", 0),
            frame_count=len(frames),
        )

    def _build_request(
        self,
        prompt: str,
        frames: list[bytes],
        options: AnalysisOptions,
    ) -> dict[str, Any]:
        temperature = options.temperature
        if temperature is None:
            temperature = self._config.temperature

        request: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": options.max_tokens or self._config.max_tokens,
            "temperature": temperature,
            "messages": [
                {"role": "user", "content": self._build_image_content(frames, prompt)}
            ],
        }
        if options.top_p is not None:
            request["top_p"] = options.top_p
        return request

    def _build_image_content(
        self,
        frames: list[bytes],
        text_prompt: str,
    ) -> list[dict]:
        """
        Build the content array for a multi-image request.

        Claude expects:
        [
            {"type": "image", "source": {"type": "base64", "media_type": "image/jpeg", "data": "..."}},
            {"type": "image", "source": {...}},
            {"type": "text", "text": "..."}
        ]
        """
        content = []

        for frame in frames:
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": "image/jpeg",  # ffmpeg mjpeg output
                    "data": base64.b64encode(frame).decode("utf-8"),
                }
            })

        content.append({
            "type": "text",
            "text": text_prompt,
        })

        return content

    def _extract_text_response(self, response) -> str:
        """Extract text content from API response."""
        if not response.content:
            return ""

        text_blocks = [
            block.text
            for block in response.content
            if hasattr(block, 'text')
        ]

        return "\n".join(text_blocks)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_anthropic_consumer(settings: Optional[Settings] = None) -> AnthropicFrameConsumer:
    """
    Create a consumer configured from settings.

    Raises ValueError if no API key is configured.
    """
    settings = settings or get_settings()

    if not settings.anthropic_api_key:
        raise ValueError(
            "API key must be set in the ANTHROPIC_API_KEY environment variable"
        )

    config = AnthropicConfig(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        temperature=settings.anthropic_temperature,
    )
    return AnthropicFrameConsumer(config)
