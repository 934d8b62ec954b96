"""
Anthropic Claude API client wrapper.

Implements the FrameConsumer protocol from core.analysis.
"""

from .client import AnthropicConfig, AnthropicFrameConsumer, RateLimitExceeded, create_anthropic_consumer

__all__ = ["AnthropicConfig", "AnthropicFrameConsumer", "RateLimitExceeded", "create_anthropic_consumer"]
