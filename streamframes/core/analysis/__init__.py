"""
Vision-model analysis of extracted frames.
"""

from .analyzer import (
    AnalysisError,
    AnalysisOptions,
    AnalysisResult,
    FrameConsumer,
    VideoAnalyzer,
)

__all__ = [
    "AnalysisError",
    "AnalysisOptions",
    "AnalysisResult",
    "FrameConsumer",
    "VideoAnalyzer",
]
