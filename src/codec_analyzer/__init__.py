"""
Codec Analyzer
==============

Frame statistics analyzer for video codec test harnesses.

This package observes the encode and decode stages of a video pipeline
under test, correlates events that belong to the same source frame, and
collects per-frame quality and timing statistics, including PSNR against
reference frames.

Components:
    - analyzer: Event intake and statistics ledger (VideoCodecAnalyzer)
    - executor: Single-consumer task queue that serializes all work
    - quality: PSNR metrics and reference video sources
    - models: Frame inputs and statistics records
    - config: YAML/environment configuration and logging setup

Example:
    from codec_analyzer import VideoCodecAnalyzer, VideoFrame, EncodedImage

    with VideoCodecAnalyzer(reference_source=source) as analyzer:
        analyzer.start_encode(frame)
        analyzer.finish_encode(EncodedImage(timestamp_rtp=3000, size_bytes=1200))
        analyzer.start_decode(EncodedImage(timestamp_rtp=3000))
        analyzer.finish_decode(decoded, spatial_layer_index=0)
        stats = analyzer.get_stats()
"""

__version__ = "0.1.0"

from codec_analyzer.analyzer import VideoCodecAnalyzer
from codec_analyzer.errors import (
    AnalyzerError,
    ExecutorClosedError,
    FrameFormatError,
    ReferenceUnavailableError,
)
from codec_analyzer.executor import SerializedExecutor
from codec_analyzer.models import (
    EncodedImage,
    FrameStatistics,
    Resolution,
    StreamStatistics,
    VideoCodecStats,
    VideoFrame,
)
from codec_analyzer.quality import (
    InMemoryReferenceSource,
    PlanePsnr,
    ReferenceVideoSource,
    YuvFileReferenceSource,
)

__all__ = [
    "__version__",
    # Analyzer
    "VideoCodecAnalyzer",
    "SerializedExecutor",
    # Models
    "Resolution",
    "VideoFrame",
    "EncodedImage",
    "FrameStatistics",
    "StreamStatistics",
    "VideoCodecStats",
    # Quality
    "PlanePsnr",
    "ReferenceVideoSource",
    "InMemoryReferenceSource",
    "YuvFileReferenceSource",
    # Errors
    "AnalyzerError",
    "FrameFormatError",
    "ReferenceUnavailableError",
    "ExecutorClosedError",
]
