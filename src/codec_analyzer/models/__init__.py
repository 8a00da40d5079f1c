"""
Data Models
===========

Frame inputs and statistics records for the codec analyzer.

Models:
    Frames:
        - Resolution: Width/height pair
        - VideoFrame: I420 picture with RTP timestamp
        - EncodedImage: Encoded unit metadata

    Statistics:
        - FrameStatistics: Per (timestamp, layer) record
        - StreamStatistics: Aggregate summary
        - VideoCodecStats: Snapshot returned by the analyzer
"""

from codec_analyzer.models.frame import EncodedImage, Resolution, VideoFrame, scale_frame
from codec_analyzer.models.stats import (
    FrameStatistics,
    StreamStatistics,
    VideoCodecStats,
    aggregate_statistics,
)

__all__ = [
    # Frames
    "Resolution",
    "VideoFrame",
    "EncodedImage",
    "scale_frame",
    # Statistics
    "FrameStatistics",
    "StreamStatistics",
    "VideoCodecStats",
    "aggregate_statistics",
]
