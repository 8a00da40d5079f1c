"""
Test Configuration
==================

Pytest fixtures and test configuration for the codec analyzer.
"""

import itertools

import pytest


K_TIMESTAMP = 3000
K_SPATIAL_IDX = 2


class StubReferenceSource:
    """Reference source that returns a fixed frame and records lookups."""

    def __init__(self, frame=None, error=None):
        self.frame = frame
        self.error = error
        self.calls = []

    def get_frame(self, timestamp_rtp, resolution):
        self.calls.append((timestamp_rtp, resolution))
        if self.error is not None:
            raise self.error
        return self.frame


@pytest.fixture
def make_frame():
    """Factory for small constant-valued I420 frames."""
    from codec_analyzer.models.frame import VideoFrame

    def _make(timestamp_rtp=K_TIMESTAMP, y=0, u=0, v=0, width=2, height=2):
        return VideoFrame.filled(width, height, timestamp_rtp, y=y, u=u, v=v)

    return _make


@pytest.fixture
def make_encoded():
    """Factory for EncodedImage metadata."""
    from codec_analyzer.models.frame import EncodedImage

    def _make(timestamp_rtp=K_TIMESTAMP, spatial_index=0, **kwargs):
        return EncodedImage(timestamp_rtp=timestamp_rtp, spatial_index=spatial_index, **kwargs)

    return _make


@pytest.fixture
def fake_clock():
    """Nanosecond clock that advances 1 ms per call."""
    counter = itertools.count(start=0, step=1_000_000)
    return lambda: next(counter)


@pytest.fixture
def analyzer():
    """Analyzer without a reference source."""
    from codec_analyzer.analyzer import VideoCodecAnalyzer

    instance = VideoCodecAnalyzer()
    yield instance
    instance.close()


@pytest.fixture
def executor():
    """Standalone serialized executor."""
    from codec_analyzer.executor import SerializedExecutor

    instance = SerializedExecutor(name="test-executor")
    yield instance
    instance.close()
