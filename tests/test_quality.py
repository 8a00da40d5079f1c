"""
Quality Tests
=============

PSNR metrics, the quality evaluator and the reference sources.
"""

import numpy as np
import pytest

from codec_analyzer.errors import FrameFormatError, ReferenceUnavailableError
from codec_analyzer.models.frame import Resolution, VideoFrame
from codec_analyzer.quality import (
    DEFAULT_PSNR_CEILING_DB,
    InMemoryReferenceSource,
    QualityEvaluator,
    YuvFileReferenceSource,
    compute_frame_psnr,
    compute_mse,
    compute_plane_psnr,
    mse_to_psnr,
)

from conftest import StubReferenceSource


class TestPsnrMetrics:
    """Tests for MSE/PSNR helpers."""

    def test_mse_of_constant_offset(self):
        a = np.zeros((4, 4), dtype=np.uint8)
        b = np.full((4, 4), 3, dtype=np.uint8)
        assert compute_mse(a, b) == pytest.approx(9.0)

    def test_mse_does_not_wrap_uint8(self):
        a = np.zeros((2, 2), dtype=np.uint8)
        b = np.full((2, 2), 255, dtype=np.uint8)
        assert compute_mse(b, a) == pytest.approx(255.0 ** 2)
        assert compute_mse(a, b) == pytest.approx(255.0 ** 2)

    def test_mse_shape_mismatch_raises(self):
        with pytest.raises(FrameFormatError):
            compute_mse(np.zeros((2, 2)), np.zeros((2, 3)))

    def test_psnr_for_unit_error_8bit(self):
        # 10 * log10(255^2 / 1)
        assert mse_to_psnr(1.0) == pytest.approx(48.1308, abs=1e-3)

    def test_zero_error_returns_ceiling(self):
        assert mse_to_psnr(0.0) == DEFAULT_PSNR_CEILING_DB
        assert mse_to_psnr(0.0, ceiling_db=48.0) == 48.0

    def test_ceiling_caps_finite_scores(self):
        assert mse_to_psnr(1.0, ceiling_db=40.0) == 40.0

    def test_psnr_decreases_with_offset(self):
        ref = np.full((8, 8), 128, dtype=np.uint8)
        scores = [
            compute_plane_psnr(ref, np.full((8, 8), 128 + d, dtype=np.uint8))
            for d in (1, 2, 3)
        ]
        assert scores[0] > scores[1] > scores[2]

    def test_higher_bit_depth_raises_score(self):
        """Same sample error is smaller relative to a larger peak."""
        assert mse_to_psnr(4.0, bit_depth=10) > mse_to_psnr(4.0, bit_depth=8)
        assert mse_to_psnr(1.0, bit_depth=10) == pytest.approx(
            10 * np.log10(1023.0 ** 2), abs=1e-6
        )

    def test_frame_psnr_per_plane(self):
        ref = VideoFrame.filled(2, 2, 0, y=0, u=0, v=0)
        dec = VideoFrame.filled(2, 2, 0, y=1, u=2, v=3)

        psnr = compute_frame_psnr(ref, dec)
        assert psnr.y == pytest.approx(48.13, abs=0.01)
        assert psnr.u == pytest.approx(42.11, abs=0.01)
        assert psnr.v == pytest.approx(38.59, abs=0.01)

    def test_frame_psnr_resolution_mismatch_raises(self):
        with pytest.raises(FrameFormatError):
            compute_frame_psnr(
                VideoFrame.filled(2, 2, 0),
                VideoFrame.filled(4, 4, 0),
            )


class TestQualityEvaluator:
    """Tests for reference lookup and failure handling."""

    def test_evaluate_returns_psnr(self):
        source = StubReferenceSource(frame=VideoFrame.filled(2, 2, 10, y=10, u=10, v=10))
        evaluator = QualityEvaluator(source)

        psnr = evaluator.evaluate(VideoFrame.filled(2, 2, 10, y=11, u=10, v=10))

        assert psnr is not None
        assert psnr.y == pytest.approx(48.13, abs=0.01)
        assert psnr.u == DEFAULT_PSNR_CEILING_DB
        assert evaluator.evaluated_count == 1

    def test_lookup_error_returns_none(self):
        source = StubReferenceSource(error=RuntimeError("disk on fire"))
        evaluator = QualityEvaluator(source)

        assert evaluator.evaluate(VideoFrame.filled(2, 2, 10)) is None
        assert evaluator.skipped_count == 1

    def test_bit_depth_mismatch_returns_none(self):
        source = StubReferenceSource(frame=VideoFrame.filled(2, 2, 10, bit_depth=10))
        evaluator = QualityEvaluator(source)

        assert evaluator.evaluate(VideoFrame.filled(2, 2, 10)) is None

    def test_invalid_ceiling_rejected(self):
        with pytest.raises(ValueError):
            QualityEvaluator(StubReferenceSource(), ceiling_db=0)


class TestInMemoryReferenceSource:
    """Tests for the dict-backed reference source."""

    def test_returns_frame_at_requested_resolution(self):
        source = InMemoryReferenceSource()
        source.add_frame(VideoFrame.filled(8, 8, 3000, y=50, u=60, v=70))

        frame = source.get_frame(3000, Resolution(4, 4))

        assert frame.resolution == Resolution(4, 4)
        assert frame.u.shape == (2, 2)
        assert int(frame.y[0, 0]) == 50
        assert int(frame.v[1, 1]) == 70

    def test_missing_timestamp_raises(self):
        source = InMemoryReferenceSource()
        with pytest.raises(ReferenceUnavailableError):
            source.get_frame(1, Resolution(2, 2))


def _write_clip(path, width, height, values):
    """Write a raw I420 clip with one constant value per frame."""
    chroma = Resolution(width, height).chroma
    frame_size = width * height + 2 * chroma.width * chroma.height
    data = b"".join(bytes([v]) * frame_size for v in values)
    path.write_bytes(data)


class TestYuvFileReferenceSource:
    """Tests for the raw .yuv reference source."""

    def test_maps_timestamps_to_frames(self, tmp_path):
        clip = tmp_path / "clip.yuv"
        _write_clip(clip, 4, 4, [10, 20, 30])
        source = YuvFileReferenceSource(clip, width=4, height=4, framerate=30.0)

        assert source.num_frames == 3
        # First lookup defines frame 0; 3000 ticks = one frame at 30 fps
        assert int(source.get_frame(90000, Resolution(4, 4)).y[0, 0]) == 10
        assert int(source.get_frame(93000, Resolution(4, 4)).y[0, 0]) == 20
        assert int(source.get_frame(96000, Resolution(4, 4)).y[0, 0]) == 30

    def test_loops_past_end(self, tmp_path):
        clip = tmp_path / "clip.yuv"
        _write_clip(clip, 4, 4, [10, 20, 30])
        source = YuvFileReferenceSource(clip, width=4, height=4, base_timestamp_rtp=0)

        assert source.frame_index(9000) == 0
        assert source.frame_index(12000) == 1

    def test_rtp_wraparound(self, tmp_path):
        clip = tmp_path / "clip.yuv"
        _write_clip(clip, 4, 4, [10, 20, 30])
        source = YuvFileReferenceSource(
            clip, width=4, height=4, base_timestamp_rtp=(1 << 32) - 3000
        )

        assert source.frame_index(0) == 1

    def test_scales_to_requested_resolution(self, tmp_path):
        clip = tmp_path / "clip.yuv"
        _write_clip(clip, 8, 8, [77])
        source = YuvFileReferenceSource(clip, width=8, height=8)

        frame = source.get_frame(0, Resolution(4, 2))

        assert frame.resolution == Resolution(4, 2)
        assert frame.timestamp_rtp == 0
        assert np.all(frame.y == 77)

    def test_empty_file_rejected(self, tmp_path):
        clip = tmp_path / "empty.yuv"
        clip.write_bytes(b"")

        with pytest.raises(ReferenceUnavailableError):
            YuvFileReferenceSource(clip, width=4, height=4)

    def test_missing_file_rejected(self, tmp_path):
        with pytest.raises(ReferenceUnavailableError):
            YuvFileReferenceSource(tmp_path / "nope.yuv", width=4, height=4)
