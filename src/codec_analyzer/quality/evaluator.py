"""
Quality Evaluator
=================

Fetches the reference for a decoded frame and computes per-plane PSNR.

Design Rules:
    - Never raises: every failure becomes None plus a warning log
    - Never scales or crops; the reference source owns resampling
    - A reference that comes back at the wrong size or bit depth is
      treated as unavailable
"""

import logging
from typing import Optional

from codec_analyzer.models.frame import VideoFrame
from codec_analyzer.quality.metrics import (
    DEFAULT_PSNR_CEILING_DB,
    PlanePsnr,
    compute_frame_psnr,
)
from codec_analyzer.quality.reference import ReferenceVideoSource


logger = logging.getLogger(__name__)


class QualityEvaluator:
    """
    Computes objective quality of decoded frames against a reference.

    Attributes:
        reference_source: Provider of ground-truth frames
        ceiling_db: PSNR reported for identical planes
        evaluated_count: Frames with a computed metric
        skipped_count: Frames where no metric could be computed
    """

    def __init__(
        self,
        reference_source: ReferenceVideoSource,
        ceiling_db: float = DEFAULT_PSNR_CEILING_DB,
    ) -> None:
        if ceiling_db <= 0:
            raise ValueError("ceiling_db must be positive")

        self.reference_source = reference_source
        self.ceiling_db = ceiling_db
        self.evaluated_count: int = 0
        self.skipped_count: int = 0

    def evaluate(self, decoded: VideoFrame) -> Optional[PlanePsnr]:
        """
        Compute PSNR of a decoded frame.

        Args:
            decoded: Decoded picture; its timestamp and resolution select
                the reference

        Returns:
            PlanePsnr, or None if no metric is available
        """
        timestamp = decoded.timestamp_rtp

        try:
            reference = self.reference_source.get_frame(timestamp, decoded.resolution)
        except Exception as e:
            logger.warning(f"Reference lookup failed for timestamp {timestamp}: {e}")
            self.skipped_count += 1
            return None

        if reference is None:
            logger.warning(f"No reference frame for timestamp {timestamp}")
            self.skipped_count += 1
            return None

        if reference.resolution != decoded.resolution:
            logger.warning(
                f"Reference resolution {reference.resolution} does not match "
                f"decoded {decoded.resolution} at timestamp {timestamp}"
            )
            self.skipped_count += 1
            return None

        if reference.bit_depth != decoded.bit_depth:
            logger.warning(
                f"Reference bit depth {reference.bit_depth} does not match "
                f"decoded {decoded.bit_depth} at timestamp {timestamp}"
            )
            self.skipped_count += 1
            return None

        psnr = compute_frame_psnr(reference, decoded, self.ceiling_db)
        self.evaluated_count += 1
        logger.debug(f"Timestamp {timestamp}: {psnr}")
        return psnr

    def get_metrics(self) -> dict:
        """Get evaluator metrics for observability."""
        return {
            "evaluated_count": self.evaluated_count,
            "skipped_count": self.skipped_count,
            "ceiling_db": self.ceiling_db,
        }
