"""
Quality Metrics
===============

Objective distortion metrics between a reference and a decoded picture.

Formulas:
    mse  = mean((ref - dec)^2)
    psnr = 10 * log10(peak^2 / mse),   peak = 2^bit_depth - 1

Identical planes have zero MSE. Instead of returning infinity the score is
capped at a ceiling (128 dB by default) meaning "no measurable difference".
Any finite score above the ceiling is capped as well.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from codec_analyzer.errors import FrameFormatError
from codec_analyzer.models.frame import VideoFrame


logger = logging.getLogger(__name__)

DEFAULT_PSNR_CEILING_DB = 128.0


@dataclass(frozen=True, slots=True)
class PlanePsnr:
    """
    PSNR for each plane of an I420 picture, in dB.

    Attributes:
        y: Luma PSNR
        u: Cb PSNR
        v: Cr PSNR
    """

    y: float
    u: float
    v: float

    def __repr__(self) -> str:
        return f"PlanePsnr(y={self.y:.2f}, u={self.u:.2f}, v={self.v:.2f})"


def compute_mse(reference: np.ndarray, distorted: np.ndarray) -> float:
    """
    Mean squared error between two planes of equal shape.

    Raises:
        FrameFormatError: If the shapes differ or the planes are empty
    """
    if reference.shape != distorted.shape:
        raise FrameFormatError(
            f"Plane shapes differ: {reference.shape} vs {distorted.shape}"
        )
    if reference.size == 0:
        raise FrameFormatError("Cannot compare empty planes")

    diff = reference.astype(np.float64) - distorted.astype(np.float64)
    return float(np.mean(diff * diff))


def mse_to_psnr(
    mse: float,
    bit_depth: int = 8,
    ceiling_db: float = DEFAULT_PSNR_CEILING_DB,
) -> float:
    """
    Convert MSE to PSNR, capped at ``ceiling_db``.

    Args:
        mse: Mean squared error (>= 0)
        bit_depth: Bits per sample; sets the peak amplitude
        ceiling_db: Score returned for zero error and upper cap

    Returns:
        PSNR in dB
    """
    if mse <= 0:
        return ceiling_db

    peak = float((1 << bit_depth) - 1)
    psnr = 10.0 * math.log10(peak * peak / mse)
    return min(psnr, ceiling_db)


def compute_plane_psnr(
    reference: np.ndarray,
    distorted: np.ndarray,
    bit_depth: int = 8,
    ceiling_db: float = DEFAULT_PSNR_CEILING_DB,
) -> float:
    """PSNR between two planes of equal shape."""
    return mse_to_psnr(compute_mse(reference, distorted), bit_depth, ceiling_db)


def compute_frame_psnr(
    reference: VideoFrame,
    distorted: VideoFrame,
    ceiling_db: float = DEFAULT_PSNR_CEILING_DB,
) -> PlanePsnr:
    """
    Per-plane PSNR between two frames of equal resolution and bit depth.

    Args:
        reference: Ground-truth frame
        distorted: Decoded frame
        ceiling_db: Cap for each plane's score

    Returns:
        PlanePsnr with luma and chroma scores

    Raises:
        FrameFormatError: If resolutions or bit depths differ
    """
    if reference.resolution != distorted.resolution:
        raise FrameFormatError(
            f"Resolution mismatch: reference {reference.resolution}, "
            f"decoded {distorted.resolution}"
        )
    if reference.bit_depth != distorted.bit_depth:
        raise FrameFormatError(
            f"Bit depth mismatch: reference {reference.bit_depth}, "
            f"decoded {distorted.bit_depth}"
        )

    bit_depth = distorted.bit_depth
    return PlanePsnr(
        y=compute_plane_psnr(reference.y, distorted.y, bit_depth, ceiling_db),
        u=compute_plane_psnr(reference.u, distorted.u, bit_depth, ceiling_db),
        v=compute_plane_psnr(reference.v, distorted.v, bit_depth, ceiling_db),
    )
