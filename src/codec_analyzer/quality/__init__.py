"""
Quality Module
==============

Reference-based quality evaluation for decoded frames.

This module provides:
    - PSNR computation per I420 plane
    - The ReferenceVideoSource capability and two implementations
    - QualityEvaluator, which ties a reference source to the metrics

The analyzer consumes ONLY the PlanePsnr result, never raw references.
"""

from codec_analyzer.quality.metrics import (
    DEFAULT_PSNR_CEILING_DB,
    PlanePsnr,
    compute_frame_psnr,
    compute_mse,
    compute_plane_psnr,
    mse_to_psnr,
)
from codec_analyzer.quality.reference import (
    InMemoryReferenceSource,
    ReferenceVideoSource,
    YuvFileReferenceSource,
)
from codec_analyzer.quality.evaluator import QualityEvaluator

__all__ = [
    # Metrics
    "DEFAULT_PSNR_CEILING_DB",
    "PlanePsnr",
    "compute_mse",
    "mse_to_psnr",
    "compute_plane_psnr",
    "compute_frame_psnr",
    # Reference sources
    "ReferenceVideoSource",
    "InMemoryReferenceSource",
    "YuvFileReferenceSource",
    # Evaluation
    "QualityEvaluator",
]
