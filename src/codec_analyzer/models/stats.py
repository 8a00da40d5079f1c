"""
Statistics Models
=================

Per-frame statistics records and the snapshot returned to callers.

Core Concepts:
    - FrameStatistics: One mutable record per (rtp_timestamp, spatial layer)
    - StreamStatistics: Aggregate summary over a set of records
    - VideoCodecStats: Immutable snapshot of the ledger at a point in time

Tri-state fields:
    Success flags and metrics are Optional. None means "not observed",
    which is different from False or 0.0. A missing PSNR means no metric is
    available for that frame, never a zero-quality frame.

Example:
    stats = analyzer.get_stats()
    for fs in stats.frame_statistics():
        print(fs.rtp_timestamp, fs.spatial_layer_index, fs.psnr_y)

    summary = stats.aggregate(spatial_layer_index=0)
    print(summary.mean_psnr_y)
"""

from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field


class FrameStatistics(BaseModel):
    """
    Statistics collected for one frame on one spatial layer.

    Records are created by whichever start/finish event arrives first for
    the key and are updated in place by later events. Fields set by an
    earlier event are never reset by a later one.

    Attributes:
        rtp_timestamp: Frame identity assigned by the pipeline
        spatial_layer_index: Spatial layer (0 when not layered)
        encoding_successful: Set by encode-finished only
        decoding_successful: Set by decode-finished only
        decoded_width: Width of the decoded picture
        decoded_height: Height of the decoded picture
        psnr_y: Luma PSNR in dB
        psnr_u: Cb PSNR in dB
        psnr_v: Cr PSNR in dB
    """

    rtp_timestamp: int = Field(..., description="RTP timestamp of the frame")
    spatial_layer_index: int = Field(
        default=0,
        ge=0,
        description="Spatial layer index (0 = base layer)",
    )

    encoding_successful: Optional[bool] = Field(
        default=None,
        description="True once an encoded unit was produced",
    )
    decoding_successful: Optional[bool] = Field(
        default=None,
        description="True once a decoded picture was produced",
    )

    input_width: Optional[int] = Field(default=None, ge=0)
    input_height: Optional[int] = Field(default=None, ge=0)
    decoded_width: Optional[int] = Field(default=None, ge=0)
    decoded_height: Optional[int] = Field(default=None, ge=0)

    frame_size_bytes: Optional[int] = Field(
        default=None,
        ge=0,
        description="Encoded payload length",
    )
    keyframe: Optional[bool] = Field(default=None)
    qp: Optional[int] = Field(default=None)

    encode_time_us: Optional[int] = Field(
        default=None,
        ge=0,
        description="Microseconds between encode start and finish",
    )
    decode_time_us: Optional[int] = Field(
        default=None,
        ge=0,
        description="Microseconds between decode start and finish",
    )

    psnr_y: Optional[float] = Field(default=None, description="Luma PSNR (dB)")
    psnr_u: Optional[float] = Field(default=None, description="Cb PSNR (dB)")
    psnr_v: Optional[float] = Field(default=None, description="Cr PSNR (dB)")

    @property
    def key(self) -> Tuple[int, int]:
        """Ledger key (rtp_timestamp, spatial_layer_index)."""
        return self.rtp_timestamp, self.spatial_layer_index


class StreamStatistics(BaseModel):
    """
    Aggregate statistics over a set of frame records.

    Means skip records where the underlying field is unset. A mean over
    no values is None.
    """

    num_frames: int = Field(default=0, ge=0)
    num_encoded: int = Field(default=0, ge=0)
    num_decoded: int = Field(default=0, ge=0)
    num_keyframes: int = Field(default=0, ge=0)
    total_encoded_bytes: int = Field(default=0, ge=0)

    mean_encode_time_us: Optional[float] = None
    mean_decode_time_us: Optional[float] = None

    mean_psnr_y: Optional[float] = None
    mean_psnr_u: Optional[float] = None
    mean_psnr_v: Optional[float] = None
    min_psnr_y: Optional[float] = None


def _values(records: Sequence[FrameStatistics], field: str) -> np.ndarray:
    values = [getattr(r, field) for r in records if getattr(r, field) is not None]
    return np.asarray(values, dtype=np.float64)


def _mean(records: Sequence[FrameStatistics], field: str) -> Optional[float]:
    values = _values(records, field)
    if values.size == 0:
        return None
    return float(np.mean(values))


def aggregate_statistics(
    records: Sequence[FrameStatistics],
    spatial_layer_index: Optional[int] = None,
) -> StreamStatistics:
    """
    Summarize frame records.

    Args:
        records: Records to summarize
        spatial_layer_index: Restrict to one layer. None = all layers.

    Returns:
        StreamStatistics over the selected records
    """
    if spatial_layer_index is not None:
        records = [r for r in records if r.spatial_layer_index == spatial_layer_index]

    psnr_y = _values(records, "psnr_y")

    return StreamStatistics(
        num_frames=len(records),
        num_encoded=sum(1 for r in records if r.encoding_successful),
        num_decoded=sum(1 for r in records if r.decoding_successful),
        num_keyframes=sum(1 for r in records if r.keyframe),
        total_encoded_bytes=sum(r.frame_size_bytes or 0 for r in records),
        mean_encode_time_us=_mean(records, "encode_time_us"),
        mean_decode_time_us=_mean(records, "decode_time_us"),
        mean_psnr_y=float(np.mean(psnr_y)) if psnr_y.size else None,
        mean_psnr_u=_mean(records, "psnr_u"),
        mean_psnr_v=_mean(records, "psnr_v"),
        min_psnr_y=float(np.min(psnr_y)) if psnr_y.size else None,
    )


class VideoCodecStats:
    """
    Snapshot of the analyzer's statistics ledger.

    Holds private copies of the records taken on the analyzer's worker
    thread. Safe to read from any thread; nothing done to the snapshot
    reaches the live ledger.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Sequence[FrameStatistics]) -> None:
        self._records: Tuple[FrameStatistics, ...] = tuple(
            r.model_copy(deep=True) for r in records
        )

    def frame_statistics(self) -> List[FrameStatistics]:
        """Return copies of all records in creation order."""
        return [r.model_copy(deep=True) for r in self._records]

    def aggregate(self, spatial_layer_index: Optional[int] = None) -> StreamStatistics:
        """Summarize the snapshot, optionally for a single spatial layer."""
        return aggregate_statistics(self._records, spatial_layer_index)

    def to_dicts(self) -> List[dict]:
        """Export records as plain dicts for report layers."""
        return [r.model_dump() for r in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[FrameStatistics]:
        return iter(self.frame_statistics())

    def __repr__(self) -> str:
        return f"VideoCodecStats(frames={len(self._records)})"
