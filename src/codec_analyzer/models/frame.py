"""
Frame Data Models
=================

Raw and encoded frame representations consumed by the analyzer.

This module defines the typed inputs passed to the analyzer's event entry
points:
    - Resolution: Width/height pair used for reference lookups
    - VideoFrame: Three-plane I420 (4:2:0) picture with an RTP timestamp
    - EncodedImage: Metadata of one encoded bitstream unit

Design Rules:
    - Frames are immutable containers; the planes are NOT copied
    - Callers must not write into plane arrays after handing a frame over,
      since the analyzer reads them later on its worker thread
    - Chroma planes are ceil(h/2) x ceil(w/2)
"""

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from codec_analyzer.errors import FrameFormatError


@dataclass(frozen=True, slots=True)
class Resolution:
    """
    Frame dimensions in pixels.

    Attributes:
        width: Luma width
        height: Luma height
    """

    width: int
    height: int

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"resolution must be positive, got {self.width}x{self.height}"
            )

    @property
    def chroma(self) -> "Resolution":
        """Dimensions of the subsampled chroma planes."""
        return Resolution((self.width + 1) // 2, (self.height + 1) // 2)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True, slots=True, eq=False)
class VideoFrame:
    """
    Planar I420 picture.

    Attributes:
        timestamp_rtp: RTP timestamp identifying the source frame
        y: Luma plane (H, W)
        u: Cb plane (ceil(H/2), ceil(W/2))
        v: Cr plane (ceil(H/2), ceil(W/2))
        bit_depth: Bits per sample (8 for uint8 planes)
    """

    timestamp_rtp: int
    y: np.ndarray
    u: np.ndarray
    v: np.ndarray
    bit_depth: int = 8

    def __post_init__(self) -> None:
        """Validate plane geometry."""
        if self.y.ndim != 2:
            raise FrameFormatError(
                f"Luma plane must be 2-D, got shape {self.y.shape}"
            )
        if not 8 <= self.bit_depth <= 16:
            raise FrameFormatError(f"Unsupported bit depth: {self.bit_depth}")

        height, width = self.y.shape
        if width == 0 or height == 0:
            raise FrameFormatError("Luma plane is empty")

        expected = ((height + 1) // 2, (width + 1) // 2)
        for name, plane in (("u", self.u), ("v", self.v)):
            if plane.shape != expected:
                raise FrameFormatError(
                    f"Chroma plane {name} has shape {plane.shape}, "
                    f"expected {expected} for {width}x{height}"
                )

    @property
    def width(self) -> int:
        return int(self.y.shape[1])

    @property
    def height(self) -> int:
        return int(self.y.shape[0])

    @property
    def resolution(self) -> Resolution:
        return Resolution(self.width, self.height)

    @classmethod
    def filled(
        cls,
        width: int,
        height: int,
        timestamp_rtp: int,
        y: int = 0,
        u: int = 0,
        v: int = 0,
        bit_depth: int = 8,
    ) -> "VideoFrame":
        """
        Create a frame whose planes are filled with constant values.

        Args:
            width: Luma width
            height: Luma height
            timestamp_rtp: RTP timestamp
            y, u, v: Sample values for each plane
            bit_depth: Bits per sample (uint8 for 8, uint16 otherwise)

        Returns:
            New VideoFrame
        """
        dtype = np.uint8 if bit_depth == 8 else np.uint16
        chroma = Resolution(width, height).chroma
        return cls(
            timestamp_rtp=timestamp_rtp,
            y=np.full((height, width), y, dtype=dtype),
            u=np.full((chroma.height, chroma.width), u, dtype=dtype),
            v=np.full((chroma.height, chroma.width), v, dtype=dtype),
            bit_depth=bit_depth,
        )

    @classmethod
    def from_i420_bytes(
        cls,
        data,
        width: int,
        height: int,
        timestamp_rtp: int,
    ) -> "VideoFrame":
        """
        Wrap a contiguous 8-bit I420 buffer (Y, then U, then V).

        Args:
            data: bytes-like object or uint8 array with the planes
            width: Luma width
            height: Luma height
            timestamp_rtp: RTP timestamp

        Returns:
            VideoFrame whose planes are views into ``data``

        Raises:
            FrameFormatError: If the buffer size does not match
        """
        buf = np.frombuffer(data, dtype=np.uint8)
        chroma = Resolution(width, height).chroma
        luma_size = width * height
        chroma_size = chroma.width * chroma.height

        if buf.size != luma_size + 2 * chroma_size:
            raise FrameFormatError(
                f"I420 buffer of {buf.size} bytes does not match {width}x{height}"
            )

        y = buf[:luma_size].reshape(height, width)
        u = buf[luma_size:luma_size + chroma_size].reshape(chroma.height, chroma.width)
        v = buf[luma_size + chroma_size:].reshape(chroma.height, chroma.width)
        return cls(timestamp_rtp=timestamp_rtp, y=y, u=u, v=v)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the planes."""
        return (
            f"VideoFrame(timestamp_rtp={self.timestamp_rtp}, "
            f"{self.width}x{self.height}, bit_depth={self.bit_depth})"
        )


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """
    Metadata of one encoded bitstream unit.

    Attributes:
        timestamp_rtp: RTP timestamp of the source frame
        spatial_index: Spatial layer index (0 = base layer)
        size_bytes: Encoded payload length
        keyframe: Whether the unit is independently decodable
        qp: Quantization parameter reported by the encoder, if known
    """

    timestamp_rtp: int
    spatial_index: int = 0
    size_bytes: int = 0
    keyframe: bool = False
    qp: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.spatial_index < 0:
            raise ValueError("spatial_index must be non-negative")
        if self.size_bytes < 0:
            raise ValueError("size_bytes must be non-negative")


def _resize_plane(plane: np.ndarray, width: int, height: int) -> np.ndarray:
    if plane.shape == (height, width):
        return plane
    downscale = width <= plane.shape[1] and height <= plane.shape[0]
    interpolation = cv2.INTER_AREA if downscale else cv2.INTER_LINEAR
    return cv2.resize(plane, (width, height), interpolation=interpolation)


def scale_frame(frame: VideoFrame, resolution: Resolution) -> VideoFrame:
    """
    Scale all planes of a frame to a target resolution.

    Uses area interpolation when shrinking and bilinear when enlarging.
    Returns the input unchanged if it already has the target size.

    Args:
        frame: Source frame
        resolution: Target luma resolution

    Returns:
        Frame at the target resolution with the same timestamp
    """
    if frame.resolution == resolution:
        return frame

    chroma = resolution.chroma
    return VideoFrame(
        timestamp_rtp=frame.timestamp_rtp,
        y=_resize_plane(frame.y, resolution.width, resolution.height),
        u=_resize_plane(frame.u, chroma.width, chroma.height),
        v=_resize_plane(frame.v, chroma.width, chroma.height),
        bit_depth=frame.bit_depth,
    )
