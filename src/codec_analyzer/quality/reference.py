"""
Reference Video Sources
=======================

Capability interface for ground-truth frames, plus two implementations.

The analyzer never decides how reference frames are produced. It asks a
ReferenceVideoSource for the frame with a given RTP timestamp at a given
resolution and compares whatever comes back.

Components:
    - ReferenceVideoSource: Protocol with a single get_frame() method
    - InMemoryReferenceSource: Frames kept in a dict, keyed by timestamp
    - YuvFileReferenceSource: Raw 8-bit I420 file on disk

Contract:
    get_frame() returns a VideoFrame, or signals unavailability by raising
    (ReferenceUnavailableError preferred) or returning None. Implementations
    may scale or crop internally.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import numpy as np

from codec_analyzer.errors import ReferenceUnavailableError
from codec_analyzer.models.frame import Resolution, VideoFrame, scale_frame


logger = logging.getLogger(__name__)

RTP_CLOCK_RATE_HZ = 90000
_RTP_TIMESTAMP_MODULO = 1 << 32


class ReferenceVideoSource(Protocol):
    """
    Protocol for reference frame providers.

    This interface is implemented by:
        - InMemoryReferenceSource (synthetic sequences, tests)
        - YuvFileReferenceSource (raw .yuv clips)
    """

    def get_frame(self, timestamp_rtp: int, resolution: Resolution) -> Optional[VideoFrame]:
        """
        Return the reference frame for a timestamp at a resolution.

        Args:
            timestamp_rtp: RTP timestamp of the decoded frame
            resolution: Resolution of the decoded frame

        Returns:
            Reference VideoFrame, or None if unavailable
        """
        ...


class InMemoryReferenceSource:
    """
    Reference source backed by a dict of frames.

    Frames are scaled to the requested resolution on lookup.
    """

    def __init__(self, frames: Optional[Dict[int, VideoFrame]] = None) -> None:
        self._frames: Dict[int, VideoFrame] = dict(frames or {})
        self._lock = threading.Lock()

    def add_frame(self, frame: VideoFrame) -> None:
        """Register a frame under its own RTP timestamp."""
        with self._lock:
            self._frames[frame.timestamp_rtp] = frame

    def __len__(self) -> int:
        return len(self._frames)

    def get_frame(self, timestamp_rtp: int, resolution: Resolution) -> VideoFrame:
        with self._lock:
            frame = self._frames.get(timestamp_rtp)

        if frame is None:
            raise ReferenceUnavailableError(
                f"No reference frame for timestamp {timestamp_rtp}"
            )
        return scale_frame(frame, resolution)


class YuvFileReferenceSource:
    """
    Reference source reading a raw 8-bit I420 clip.

    RTP timestamps are mapped to frame indices using the clip framerate
    and the RTP clock rate, relative to a base timestamp. If no base is
    given, the first requested timestamp becomes frame 0. Playback loops
    when the index passes the end of the file.

    Attributes:
        path: Path to the .yuv file
        resolution: Native resolution of the clip
        framerate: Frames per second of the clip
        num_frames: Number of complete frames in the file

    Example:
        source = YuvFileReferenceSource(
            "foreman_352x288.yuv",
            width=352,
            height=288,
            framerate=30.0,
        )
        ref = source.get_frame(3000, Resolution(176, 144))
    """

    def __init__(
        self,
        path: Union[str, Path],
        width: int,
        height: int,
        framerate: float = 30.0,
        clock_rate_hz: int = RTP_CLOCK_RATE_HZ,
        base_timestamp_rtp: Optional[int] = None,
    ) -> None:
        """
        Open a raw YUV clip.

        Args:
            path: Path to an 8-bit I420 file
            width: Native luma width
            height: Native luma height
            framerate: Clip framerate (fps)
            clock_rate_hz: RTP clock rate
            base_timestamp_rtp: Timestamp of frame 0. None = first request.

        Raises:
            ValueError: On invalid parameters
            ReferenceUnavailableError: If the file holds no complete frame
        """
        if framerate <= 0:
            raise ValueError("framerate must be positive")
        if clock_rate_hz <= 0:
            raise ValueError("clock_rate_hz must be positive")

        self.path = Path(path)
        self.resolution = Resolution(width, height)
        self.framerate = framerate
        self.clock_rate_hz = clock_rate_hz

        chroma = self.resolution.chroma
        self._frame_size = width * height + 2 * chroma.width * chroma.height

        if not self.path.exists():
            raise ReferenceUnavailableError(f"Reference file not found: {self.path}")

        file_size = self.path.stat().st_size
        self.num_frames = file_size // self._frame_size
        if self.num_frames == 0:
            raise ReferenceUnavailableError(
                f"{self.path} is smaller than one {self.resolution} I420 frame"
            )
        if file_size % self._frame_size:
            logger.warning(
                f"{self.path} has {file_size % self._frame_size} trailing bytes, ignoring"
            )

        self._data = np.memmap(self.path, dtype=np.uint8, mode="r")
        self._base_timestamp = base_timestamp_rtp
        self._lock = threading.Lock()

        logger.info(
            f"YuvFileReferenceSource opened: {self.path.name}, "
            f"{self.resolution}@{framerate}fps, {self.num_frames} frames"
        )

    def frame_index(self, timestamp_rtp: int) -> int:
        """Map an RTP timestamp to a frame index in the clip."""
        with self._lock:
            if self._base_timestamp is None:
                self._base_timestamp = timestamp_rtp
            base = self._base_timestamp

        delta = (timestamp_rtp - base) % _RTP_TIMESTAMP_MODULO
        index = int(round(delta * self.framerate / self.clock_rate_hz))
        return index % self.num_frames

    def read_frame(self, index: int, timestamp_rtp: int = 0) -> VideoFrame:
        """Read the frame at ``index`` at native resolution."""
        if not 0 <= index < self.num_frames:
            raise ReferenceUnavailableError(
                f"Frame index {index} out of range (0..{self.num_frames - 1})"
            )
        offset = index * self._frame_size
        raw = np.array(self._data[offset:offset + self._frame_size])
        return VideoFrame.from_i420_bytes(
            raw,
            self.resolution.width,
            self.resolution.height,
            timestamp_rtp,
        )

    def get_frame(self, timestamp_rtp: int, resolution: Resolution) -> VideoFrame:
        index = self.frame_index(timestamp_rtp)
        frame = self.read_frame(index, timestamp_rtp)
        logger.debug(
            f"Reference frame {index} for timestamp {timestamp_rtp} -> {resolution}"
        )
        return scale_frame(frame, resolution)
