"""
Video Codec Analyzer
====================

Correlates encode/decode events of a pipeline under test and collects
per-frame statistics.

The pipeline reports four events, possibly from different threads and in
any order:

    start_encode(frame)                  -> record (ts, 0)
    finish_encode(encoded)               -> record (ts, encoded.spatial_index)
    start_decode(encoded)                -> record (ts, encoded.spatial_index)
    finish_decode(decoded, layer)        -> record (ts, layer) + PSNR

Every event is turned into a task on a SerializedExecutor. The handlers
run one at a time on the executor thread, which is the only thread that
touches the ledger. Entry points return immediately. get_stats() queues a
snapshot task and waits for it, so it observes every event queued before
the call.

Error Policy:
    No entry point raises. A missing record is created on the fly, a
    missing reference leaves the PSNR fields unset, and a failing handler
    is logged by the executor.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from codec_analyzer.config import Settings, create_reference_source
from codec_analyzer.errors import ExecutorClosedError
from codec_analyzer.executor import SerializedExecutor
from codec_analyzer.ledger import FrameStatsLedger
from codec_analyzer.models.frame import EncodedImage, VideoFrame
from codec_analyzer.models.stats import VideoCodecStats
from codec_analyzer.quality.evaluator import QualityEvaluator
from codec_analyzer.quality.metrics import DEFAULT_PSNR_CEILING_DB
from codec_analyzer.quality.reference import ReferenceVideoSource


logger = logging.getLogger(__name__)


def _elapsed_us(start_ns: Optional[int], end_ns: int) -> Optional[int]:
    if start_ns is None or end_ns < start_ns:
        return None
    return (end_ns - start_ns) // 1000


class VideoCodecAnalyzer:
    """
    Frame statistics analyzer for codec test harnesses.

    Attributes:
        executor: Sequential task stream all handlers run on
        evaluator: Quality evaluator, or None without a reference source

    Example:
        analyzer = VideoCodecAnalyzer(reference_source=source)

        analyzer.start_encode(raw_frame)
        analyzer.finish_encode(encoded_image)
        analyzer.start_decode(encoded_image)
        analyzer.finish_decode(decoded_frame, spatial_layer_index=0)

        for fs in analyzer.get_stats().frame_statistics():
            print(fs.rtp_timestamp, fs.psnr_y)

        analyzer.close()
    """

    def __init__(
        self,
        executor: Optional[SerializedExecutor] = None,
        reference_source: Optional[ReferenceVideoSource] = None,
        psnr_ceiling_db: float = DEFAULT_PSNR_CEILING_DB,
        clock: Callable[[], int] = time.perf_counter_ns,
        executor_name: str = "codec-analyzer",
        close_timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the analyzer.

        Args:
            executor: Task stream to run on. None = create and own one.
            reference_source: Ground-truth frames for PSNR. None = no PSNR.
            psnr_ceiling_db: PSNR reported for identical planes
            clock: Monotonic nanosecond clock for encode/decode timing
            executor_name: Worker thread name when the executor is owned
            close_timeout: Maximum seconds close() waits for pending events
        """
        self._owns_executor = executor is None
        self.executor = executor if executor is not None else SerializedExecutor(name=executor_name)
        self.evaluator: Optional[QualityEvaluator] = (
            QualityEvaluator(reference_source, ceiling_db=psnr_ceiling_db)
            if reference_source is not None
            else None
        )
        self._clock = clock
        self._close_timeout = close_timeout

        # Executor-thread state
        self._ledger = FrameStatsLedger()
        self._encode_start_ns: Dict[int, int] = {}
        self._decode_start_ns: Dict[Tuple[int, int], int] = {}

        logger.info(
            f"VideoCodecAnalyzer initialized: "
            f"psnr={'on' if self.evaluator else 'off'}, "
            f"executor={self.executor.name}"
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        executor: Optional[SerializedExecutor] = None,
        reference_source: Optional[ReferenceVideoSource] = None,
    ) -> "VideoCodecAnalyzer":
        """
        Build an analyzer from Settings.

        A reference source passed explicitly wins over the configured one.
        PSNR is disabled when settings.quality.enable_psnr is False.
        """
        if not settings.quality.enable_psnr:
            reference_source = None
        elif reference_source is None:
            reference_source = create_reference_source(settings)

        return cls(
            executor=executor,
            reference_source=reference_source,
            psnr_ceiling_db=settings.quality.psnr_ceiling_db,
            executor_name=settings.executor.thread_name,
            close_timeout=settings.executor.flush_timeout_seconds,
        )

    # =========================================================================
    # Event entry points (any thread)
    # =========================================================================

    def start_encode(self, frame: VideoFrame) -> None:
        """Report that a raw frame was handed to the encoder."""
        self._post(self._on_start_encode, frame, self._clock())

    def finish_encode(self, encoded: EncodedImage) -> None:
        """Report an encoded unit produced by the encoder."""
        self._post(self._on_finish_encode, encoded, self._clock())

    def start_decode(self, encoded: EncodedImage) -> None:
        """Report that an encoded unit was handed to the decoder."""
        self._post(self._on_start_decode, encoded, self._clock())

    def finish_decode(self, decoded: VideoFrame, spatial_layer_index: int = 0) -> None:
        """
        Report a decoded picture.

        The frame's planes are read later on the executor thread, so the
        caller must not write into them afterwards.
        """
        self._post(self._on_finish_decode, decoded, spatial_layer_index, self._clock())

    def get_stats(self, timeout: Optional[float] = None) -> VideoCodecStats:
        """
        Snapshot all records collected so far.

        Waits for every event queued before this call to be handled.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            VideoCodecStats holding copies of the records in creation order
        """
        try:
            return self.executor.run_and_wait(self._snapshot, timeout=timeout)
        except ExecutorClosedError:
            # Worker drains the queue before exiting; wait for it, then
            # nothing else writes to the ledger.
            self.executor.flush(timeout)
            return self._snapshot()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until all queued events have been handled."""
        return self.executor.flush(timeout)

    def close(self) -> None:
        """Drain pending events and stop the executor if owned."""
        if self._owns_executor:
            self.executor.close(timeout=self._close_timeout)
        else:
            self.executor.flush(self._close_timeout)

    def __enter__(self) -> "VideoCodecAnalyzer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _post(self, handler: Callable, *args) -> None:
        try:
            self.executor.post(handler, *args)
        except ExecutorClosedError:
            logger.warning(f"Analyzer closed, dropping {handler.__name__} event")

    # =========================================================================
    # Handlers (executor thread only)
    # =========================================================================

    def _on_start_encode(self, frame: VideoFrame, now_ns: int) -> None:
        timestamp = frame.timestamp_rtp
        fs = self._ledger.get_or_create(timestamp, 0)
        if fs.input_width is None:
            fs.input_width = frame.width
            fs.input_height = frame.height
        self._encode_start_ns.setdefault(timestamp, now_ns)

    def _on_finish_encode(self, encoded: EncodedImage, now_ns: int) -> None:
        fs = self._ledger.get_or_create(encoded.timestamp_rtp, encoded.spatial_index)
        fs.encoding_successful = True
        fs.frame_size_bytes = encoded.size_bytes
        fs.keyframe = encoded.keyframe
        if encoded.qp is not None:
            fs.qp = encoded.qp

        encode_time_us = _elapsed_us(
            self._encode_start_ns.get(encoded.timestamp_rtp), now_ns
        )
        if encode_time_us is not None:
            fs.encode_time_us = encode_time_us

    def _on_start_decode(self, encoded: EncodedImage, now_ns: int) -> None:
        key = (encoded.timestamp_rtp, encoded.spatial_index)
        fs = self._ledger.get_or_create(*key)
        if fs.frame_size_bytes is None:
            fs.frame_size_bytes = encoded.size_bytes
        if fs.keyframe is None:
            fs.keyframe = encoded.keyframe
        self._decode_start_ns[key] = now_ns

    def _on_finish_decode(
        self,
        decoded: VideoFrame,
        spatial_layer_index: int,
        now_ns: int,
    ) -> None:
        key = (decoded.timestamp_rtp, spatial_layer_index)
        fs = self._ledger.get_or_create(*key)
        fs.decoding_successful = True
        fs.decoded_width = decoded.width
        fs.decoded_height = decoded.height

        decode_time_us = _elapsed_us(self._decode_start_ns.get(key), now_ns)
        if decode_time_us is not None:
            fs.decode_time_us = decode_time_us

        if self.evaluator is None:
            return

        psnr = self.evaluator.evaluate(decoded)
        if psnr is not None:
            fs.psnr_y = psnr.y
            fs.psnr_u = psnr.u
            fs.psnr_v = psnr.v

    def _snapshot(self) -> VideoCodecStats:
        return VideoCodecStats(self._ledger.records())

    def get_metrics(self) -> dict:
        """Get analyzer metrics for observability."""
        metrics = {
            "frames": len(self._ledger),
            "executor": self.executor.metrics(),
        }
        if self.evaluator is not None:
            metrics["quality"] = self.evaluator.get_metrics()
        return metrics
