"""
Statistics Ledger
=================

Ordered map from (rtp_timestamp, spatial_layer_index) to FrameStatistics.

get_or_create() is the single entry primitive used by every event
handler: encode and decode events for the same key converge on the same
record no matter which arrives first.

Iteration order is creation order, not timestamp order.

Timestamps are trusted to be unique per layer. A decode event for a key
that already has a finished record updates that record; stale cycles are
not detected.

Not thread-safe. The analyzer only touches it from its executor thread.
"""

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from codec_analyzer.models.stats import FrameStatistics


logger = logging.getLogger(__name__)

FrameKey = Tuple[int, int]


class FrameStatsLedger:
    """Insertion-ordered collection of per-frame records."""

    def __init__(self) -> None:
        self._records: Dict[FrameKey, FrameStatistics] = {}

    def get_or_create(self, rtp_timestamp: int, spatial_layer_index: int = 0) -> FrameStatistics:
        """
        Look up the record for a key, appending a new one if absent.

        Args:
            rtp_timestamp: Frame identity
            spatial_layer_index: Spatial layer

        Returns:
            The live record for the key
        """
        key = (rtp_timestamp, spatial_layer_index)
        record = self._records.get(key)
        if record is None:
            record = FrameStatistics(
                rtp_timestamp=rtp_timestamp,
                spatial_layer_index=spatial_layer_index,
            )
            self._records[key] = record
            logger.debug(f"Created frame record ts={rtp_timestamp} layer={spatial_layer_index}")
        return record

    def get(self, rtp_timestamp: int, spatial_layer_index: int = 0) -> Optional[FrameStatistics]:
        return self._records.get((rtp_timestamp, spatial_layer_index))

    def records(self) -> List[FrameStatistics]:
        """Live records in creation order."""
        return list(self._records.values())

    def __contains__(self, key: FrameKey) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[FrameStatistics]:
        return iter(self._records.values())
