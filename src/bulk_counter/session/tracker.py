"""
SpatialTracker - committed position markers for deduplication.

Markers are only created when detections are confirmed, never per frame,
so the list grows with confirmed items rather than with camera jitter.
Distance is flat Euclidean in frame pixel space (z is always 0 here).

Not thread-safe on its own; the SessionController calls it under its lock.
"""

import logging
import math
import time
from collections.abc import Callable, Iterable

from ..config import SettingsStore
from ..models import Detection, SpatialMarker, new_id

logger = logging.getLogger(__name__)


class SpatialTracker:
    """Ordered list of spatial markers for the active session."""

    def __init__(self, settings: SettingsStore, clock: Callable[[], float] = time.time):
        self._settings = settings
        self._clock = clock
        self._markers: list[SpatialMarker] = []

    @property
    def markers(self) -> tuple[SpatialMarker, ...]:
        return tuple(self._markers)

    def __len__(self) -> int:
        return len(self._markers)

    def is_duplicate(self, x: float, y: float, z: float = 0.0) -> bool:
        """
        True iff some marker lies strictly closer than the dedup distance.

        A point exactly at the threshold distance is not a duplicate.
        """
        threshold = self._settings.current.deduplication_distance_threshold
        point = (x, y, z)
        return any(
            math.dist(point, (m.world_x, m.world_y, m.world_z)) < threshold
            for m in self._markers
        )

    def add_marker(
        self, x: float, y: float, z: float, detection_id: str
    ) -> SpatialMarker:
        marker = SpatialMarker(
            id=new_id(),
            world_x=x,
            world_y=y,
            world_z=z,
            detection_id=detection_id,
            timestamp=self._clock(),
        )
        self._markers.append(marker)
        return marker

    def commit(self, detections: Iterable[Detection]) -> list[SpatialMarker]:
        """Add one marker at the centre of each confirmed detection."""
        committed = []
        for detection in detections:
            cx, cy = detection.bounding_box.center
            committed.append(self.add_marker(cx, cy, 0.0, detection.id))
        if committed:
            logger.debug(f"Committed {len(committed)} markers ({len(self._markers)} total)")
        return committed

    def filter(self, detections: Iterable[Detection]) -> list[Detection]:
        """
        Drop detections whose centre falls near a committed marker.

        Everything passes through when deduplication is disabled.
        """
        detections = list(detections)
        if not self._settings.current.enable_deduplication or not self._markers:
            return detections
        return [d for d in detections if not self.is_duplicate(*d.bounding_box.center, 0.0)]

    def clear(self) -> None:
        if self._markers:
            logger.info(f"Cleared {len(self._markers)} spatial markers")
        self._markers.clear()
