import logging
import math
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Set, Tuple

import numpy as np

from people_counter.data_types import BoundingBox, Centroid, TrackRecord
from people_counter.errors import InvalidDetectionError

logger = logging.getLogger(__name__)


class BaseTracker(ABC):
    """
    Abstract interface for all trackers.
    """

    @abstractmethod
    def update(self, detections: Sequence[BoundingBox]) -> Mapping[int, Centroid]:
        """
        Update tracker with detections for current frame.
        Must return a mapping of object id -> current centroid.
        """
        raise NotImplementedError


def greedy_match(distances: np.ndarray) -> List[Tuple[int, int]]:
    """
    Greedy nearest-neighbour assignment on a (rows x cols) distance matrix.

    Each row proposes its closest column (lowest column index on ties).
    Proposals are accepted in ascending distance order (lowest row index
    on ties) unless the row or column was already taken.

    Returns the accepted (row, col) pairs in acceptance order.
    """
    best_cols = distances.argmin(axis=1)
    order = distances.min(axis=1).argsort(kind="stable")

    used_rows: Set[int] = set()
    used_cols: Set[int] = set()
    matches: List[Tuple[int, int]] = []

    for row in order:
        row = int(row)
        col = int(best_cols[row])

        # If we have already used this row or column, skip it
        if row in used_rows or col in used_cols:
            continue

        matches.append((row, col))
        used_rows.add(row)
        used_cols.add(col)

    return matches


class CentroidTracker(BaseTracker):
    """
    Centroid-based multi-object tracker.

    Logic:
      - Every detection is reduced to its box centroid.
      - Existing objects are matched to new centroids greedily by
        Euclidean distance (see greedy_match).
      - Objects unmatched for more than max_disappeared_frames
        consecutive frames are deregistered; their ids are never reused.
      - Leftover centroids become new objects, but only when the frame
        has more detections than tracked objects.
    """

    def __init__(self, max_disappeared_frames: int = 30):
        self.max_disappeared_frames = max_disappeared_frames

        self._tracks: Dict[int, TrackRecord] = {}   # object_id -> record
        self._next_id: int = 0

    @property
    def next_object_id(self) -> int:
        return self._next_id

    @property
    def tracks(self) -> Mapping[int, TrackRecord]:
        return MappingProxyType(self._tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    def objects(self) -> Mapping[int, Centroid]:
        """
        Read-only snapshot of object id -> last known centroid.
        """
        return MappingProxyType(
            {object_id: track.centroid for object_id, track in self._tracks.items()}
        )

    def register(self, centroid: Centroid) -> int:
        if not (math.isfinite(centroid.x) and math.isfinite(centroid.y)):
            raise InvalidDetectionError(f"Cannot register non-finite centroid {tuple(centroid)}")

        object_id = self._next_id
        self._tracks[object_id] = TrackRecord(object_id=object_id, centroid=centroid)
        self._next_id += 1
        logger.debug("Registered object %d at (%.1f, %.1f)", object_id, centroid.x, centroid.y)
        return object_id

    def deregister(self, object_id: int) -> None:
        del self._tracks[object_id]
        logger.debug("Deregistered object %d", object_id)

    def _mark_disappeared(self, object_id: int) -> None:
        track = self._tracks[object_id]
        track.disappeared += 1

        # If an object has been missing for too long, deregister it
        if track.disappeared > self.max_disappeared_frames:
            self.deregister(object_id)

    def update(self, detections: Sequence[BoundingBox]) -> Mapping[int, Centroid]:
        # No detections: every tracked object ages by one frame
        if len(detections) == 0:
            for object_id in list(self._tracks):
                self._mark_disappeared(object_id)
            return self.objects()

        input_centroids = np.array([det.centroid() for det in detections], dtype=float)
        if not np.isfinite(input_centroids).all():
            raise InvalidDetectionError(
                "Detections must have finite coordinates, got "
                f"{[tuple(c) for c in input_centroids.tolist()]}"
            )

        # Not tracking anything yet: register all new detections
        if not self._tracks:
            for cx, cy in input_centroids.tolist():
                self.register(Centroid(cx, cy))
            return self.objects()

        # --- Match existing objects to new detections ---
        object_ids = list(self._tracks)
        object_centroids = np.array(
            [self._tracks[object_id].centroid for object_id in object_ids], dtype=float
        )

        # D[i, j] = distance between object i and detection j
        distances = np.linalg.norm(
            object_centroids[:, np.newaxis, :] - input_centroids[np.newaxis, :, :],
            axis=2,
        )

        used_rows: Set[int] = set()
        used_cols: Set[int] = set()
        for row, col in greedy_match(distances):
            track = self._tracks[object_ids[row]]
            cx, cy = input_centroids[col].tolist()
            track.centroid = Centroid(cx, cy)
            track.disappeared = 0
            used_rows.add(row)
            used_cols.add(col)

        unused_rows = [row for row in range(len(object_ids)) if row not in used_rows]
        unused_cols = [col for col in range(len(input_centroids)) if col not in used_cols]

        # Only one side is handled per frame: aging when objects >= detections,
        # registration otherwise.
        if len(object_ids) >= len(input_centroids):
            for row in unused_rows:
                self._mark_disappeared(object_ids[row])
        else:
            for col in unused_cols:
                cx, cy = input_centroids[col].tolist()
                self.register(Centroid(cx, cy))

        return self.objects()
