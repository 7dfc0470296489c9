import logging
from typing import TYPE_CHECKING

import numpy as np

from people_counter.counter import LineCounter
from people_counter.data_types import FrameResult
from people_counter.tracker import BaseTracker

if TYPE_CHECKING:
    from people_counter.detector import Detector

logger = logging.getLogger(__name__)


class CountingPipeline:
    """
    One frame at a time: detector -> tracker -> counter.
    """

    def __init__(self, detector: "Detector", tracker: BaseTracker, counter: LineCounter):
        self.detector = detector
        self.tracker = tracker
        self.counter = counter

    def step(self, frame: np.ndarray, frame_id: int) -> FrameResult:
        # 1) Detection
        detections = self.detector.produce_detections(frame)

        # 2) Tracking
        tracked = self.tracker.update(detections)

        # 3) Counting
        events = self.counter.update_count(tracked, frame_id=frame_id)

        logger.debug(
            "frame %d: %d detections, %d tracked, %d events",
            frame_id, len(detections), len(tracked), len(events),
        )

        return FrameResult(
            frame_id=frame_id,
            detections=list(detections),
            tracked=dict(tracked),
            events=events,
            entry_count=self.counter.entry_count,
            exit_count=self.counter.exit_count,
        )
