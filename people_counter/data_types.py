# Core data structures (boxes, centroids, events, counts)

from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional

ENTRY = "entry"
EXIT = "exit"
EVENT_TYPES = (ENTRY, EXIT)


class Centroid(NamedTuple):
    """
    Center point of a bounding box in image pixel coordinates.
    """
    x: float
    y: float


# box coordinates
@dataclass(frozen=True)
class BoundingBox:
    """
    Single detection output by the detector for one object.
    (x, y) = top-left corner, sizes in pixels.
    """
    x: float
    y: float
    width: float
    height: float
    confidence: float = 1.0

    def centroid(self) -> Centroid:
        return Centroid(self.x + self.width / 2.0, self.y + self.height / 2.0)

    def to_xyxy(self):
        """
        Corner form (x1, y1, x2, y2) as ints, for drawing.
        """
        return (
            int(self.x),
            int(self.y),
            int(self.x + self.width),
            int(self.y + self.height),
        )


@dataclass
class TrackRecord:
    """
    A tracked object: its identity, last known centroid and how many
    consecutive frames it went without a matching detection.
    """
    object_id: int
    centroid: Centroid
    disappeared: int = 0


@dataclass(frozen=True)
class CountEvent:
    """
    One crossing of the virtual line by one identity.
    """
    event_type: str     # "entry" or "exit"
    object_id: int
    frame_id: Optional[int] = None


@dataclass
class FrameResult:
    """
    Everything the pipeline produced for a single frame.
    """
    frame_id: int
    detections: List[BoundingBox]
    tracked: Dict[int, Centroid]
    events: List[CountEvent]
    entry_count: int
    exit_count: int
