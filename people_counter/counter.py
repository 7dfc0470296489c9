import logging
from typing import Dict, List, Mapping, Optional, Set

from people_counter.data_types import ENTRY, EXIT, Centroid, CountEvent
from people_counter.sinks import EventSink

logger = logging.getLogger(__name__)


class LineCounter:
    """
    Line-crossing counter for a HORIZONTAL counting line.

    Interpretation:
      - line_y is an absolute pixel row.
      - Moving down across the line (prev.y < line_y <= y) is an entry,
        moving up across it (prev.y > line_y >= y) is an exit.

    Behavior:
      - Uses per-object previous centroid to detect crossings.
      - Each object id fires at most one event in its lifetime; later
        crossings by the same id are ignored.
      - Events are forwarded to the sink. A failing sink is logged and
        never rolls back the counts.
    """

    def __init__(self, line_y: float, sink: Optional[EventSink] = None):
        self.line_y = line_y
        self.sink = sink

        self._entry_count: int = 0
        self._exit_count: int = 0

        # object_id -> last observed centroid
        self._position_history: Dict[int, Centroid] = {}
        # object ids that already produced their event
        self._counted_ids: Set[int] = set()

    @property
    def entry_count(self) -> int:
        return self._entry_count

    @property
    def exit_count(self) -> int:
        return self._exit_count

    def is_counted(self, object_id: int) -> bool:
        return object_id in self._counted_ids

    def _crossing(self, prev: Centroid, current: Centroid) -> Optional[str]:
        if prev.y < self.line_y <= current.y:
            return ENTRY
        if prev.y > self.line_y >= current.y:
            return EXIT
        return None

    def update_count(
        self, tracked: Mapping[int, Centroid], frame_id: Optional[int] = None
    ) -> List[CountEvent]:
        """
        Update counts from the tracker's id -> centroid mapping for one frame.

        frame_id is passed through to the events and the sink untouched.

        Returns:
            The events fired during this call, in mapping order.
        """
        events: List[CountEvent] = []

        for object_id, current in tracked.items():
            prev = self._position_history.get(object_id)

            # We can only determine a crossing if we have a previous position.
            if prev is not None and object_id not in self._counted_ids:
                event_type = self._crossing(prev, current)
                if event_type is not None:
                    if event_type == ENTRY:
                        self._entry_count += 1
                    else:
                        self._exit_count += 1
                    self._counted_ids.add(object_id)

                    event = CountEvent(event_type=event_type, object_id=object_id, frame_id=frame_id)
                    events.append(event)
                    logger.info("%s: object %d (frame %s)", event_type, object_id, frame_id)
                    self._notify(event)

            self._position_history[object_id] = current

        return events

    def _notify(self, event: CountEvent) -> None:
        if self.sink is None:
            return
        try:
            self.sink.notify(event.event_type, event.object_id, frame_id=event.frame_id)
        except Exception:
            logger.exception(
                "Event sink failed to record %s for object %d", event.event_type, event.object_id
            )
