# Event sinks: where entry / exit events end up

import csv
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

from people_counter.data_types import EVENT_TYPES

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """
    Anything that can record a crossing event.
    """

    def notify(self, event_type: str, object_id: int, frame_id: Optional[int] = None) -> None:
        ...


def _check_event_type(event_type: str) -> None:
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown event type {event_type!r}, expected one of {EVENT_TYPES}")


class SQLiteEventSink:
    """
    Stores events in a SQLite table entry_logs. The table is created on
    construction when missing; the timestamp is filled in by SQLite.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS entry_logs (
                log_id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                event_type TEXT NOT NULL,
                person_id INTEGER NOT NULL,
                frame_id INTEGER
            )
            """
        )
        self._conn.commit()
        logger.info("Logging events to %s", self.db_path)

    def notify(self, event_type: str, object_id: int, frame_id: Optional[int] = None) -> None:
        _check_event_type(event_type)
        with self._conn:
            self._conn.execute(
                "INSERT INTO entry_logs (event_type, person_id, frame_id) VALUES (?, ?, ?)",
                (event_type, object_id, frame_id),
            )

    def event_counts(self) -> Dict[str, int]:
        cur = self._conn.execute("SELECT event_type, COUNT(*) FROM entry_logs GROUP BY event_type")
        return dict(cur.fetchall())

    def close(self) -> None:
        self._conn.close()


class CsvEventSink:
    """
    Appends one row per event: timestamp,event_type,person_id,frame_id.
    """

    FIELDNAMES = ["timestamp", "event_type", "person_id", "frame_id"]

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists() or self.path.stat().st_size == 0:
            with self.path.open("w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(self.FIELDNAMES)

    def notify(self, event_type: str, object_id: int, frame_id: Optional[int] = None) -> None:
        _check_event_type(event_type)
        row = [datetime.now().isoformat(timespec="seconds"), event_type, object_id, frame_id]
        with self.path.open("a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(row)


class MultiEventSink:
    """
    Forwards every event to several sinks. One failing sink does not stop
    the others from receiving the event.
    """

    def __init__(self, sinks: Iterable[EventSink]):
        self.sinks: List[EventSink] = list(sinks)

    def notify(self, event_type: str, object_id: int, frame_id: Optional[int] = None) -> None:
        for sink in self.sinks:
            try:
                sink.notify(event_type, object_id, frame_id=frame_id)
            except Exception:
                logger.exception("%s failed to record %s for object %d",
                                 type(sink).__name__, event_type, object_id)
