import logging
import sqlite3

import cv2
import numpy as np
import pytest

from people_counter import main as main_module
from people_counter.config import PipelineConfig, StorageConfig
from people_counter.data_types import BoundingBox
from people_counter.detector import DummyDetector
from people_counter.errors import VideoSourceError
from people_counter.logger import setup_logger
from people_counter.main import _parse_source, run
from people_counter.sinks import SQLiteEventSink

WIDTH, HEIGHT = 64, 48


class WalkingDetector:
    """One person whose centroid moves down 10 px per frame from y=5."""

    def __init__(self):
        self.calls = 0

    def produce_detections(self, frame):
        cy = 5 + 10 * self.calls
        self.calls += 1
        return [BoundingBox(27, cy - 5, 10, 10, 0.9)]


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def write_clip(path, n_frames=6):
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (WIDTH, HEIGHT))
    for _ in range(n_frames):
        writer.write(np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8))
    writer.release()
    return path


def make_config(tmp_path, csv=True):
    storage = StorageConfig(
        db_path=tmp_path / "events.db",
        csv_path=tmp_path / "events.csv" if csv else None,
    )
    return PipelineConfig(storage=storage)


def test_parse_source():
    assert _parse_source(None) is None
    assert _parse_source("0") == 0
    assert _parse_source("clips/door.mp4") == "clips/door.mp4"


def test_run_fails_on_missing_video(tmp_path):
    with pytest.raises(VideoSourceError):
        run(
            make_config(tmp_path),
            video_source=str(tmp_path / "missing.mp4"),
            display=False,
            detector=DummyDetector(),
        )


def test_run_counts_entry_and_stops_at_max_frames(tmp_path):
    clip = write_clip(tmp_path / "clip.avi")
    detector = WalkingDetector()

    counter = run(
        make_config(tmp_path),
        video_source=str(clip),
        display=False,
        max_frames=4,
        detector=detector,
    )

    # half of the 48 px frame
    assert counter.line_y == 24
    assert detector.calls == 4
    # centroid y: 5, 15, 25, 35 -> crosses between frame 1 and frame 2
    assert counter.entry_count == 1
    assert counter.exit_count == 0

    conn = sqlite3.connect(str(tmp_path / "events.db"))
    rows = conn.execute("SELECT event_type, person_id, frame_id FROM entry_logs").fetchall()
    conn.close()
    assert rows == [("entry", 0, 2)]
    assert (tmp_path / "events.csv").read_text(encoding="utf-8").count("entry") == 1


def test_run_with_no_detections(tmp_path):
    clip = write_clip(tmp_path / "clip.avi", n_frames=3)

    counter = run(make_config(tmp_path, csv=False), video_source=str(clip), display=False,
                  detector=DummyDetector())

    assert counter.entry_count == 0
    assert counter.exit_count == 0


def test_run_closes_database_when_csv_path_is_unusable(tmp_path, monkeypatch):
    closed = []

    class TrackingSQLiteSink(SQLiteEventSink):
        def close(self):
            closed.append(self.db_path)
            super().close()

    monkeypatch.setattr(main_module, "SQLiteEventSink", TrackingSQLiteSink)
    clip = write_clip(tmp_path / "clip.avi", n_frames=2)
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("", encoding="utf-8")
    config = PipelineConfig(
        storage=StorageConfig(db_path=tmp_path / "events.db", csv_path=blocker / "events.csv")
    )

    with pytest.raises(OSError):
        run(config, video_source=str(clip), display=False, detector=DummyDetector())

    assert closed == [tmp_path / "events.db"]


def test_final_totals_reach_package_log_handler(tmp_path):
    package_logger = setup_logger(name="people_counter", level="INFO")
    handler = ListHandler()
    package_logger.addHandler(handler)
    try:
        clip = write_clip(tmp_path / "clip.avi")
        run(make_config(tmp_path), video_source=str(clip), display=False,
            max_frames=4, detector=WalkingDetector())
    finally:
        package_logger.removeHandler(handler)

    assert main_module.logger.name == "people_counter.main"
    messages = [r.getMessage() for r in handler.records if r.name == "people_counter.main"]
    assert "Processed 4 frames. In: 1 | Out: 0" in messages
    assert any(m.startswith("Counting line at y=24") for m in messages)
