# End-to-end people counting script

import argparse
import logging
from typing import Optional, Union

import cv2

from people_counter.config import PipelineConfig, load_config
from people_counter.counter import LineCounter
from people_counter.detector import Detector, YoloDetector
from people_counter.errors import VideoSourceError
from people_counter.logger import setup_logger
from people_counter.overlay import draw_overlay
from people_counter.pipeline import CountingPipeline
from people_counter.sinks import CsvEventSink, MultiEventSink, SQLiteEventSink
from people_counter.tracker import CentroidTracker

# not __name__, which is "__main__" under python -m
logger = logging.getLogger("people_counter.main")

WINDOW_NAME = "Automated People Counter"


def _parse_source(value: Optional[str]) -> Optional[Union[int, str]]:
    # If argument is a digit, treat it as camera index; else as path
    if value is None:
        return None
    return int(value) if value.isdigit() else value


def run(
    config: PipelineConfig,
    video_source=None,
    display: bool = True,
    max_frames: Optional[int] = None,
    detector: Optional[Detector] = None,
) -> LineCounter:
    """
    End-to-end loop:
      frame -> detector -> tracker -> counter -> sink / overlay -> display

    detector defaults to a YoloDetector built from config.detection.

    Returns the counter so callers can read the final totals.
    """
    if video_source is None:
        video_source = config.video.source

    # Load weights before opening anything that needs closing
    if detector is None:
        detector = YoloDetector(config.detection)

    cap = cv2.VideoCapture(video_source)
    if not cap.isOpened():
        cap.release()
        raise VideoSourceError(f"Could not open video source: {video_source}")

    tracker = CentroidTracker(max_disappeared_frames=config.tracking.max_disappeared_frames)
    db_sink: Optional[SQLiteEventSink] = None
    counter: Optional[LineCounter] = None
    pipeline: Optional[CountingPipeline] = None

    frame_id = 0
    try:
        db_sink = SQLiteEventSink(config.storage.db_path)
        sinks = [db_sink]
        if config.storage.csv_path is not None:
            sinks.append(CsvEventSink(config.storage.csv_path))

        while True:
            ret, frame = cap.read()
            if not ret:
                break

            if config.video.frame_width and config.video.frame_height:
                frame = cv2.resize(frame, (config.video.frame_width, config.video.frame_height))

            # The line position is only known once the first frame is in
            if counter is None:
                line_y = config.counting.resolve_line_y(frame.shape[0])
                counter = LineCounter(line_y, MultiEventSink(sinks))
                pipeline = CountingPipeline(detector, tracker, counter)
                logger.info("Counting line at y=%d (frame %dx%d)", line_y, frame.shape[1], frame.shape[0])

            result = pipeline.step(frame, frame_id)

            if display:
                draw_overlay(frame, result, counter.line_y)
                cv2.imshow(WINDOW_NAME, frame)
                key = cv2.waitKey(1) & 0xFF
                if key == 27 or key == ord("q"):  # ESC or q
                    logger.info("Quit requested")
                    break

            frame_id += 1
            if max_frames is not None and frame_id >= max_frames:
                break
    finally:
        cap.release()
        if display:
            cv2.destroyAllWindows()
        if db_sink is not None:
            db_sink.close()

    if counter is None:
        logger.warning("No frames read from %s", video_source)
        counter = LineCounter(0)

    logger.info(
        "Processed %d frames. In: %d | Out: %d",
        frame_id, counter.entry_count, counter.exit_count,
    )
    return counter


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Count people crossing a virtual line")
    parser.add_argument(
        "--video",
        type=str,
        default=None,
        help="Video file path or camera index (e.g. 0 for default webcam)",
    )
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--no-display", action="store_true", help="Do not open a window")
    parser.add_argument("--max-frames", type=int, default=None, help="Stop after N frames")
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    setup_logger(log_dir=cfg.logging.log_dir, level=cfg.logging.level)

    run(
        cfg,
        video_source=_parse_source(args.video),
        display=not args.no_display,
        max_frames=args.max_frames,
    )


if __name__ == "__main__":
    main()
