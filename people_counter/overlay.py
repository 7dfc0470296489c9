# Drawing bounding boxes, ids, the counting line and totals on frames

import cv2

from people_counter.data_types import FrameResult


def draw_overlay(frame, result: FrameResult, line_y: int):
    """
    Draw the counting line, tracked boxes with their ids, and the
    In / Out totals on the frame (in place).

    frame: numpy array (BGR)
    result: pipeline output for this frame
    line_y: pixel row of the horizontal counting line
    """

    h, w = frame.shape[:2]

    # ----- Draw horizontal counting line -----
    cv2.line(frame, (0, int(line_y)), (w, int(line_y)), (0, 255, 255), 2, cv2.LINE_AA)

    # ----- Draw tracks -----
    # The tracker only keeps centroids, so find the box whose centroid
    # is exactly the tracked one.
    for object_id, centroid in result.tracked.items():
        for det in result.detections:
            if det.centroid() != centroid:
                continue

            x1, y1, x2, y2 = det.to_xyxy()
            cv2.rectangle(frame, (x1, y1), (x2, y2), (0, 255, 0), 2)
            cv2.putText(
                frame,
                f"ID {object_id}",
                (x1, max(0, y1 - 10)),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.6,
                (0, 255, 0),
                2,
                cv2.LINE_AA,
            )
            break

        cv2.circle(frame, (int(centroid.x), int(centroid.y)), 4, (0, 255, 0), -1)

    # ----- Draw counts -----
    cv2.putText(
        frame,
        f"In: {result.entry_count} | Out: {result.exit_count}",
        (20, 40),
        cv2.FONT_HERSHEY_SIMPLEX,
        1.2,
        (255, 0, 0),
        3,
        cv2.LINE_AA,
    )
    return frame
