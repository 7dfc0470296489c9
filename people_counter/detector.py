import logging
from pathlib import Path
from typing import List, Protocol

import numpy as np

from ultralytics import YOLO

from people_counter.config import DetectionConfig
from people_counter.data_types import BoundingBox

logger = logging.getLogger(__name__)


class Detector(Protocol):
    """
    Anything that turns a frame into person boxes.
    """

    def produce_detections(self, frame: np.ndarray) -> List[BoundingBox]:
        ...


class DummyDetector:
    """
    Placeholder detector.
    Returns no detections.
    Lets you build and test the pipeline before integrating YOLO.
    """

    def produce_detections(self, frame: np.ndarray) -> List[BoundingBox]:
        return []


class YoloDetector:
    """
    YOLOv8-based person detector using the ultralytics package.

    Behavior:
      - If a custom weights file exists at DetectionConfig.model_path, use it.
      - Otherwise, fall back to DetectionConfig.fallback_model (pretrained
        COCO weights, downloaded by ultralytics on first use).
      - Only boxes of person_class_id above confidence_threshold are kept.
    """

    def __init__(self, config: DetectionConfig):
        self.config = config

        weights_path = Path(self.config.model_path)

        if weights_path.is_file():
            self.model = YOLO(str(weights_path))
        else:
            logger.warning(
                "Weights not found at %s, using %s", weights_path, self.config.fallback_model
            )
            self.model = YOLO(self.config.fallback_model)

    def produce_detections(self, frame: np.ndarray) -> List[BoundingBox]:
        """
        Run YOLO detection on a single BGR frame.
        Returns top-left BoundingBoxes filtered by class and confidence.
        """
        results = self.model(
            frame,
            conf=self.config.confidence_threshold,
            classes=[self.config.person_class_id],
            device=self.config.device,
            verbose=False,
        )[0]

        detections: List[BoundingBox] = []

        if results.boxes is None:
            return detections

        # Each box in results.boxes has xyxy, conf, cls
        for box in results.boxes:
            score = float(box.conf[0].item())
            class_id = int(box.cls[0].item())
            if class_id != self.config.person_class_id or score < self.config.confidence_threshold:
                continue

            # Bounding box coordinates in absolute pixels (x1, y1, x2, y2)
            x1, y1, x2, y2 = box.xyxy[0].tolist()

            detections.append(
                BoundingBox(
                    x=float(x1),
                    y=float(y1),
                    width=float(x2 - x1),
                    height=float(y2 - y1),
                    confidence=score,
                )
            )

        return detections
