import numpy as np

from people_counter import detector as detector_module
from people_counter.config import DetectionConfig
from people_counter.data_types import BoundingBox
from people_counter.detector import DummyDetector, YoloDetector


class FakeBox:
    """Mimics one entry of ultralytics' results.boxes."""

    def __init__(self, xyxy, conf, cls):
        self.xyxy = np.array([xyxy], dtype=float)
        self.conf = np.array([conf], dtype=float)
        self.cls = np.array([cls], dtype=float)


class FakeResult:
    def __init__(self, boxes):
        self.boxes = boxes


class FakeYOLO:
    boxes = []

    def __init__(self, weights):
        self.weights = weights
        self.calls = []

    def __call__(self, frame, **kwargs):
        self.calls.append(kwargs)
        return [FakeResult(self.boxes)]


def make_detector(monkeypatch, tmp_path, boxes, **config):
    FakeYOLO.boxes = boxes
    monkeypatch.setattr(detector_module, "YOLO", FakeYOLO)
    return YoloDetector(DetectionConfig(model_path=tmp_path / "missing.pt", **config))


def test_dummy_detector_returns_nothing():
    assert DummyDetector().produce_detections(np.zeros((10, 10, 3), dtype=np.uint8)) == []


def test_falls_back_when_weights_missing(monkeypatch, tmp_path):
    det = make_detector(monkeypatch, tmp_path, [])

    assert det.model.weights == "yolov8n.pt"


def test_uses_existing_weights(monkeypatch, tmp_path):
    weights = tmp_path / "person.pt"
    weights.write_bytes(b"")
    monkeypatch.setattr(detector_module, "YOLO", FakeYOLO)

    det = YoloDetector(DetectionConfig(model_path=weights))

    assert det.model.weights == str(weights)


def test_keeps_confident_people_as_top_left_boxes(monkeypatch, tmp_path):
    boxes = [
        FakeBox([10, 20, 40, 100], 0.9, 0),     # person
        FakeBox([50, 50, 80, 90], 0.95, 2),     # car
        FakeBox([0, 0, 20, 20], 0.3, 0),        # person, too unsure
        FakeBox([100, 40, 130, 120], 0.5, 0),   # person, exactly at threshold
    ]
    det = make_detector(monkeypatch, tmp_path, boxes, confidence_threshold=0.5)

    detections = det.produce_detections(np.zeros((200, 200, 3), dtype=np.uint8))

    assert detections == [
        BoundingBox(x=10.0, y=20.0, width=30.0, height=80.0, confidence=0.9),
        BoundingBox(x=100.0, y=40.0, width=30.0, height=80.0, confidence=0.5),
    ]
    assert det.model.calls[0]["classes"] == [0]
    assert det.model.calls[0]["conf"] == 0.5


def test_no_boxes(monkeypatch, tmp_path):
    det = make_detector(monkeypatch, tmp_path, None)

    assert det.produce_detections(np.zeros((10, 10, 3), dtype=np.uint8)) == []
