# all configurations in one place

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from people_counter.errors import ConfigError

# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
MODELS_DIR = PROJECT_ROOT / "models"


@dataclass
class VideoConfig:
    source: Union[int, str] = 0  # 0 for webcam, or path to video file
    frame_width: Optional[int] = None   # None keeps the native size
    frame_height: Optional[int] = None


@dataclass
class DetectionConfig:
    model_path: Path = MODELS_DIR / "detector" / "yolo_person.pt"
    fallback_model: str = "yolov8n.pt"
    confidence_threshold: float = 0.5
    person_class_id: int = 0  # COCO "person"
    device: Optional[str] = None  # None lets ultralytics pick, or "cpu" / "cuda"


@dataclass
class TrackingConfig:
    max_disappeared_frames: int = 30  # frames an id may go unmatched


@dataclass
class CountingConfig:
    line_position: float = 0.5  # relative vertical position of virtual line (0-1)

    def resolve_line_y(self, frame_height: int) -> int:
        return int(frame_height * self.line_position)


@dataclass
class StorageConfig:
    db_path: Path = DATA_DIR / "entry_system.db"
    csv_path: Optional[Path] = None  # also append events to a CSV file


@dataclass
class LoggingConfig:
    log_dir: Path = DATA_DIR / "logs"
    level: str = "INFO"


@dataclass
class PipelineConfig:
    video: VideoConfig = field(default_factory=VideoConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    counting: CountingConfig = field(default_factory=CountingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_PATH_KEYS = {"model_path", "db_path", "csv_path", "log_dir"}


def _build_section(cls, name: str, values: Dict[str, Any]):
    if not isinstance(values, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{name}': {', '.join(unknown)}")

    kwargs = {}
    for key, value in values.items():
        if key in _PATH_KEYS and value is not None:
            value = Path(value)
        kwargs[key] = value
    return cls(**kwargs)


def _check_number(name: str, value: Any, integer: bool = False, optional: bool = False) -> None:
    if value is None and optional:
        return
    kinds = (int,) if integer else (int, float)
    # bool is an int subclass but never a valid setting here
    if isinstance(value, bool) or not isinstance(value, kinds):
        kind = "an integer" if integer else "a number"
        raise ConfigError(f"{name} must be {kind}, got {value!r}")


def validate_config(config: PipelineConfig) -> None:
    """
    Raise ConfigError when a value has the wrong type or is outside its
    allowed range.
    """
    _check_number("video.frame_width", config.video.frame_width, integer=True, optional=True)
    _check_number("video.frame_height", config.video.frame_height, integer=True, optional=True)
    _check_number("detection.confidence_threshold", config.detection.confidence_threshold)
    _check_number("detection.person_class_id", config.detection.person_class_id, integer=True)
    _check_number("tracking.max_disappeared_frames", config.tracking.max_disappeared_frames, integer=True)
    _check_number("counting.line_position", config.counting.line_position)

    if config.tracking.max_disappeared_frames < 0:
        raise ConfigError("tracking.max_disappeared_frames must be >= 0")
    if not 0.0 <= config.counting.line_position <= 1.0:
        raise ConfigError("counting.line_position must be within [0, 1]")
    if not 0.0 <= config.detection.confidence_threshold <= 1.0:
        raise ConfigError("detection.confidence_threshold must be within [0, 1]")


def load_config(path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """
    Load a PipelineConfig from a YAML file.

    Every section and key is optional; anything missing keeps its default.
    Without a path the defaults are returned as-is.
    """
    if path is None:
        return PipelineConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path.resolve()}")
    with config_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Top level of {config_path} must be a mapping")

    section_classes = {
        "video": VideoConfig,
        "detection": DetectionConfig,
        "tracking": TrackingConfig,
        "counting": CountingConfig,
        "storage": StorageConfig,
        "logging": LoggingConfig,
    }
    unknown = sorted(set(raw) - set(section_classes))
    if unknown:
        raise ConfigError(f"Unknown config section(s): {', '.join(unknown)}")

    kwargs = {
        name: _build_section(section_classes[name], name, values or {})
        for name, values in raw.items()
    }
    config = PipelineConfig(**kwargs)
    validate_config(config)
    return config
