"""
Configuration for the detection accuracy evaluation pipeline.

All run-time switches live in nested dataclasses so a run can be
described by a single object (or YAML file) passed to the orchestrator.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml


ESCAPE_KEY = 27


@dataclass
class DetectorConfig:
    """Settings for the YOLO inference collaborator."""

    device: str = "auto"  # "auto", "cpu", "cuda", "cuda:0", ...
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    image_size: int = 416
    max_detections: int = 100

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}"
            )
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError(f"iou_threshold must be in [0, 1], got {self.iou_threshold}")
        if self.image_size <= 0:
            raise ValueError(f"image_size must be positive, got {self.image_size}")
        if self.max_detections <= 0:
            raise ValueError(f"max_detections must be positive, got {self.max_detections}")

    def resolve_device(self) -> str:
        """Return a concrete torch device string."""
        if self.device != "auto":
            return self.device

        import torch

        return "cuda" if torch.cuda.is_available() else "cpu"


@dataclass
class VideoConfig:
    """Settings for reading video sources."""

    max_frames: Optional[int] = None  # None = read the whole video
    supported_formats: Tuple[str, ...] = (".mp4", ".avi", ".mov", ".mkv")

    def __post_init__(self):
        if self.max_frames is not None and self.max_frames <= 0:
            raise ValueError(f"max_frames must be positive, got {self.max_frames}")
        self.supported_formats = tuple(self.supported_formats)


@dataclass
class DisplayConfig:
    """Settings for the live evaluation window."""

    window_name: str = "Evaluation on video"
    key_poll_ms: int = 10
    display_width: int = 416
    display_height: int = 416
    escape_keys: Tuple[int, ...] = (ESCAPE_KEY,)
    abort_keys: Tuple[int, ...] = (ord("Q"),)

    def __post_init__(self):
        if self.key_poll_ms <= 0:
            raise ValueError(f"key_poll_ms must be positive, got {self.key_poll_ms}")
        if self.display_width <= 0 or self.display_height <= 0:
            raise ValueError("display size must be positive")
        self.escape_keys = tuple(self.escape_keys)
        self.abort_keys = tuple(self.abort_keys)
        if set(self.escape_keys) & set(self.abort_keys):
            raise ValueError("escape_keys and abort_keys must not overlap")


@dataclass
class EvaluationConfig:
    """Switches for a batch evaluation run."""

    persist_results: bool = True
    show_live_visualization: bool = False
    resume_if_complete: bool = True
    penalize_extra_detections: bool = False
    append_results: bool = True
    show_progress: bool = True
    output_extension: str = ".eval"

    def __post_init__(self):
        if not self.output_extension.startswith("."):
            self.output_extension = f".{self.output_extension}"


@dataclass
class PipelineConfig:
    """Top-level configuration passed into the batch evaluator."""

    detector: DetectorConfig = field(default_factory=DetectorConfig)
    video: VideoConfig = field(default_factory=VideoConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (YAML friendly)."""
        data = asdict(self)
        # Tuples are not safe_dump friendly
        data["video"]["supported_formats"] = list(self.video.supported_formats)
        data["display"]["escape_keys"] = list(self.display.escape_keys)
        data["display"]["abort_keys"] = list(self.display.abort_keys)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """Build a config from a (possibly partial) dictionary."""
        data = dict(data or {})
        return cls(
            detector=DetectorConfig(**data.pop("detector", None) or {}),
            video=VideoConfig(**data.pop("video", None) or {}),
            display=DisplayConfig(**data.pop("display", None) or {}),
            evaluation=EvaluationConfig(**data.pop("evaluation", None) or {}),
            **data,
        )

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "PipelineConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            return cls.from_dict(yaml.safe_load(f))


def get_default_config() -> PipelineConfig:
    """Return the default pipeline configuration."""
    return PipelineConfig()
