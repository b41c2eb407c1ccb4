"""
Object detection backends.

The evaluation loop only needs ``detect(frame) -> List[Detection]``;
``YoloDetector`` wraps an ultralytics YOLO checkpoint behind that
interface and is constructed once per run.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

import numpy as np
from ultralytics import YOLO

from .config import DetectorConfig
from .exceptions import ModelInitializationError


logger = logging.getLogger(__name__)


@dataclass
class BoundingBox:
    """
    Axis-aligned bounding box in image pixel coordinates.
    (x1, y1) = top-left, (x2, y2) = bottom-right
    """
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass
class Detection:
    """Single object found by the detector."""
    box: BoundingBox
    score: float
    class_id: int = 0


class BaseDetector(ABC):
    """
    Abstract interface for all detectors.

    Implementations must be stateless across calls so one instance can
    be shared by every video of a run.
    """

    @abstractmethod
    def detect(self, frame: np.ndarray) -> List[Detection]:
        """Run detection on a single BGR frame."""
        raise NotImplementedError


class YoloDetector(BaseDetector):
    """
    YOLO detector using the ultralytics package.

    Args:
        model_path: Path to trained weights (.pt file)
        config: Inference thresholds and device

    Raises:
        ModelInitializationError: if the weights are missing or cannot be loaded
    """

    def __init__(self, model_path: Union[str, Path], config: DetectorConfig):
        self.model_path = Path(model_path)
        self.config = config

        if not self.model_path.is_file():
            raise ModelInitializationError(f"Model weights not found: {self.model_path}")

        try:
            self.model = YOLO(str(self.model_path))
            self.device = config.resolve_device()
        except Exception as e:
            raise ModelInitializationError(
                f"Failed to load model {self.model_path}: {e}"
            ) from e

        logger.info(f"Loaded detector {self.model_path.name} on {self.device}")

    def detect(self, frame: np.ndarray) -> List[Detection]:
        results = self.model(
            frame,
            conf=self.config.confidence_threshold,
            iou=self.config.iou_threshold,
            imgsz=self.config.image_size,
            max_det=self.config.max_detections,
            device=self.device,
            verbose=False,
        )[0]

        detections: List[Detection] = []
        if results.boxes is None:
            return detections

        for box in results.boxes:
            x1, y1, x2, y2 = box.xyxy[0].tolist()
            detections.append(
                Detection(
                    box=BoundingBox(x1=float(x1), y1=float(y1), x2=float(x2), y2=float(y2)),
                    score=float(box.conf[0].item()),
                    class_id=int(box.cls[0].item()),
                )
            )

        return detections
