"""
Input/output helpers: reading video frames and persisting averages.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import cv2
import numpy as np

from .config import VideoConfig
from .exceptions import SourceOpenError


logger = logging.getLogger(__name__)


class VideoReader:
    """
    Sequential frame reader backed by OpenCV.

    Use as a context manager so the capture is always released:

        >>> with VideoReader("clip.mp4") as reader:
        ...     frame = reader.next_frame()
    """

    def __init__(self, path: Union[str, Path], config: Optional[VideoConfig] = None):
        self.path = Path(path)
        self._config = config or VideoConfig()
        self._capture: Optional[cv2.VideoCapture] = None
        self._frames_read = 0
        self._total_frames = 0

    def open(self) -> "VideoReader":
        """Open the underlying capture. Raises SourceOpenError on failure."""
        if self._capture is not None:
            return self

        if not self.path.is_file():
            raise SourceOpenError(f"Video file not found: {self.path}")

        capture = cv2.VideoCapture(str(self.path))
        if not capture.isOpened():
            capture.release()
            raise SourceOpenError(f"Could not open video file: {self.path}")

        self._capture = capture
        self._frames_read = 0
        self._total_frames = int(capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        if self._config.max_frames is not None and self._total_frames > 0:
            self._total_frames = min(self._total_frames, self._config.max_frames)

        logger.debug(f"Opened {self.path.name}: {self._total_frames} frames")
        return self

    def next_frame(self) -> Optional[np.ndarray]:
        """Return the next BGR frame, or None at end of stream."""
        if self._capture is None:
            raise SourceOpenError(f"Video source is not open: {self.path}")

        if self._config.max_frames is not None and self._frames_read >= self._config.max_frames:
            return None

        ok, frame = self._capture.read()
        if not ok:
            return None

        self._frames_read += 1
        return frame

    @property
    def current_frame_index(self) -> int:
        """Zero-based index of the last frame returned (-1 before the first)."""
        return self._frames_read - 1

    @property
    def total_frame_count(self) -> int:
        """Frame count reported by the container (0 if unknown)."""
        return self._total_frames

    def close(self) -> None:
        """Release the capture. Safe to call more than once."""
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def __enter__(self) -> "VideoReader":
        return self.open()

    def __exit__(self, *args) -> None:
        self.close()


def write_values(
    values: Iterable[float],
    destination: Union[str, Path],
    separator: str = "\n",
    append: bool = True,
) -> Path:
    """
    Write real numbers to a text file, each followed by ``separator``.

    The file (and its parent directory) is created if absent. With
    ``append=False`` any existing content is replaced.

    Returns:
        Path of the written file
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    values = [float(v) for v in values]
    with open(destination, "a" if append else "w") as f:
        for value in values:
            f.write(f"{value!r}{separator}")

    logger.info(f"Saved {len(values)} values to {destination}")
    return destination


def read_values(source: Union[str, Path], separator: str = "\n") -> List[float]:
    """Read back numbers written by ``write_values``."""
    with open(source, encoding="utf-8") as f:
        content = f.read()
    return [float(token) for token in content.split(separator) if token.strip()]
