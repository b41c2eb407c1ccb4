# Live evaluation window: detection boxes drawn over the cropped frame

from typing import List, Optional

import cv2
import numpy as np

from .config import DisplayConfig
from .detection import Detection


NO_KEY = -1


def draw_detections(frame: np.ndarray, detections: List[Detection]) -> np.ndarray:
    """
    Draw detection boxes on a copy of the frame.

    frame: numpy array (BGR), already cropped to the evaluated region
    detections: boxes in the frame's pixel coordinates
    """
    canvas = frame.copy()

    for det in detections:
        x1 = int(det.box.x1)
        y1 = int(det.box.y1)
        x2 = int(det.box.x2)
        y2 = int(det.box.y2)

        cv2.rectangle(canvas, (x1, y1), (x2, y2), (0, 0, 255), 1, cv2.LINE_AA)

    # ----- Draw count -----
    cv2.putText(
        canvas,
        f"detections: {len(detections)}",
        (10, 20),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        (0, 255, 255),
        1,
        cv2.LINE_AA,
    )

    return canvas


class LiveDisplay:
    """
    OpenCV window showing each evaluated frame with its detections.

    The window is created on the first ``show`` and destroyed by ``close``.
    """

    def __init__(self, config: Optional[DisplayConfig] = None):
        self.config = config or DisplayConfig()
        self._opened = False

    def show(self, frame: np.ndarray, detections: List[Detection]) -> None:
        canvas = draw_detections(frame, detections)
        canvas = cv2.resize(
            canvas,
            (self.config.display_width, self.config.display_height),
        )

        if not self._opened:
            cv2.namedWindow(self.config.window_name, cv2.WINDOW_AUTOSIZE)
            self._opened = True
        cv2.imshow(self.config.window_name, canvas)

    def poll_key(self, delay_ms: Optional[int] = None) -> int:
        """Wait up to ``delay_ms`` for a key press; NO_KEY if none."""
        key = cv2.waitKey(delay_ms or self.config.key_poll_ms)
        if key < 0:
            return NO_KEY
        return key & 0xFF

    def close(self) -> None:
        if self._opened:
            cv2.destroyWindow(self.config.window_name)
            # HighGUI only processes the destroy on the next event loop tick
            cv2.waitKey(1)
            self._opened = False
