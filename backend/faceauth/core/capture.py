"""Live frame sources."""

import logging
import threading
from typing import Optional

import cv2
from typing_extensions import Protocol

from ..models.types import ImageFrame
from ..utils.image import to_frame
from ..errors import CaptureError

# Configure logging
logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Produces frames with known width and height."""

    def read(self) -> ImageFrame:
        ...

    def release(self) -> None:
        ...


class WebcamSource:
    """Frames from a local camera via ``cv2.VideoCapture``.

    Reads are serialized so the gate poller and an authentication attempt
    never grab from the device at the same time.
    """

    def __init__(self, index: int = 0):
        self.index = index
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    def open(self) -> "WebcamSource":
        with self._lock:
            if self._cap is not None:
                return self
            cap = cv2.VideoCapture(self.index)
            if not cap.isOpened():
                cap.release()
                raise CaptureError(f"Failed to open camera {self.index}")
            self._cap = cap
        logger.info(f"Camera {self.index} opened")
        return self

    def read(self) -> ImageFrame:
        with self._lock:
            if self._cap is None:
                raise CaptureError("Camera is not open")
            ok, frame = self._cap.read()
        if not ok or frame is None:
            raise CaptureError("Failed to capture an image from the webcam.")
        return to_frame(frame)

    def release(self) -> None:
        with self._lock:
            cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.info(f"Camera {self.index} released")
