"""Face detection and the multi-face gate.

This module wraps the face detection model used on the live camera stream.
Detection only gates capture: an authentication attempt is blocked while two
or more faces are visible. Box positions are reported for overlays but never
affect the gate.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, List, Optional, Tuple

import cv2
import numpy as np

from ..models.types import Box, DetectionResult, ImageFrame
from ..errors import CaptureError, ModelNotReadyError
from .polling import PeriodicTask

# Configure logging
logger = logging.getLogger(__name__)

# (top, right, bottom, left) as returned by face_recognition
Location = Tuple[int, int, int, int]
LocateFaces = Callable[[np.ndarray], List[Location]]


class FaceDetector:
    """Detects face bounding boxes in frames."""

    def __init__(self, model: str = "hog", max_faces: int = 5):
        self.model = model
        self.max_faces = max_faces
        self._locate: Optional[LocateFaces] = None
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._locate is not None

    def load(self, locate: Optional[LocateFaces] = None) -> None:
        """Prepare the detector.

        Args:
            locate: Optional replacement for the face_recognition locator,
                taking an RGB image and returning (top, right, bottom, left)
                tuples.

        Raises:
            ModelNotReadyError: If face_recognition cannot be imported.
        """
        if locate is not None:
            self._locate = locate
            return
        if self._locate is not None:
            return

        try:
            import face_recognition
        except ImportError as e:
            raise ModelNotReadyError(f"Face detection model unavailable: {str(e)}")

        model = self.model

        def _locate(rgb_image: np.ndarray) -> List[Location]:
            return face_recognition.face_locations(rgb_image, model=model)

        self._locate = _locate
        logger.info(f"Face detector ready ({self.model})")

    def unload(self) -> None:
        self._locate = None

    def _detect(self, locate: LocateFaces, frame: ImageFrame) -> DetectionResult:
        # face_recognition expects RGB
        rgb_image = cv2.cvtColor(frame.pixels, cv2.COLOR_BGR2RGB)
        with self._lock:
            locations = locate(rgb_image)

        boxes: DetectionResult = []
        for (top, right, bottom, left) in locations[:self.max_faces]:
            boxes.append({
                'x': int(left),
                'y': int(top),
                'width': int(right - left),
                'height': int(bottom - top),
            })
        return boxes

    async def detect(self, frame: ImageFrame) -> DetectionResult:
        """Detect faces in a frame.

        Raises:
            ModelNotReadyError: If the detector has not been loaded.
        """
        locate = self._locate
        if locate is None:
            raise ModelNotReadyError("Face detection model not loaded")
        return await asyncio.to_thread(self._detect, locate, frame)


class MultiFaceGate:
    """Blocks capture when more than one face is present."""

    BLOCKING_COUNT = 2

    @staticmethod
    def evaluate(detections: DetectionResult) -> bool:
        """Return True (blocked) iff two or more faces were detected."""
        return len(detections) >= MultiFaceGate.BLOCKING_COUNT


class GatePoller:
    """Re-evaluates the multi-face gate against a live frame source."""

    def __init__(
        self,
        source: Any,
        detector: FaceDetector,
        interval: float,
        gate: Optional[MultiFaceGate] = None,
    ):
        self.source = source
        self.detector = detector
        self.gate = gate or MultiFaceGate()
        self.interval = interval
        self.detections: DetectionResult = []
        self.blocked = False
        self.evaluations = 0
        self._task: Optional[PeriodicTask] = None

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.running

    async def poll(self) -> None:
        """Run one detection cycle; skipped when no frame is ready."""
        if not self.detector.ready:
            return
        try:
            frame = await asyncio.to_thread(self.source.read)
        except CaptureError as e:
            logger.debug(f"Skipping gate cycle: {str(e)}")
            return

        detections = await self.detector.detect(frame)
        self.detections = detections
        self.blocked = self.gate.evaluate(detections)
        self.evaluations += 1
        if self.blocked:
            logger.info(f"Multi-face gate blocked: {len(detections)} faces")

    def start(self) -> PeriodicTask:
        if self._task is None or not self._task.running:
            self._task = PeriodicTask(self.interval, self.poll, name="gate-poller").start()
        return self._task

    async def stop(self) -> None:
        if self._task is not None:
            await self._task.cancel()
            self._task = None
