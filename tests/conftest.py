from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

import cv2
import numpy as np
import pytest

from faceauth.config import Settings
from faceauth.core.embedding import EmbeddingExtractor
from faceauth.core.face_detection import FaceDetector
from faceauth.core.session import AuthSession
from faceauth.errors import CaptureError
from faceauth.models.types import ImageFrame


def solid_frame(value: int, width: int = 640, height: int = 480) -> ImageFrame:
    return ImageFrame(np.full((height, width, 3), value, dtype=np.uint8))


class FakeSource:
    """Frame source returning one fixed frame (or failing when None)."""

    def __init__(self, frame: Optional[ImageFrame] = None):
        self.frame = frame
        self.reads = 0
        self.opened = False
        self.released = False

    def open(self):
        self.opened = True
        return self

    def read(self) -> ImageFrame:
        self.reads += 1
        if self.frame is None:
            raise CaptureError("Failed to capture an image from the webcam.")
        return self.frame

    def release(self) -> None:
        self.released = True


class BrightnessModel:
    """Embedding model whose 4-d output is the mean pixel value times 100."""

    def __init__(self, dims: int = 4):
        self.dims = dims
        self.calls = 0

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        self.calls += 1
        return np.full((tensor.shape[0], self.dims), float(tensor.mean()) * 100.0)


class ConstantModel:
    def __init__(self, output):
        self.output = output

    def predict(self, tensor: np.ndarray):
        return self.output


def fake_locator(count: int) -> Callable[[np.ndarray], List[tuple]]:
    def locate(rgb_image: np.ndarray) -> List[tuple]:
        # (top, right, bottom, left)
        return [(10, 60 + 100 * i, 80, 10 + 100 * i) for i in range(count)]
    return locate


@pytest.fixture
def reference_image(tmp_path: Path) -> Path:
    path = tmp_path / "reference.png"
    cv2.imwrite(str(path), np.full((240, 320, 3), 255, dtype=np.uint8))
    return path


@pytest.fixture
def settings(reference_image: Path) -> Settings:
    return Settings(
        match_threshold=0.6,
        embedding_model_path="unused.onnx",
        reference_image_path=str(reference_image),
        reference_profile_id="3",
        auth_poll_interval=0.01,
        preview_poll_interval=0.01,
        manifest_url="https://example.invalid/model.json",
    )


def make_session(
    settings: Settings,
    frame: Optional[ImageFrame],
    faces: int = 1,
    model=None,
    mode: str = "authenticate",
) -> AuthSession:
    model = model if model is not None else BrightnessModel()
    extractor = EmbeddingExtractor(settings.embedding_model_path, model_factory=lambda path: model)
    detector = FaceDetector()
    detector.load(locate=fake_locator(faces))
    return AuthSession(settings, FakeSource(frame), extractor, detector, mode=mode)
