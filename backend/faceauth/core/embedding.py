"""Face embedding extraction.

The extractor owns one loaded embedding model for the lifetime of a session.
Loading is expensive, so the model is read once from a fixed path and reused
for every descriptor. Inference calls against the model are serialized.
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Callable, Optional

import cv2
import numpy as np
from typing_extensions import Protocol

from ..models.types import Descriptor
from ..errors import DescriptorError, ModelNotReadyError

# Configure logging
logger = logging.getLogger(__name__)


class EmbeddingModel(Protocol):
    """Anything that maps a normalized batch to a batch of embeddings."""

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        ...


class OpenCVEmbeddingModel:
    """Embedding network loaded through OpenCV's DNN module.

    Accepts any format ``cv2.dnn.readNet`` understands (ONNX, TensorFlow,
    Caffe, Torch). The network input is fed as-is, NHWC float32 in [0, 1].
    """

    def __init__(self, model_path: str):
        path = Path(model_path)
        if not path.is_file():
            raise FileNotFoundError(f"Embedding model not found: {model_path}")
        self.model_path = str(path)
        self.net = cv2.dnn.readNet(self.model_path)

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        self.net.setInput(tensor)
        return self.net.forward()


class EmbeddingExtractor:
    """Turns normalized tensors into descriptors using one shared model."""

    def __init__(
        self,
        model_path: str,
        model_factory: Callable[[str], EmbeddingModel] = OpenCVEmbeddingModel,
    ):
        self.model_path = model_path
        self._model_factory = model_factory
        self._model: Optional[EmbeddingModel] = None
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._model is not None

    def load(self) -> EmbeddingModel:
        """Load the model if it is not loaded yet.

        Raises:
            ModelNotReadyError: If the model file cannot be loaded.
        """
        if self._model is not None:
            return self._model

        logger.info(f"Loading embedding model from {self.model_path}...")
        try:
            self._model = self._model_factory(self.model_path)
        except Exception as e:
            raise ModelNotReadyError(f"Failed to load embedding model: {str(e)}")
        logger.info("Embedding model loaded")
        return self._model

    def unload(self) -> None:
        self._model = None

    def _predict(self, model: EmbeddingModel, tensor: np.ndarray) -> np.ndarray:
        # Held in the worker thread so a cancelled caller cannot release it early
        with self._lock:
            return model.predict(tensor)

    async def extract(self, tensor: np.ndarray) -> Descriptor:
        """Run inference on a batch of one and return its descriptor.

        Args:
            tensor: Normalized input of shape (1, 160, 160, 3).

        Returns:
            Descriptor of the single batch item.

        Raises:
            ModelNotReadyError: If the model has not finished loading.
            DescriptorError: If the model output is empty or not finite.
        """
        model = self._model
        if model is None:
            raise ModelNotReadyError("Embedding model not loaded")

        try:
            output = await asyncio.to_thread(self._predict, model, tensor)
        except Exception as e:
            raise DescriptorError(f"Embedding inference failed: {str(e)}")

        try:
            batch = np.asarray(output, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise DescriptorError(f"Embedding output is not numeric: {str(e)}")
        if batch.ndim == 0 or batch.shape[0] == 0:
            raise DescriptorError("Embedding model returned an empty batch")

        values = batch[0].reshape(-1)
        del output, batch
        if values.size == 0:
            raise DescriptorError("Embedding model returned an empty descriptor")
        if not np.all(np.isfinite(values)):
            raise DescriptorError("Embedding model returned non-finite values")

        return tuple(float(v) for v in values)
