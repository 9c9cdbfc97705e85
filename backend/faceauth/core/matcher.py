"""Two-image face matching.

Compares any two images against each other with the same preprocessing,
embedding model and threshold the authentication flow uses.
"""

import logging

from ..errors import DescriptorError, FaceAuthError, ModelNotReadyError
from ..models.types import Descriptor, ImageFrame, MatchDecision
from ..utils.image import normalize_image
from .comparator import compare, decide
from .embedding import EmbeddingExtractor

# Configure logging
logger = logging.getLogger(__name__)


async def describe(extractor: EmbeddingExtractor, frame: ImageFrame, label: str) -> Descriptor:
    """Normalize a frame and extract its descriptor."""
    tensor = normalize_image(frame)
    try:
        descriptor = await extractor.extract(tensor)
    finally:
        del tensor
    if not descriptor:
        raise DescriptorError(f"Failed to generate a face descriptor for the {label}.")
    return descriptor


class ImageMatcher:
    """Decides whether two images show the same face."""

    def __init__(self, extractor: EmbeddingExtractor, threshold: float):
        self.extractor = extractor
        self.threshold = threshold

    async def match(self, reference: ImageFrame, actual: ImageFrame) -> MatchDecision:
        """Compare two frames.

        Raises:
            ModelNotReadyError: If the embedding model is not loaded.
        """
        try:
            reference_descriptor = await describe(self.extractor, reference, "reference image")
            actual_descriptor = await describe(self.extractor, actual, "actual image")
        except ModelNotReadyError:
            raise
        except FaceAuthError as e:
            logger.warning(f"Match rejected ({type(e).__name__}): {str(e)}")
            return MatchDecision.rejected(str(e), error_code=type(e).__name__)

        d = compare(reference_descriptor, actual_descriptor)
        if not decide(d, self.threshold):
            logger.info(f"Images do not match. Distance: {d:.4f}")
            return MatchDecision.rejected(
                "Images do not match.", distance=d, error_code="NoMatch"
            )
        logger.info(f"Images match! Distance: {d:.4f}")
        return MatchDecision.accepted(d)
