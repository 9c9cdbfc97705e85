"""Authentication attempt orchestration.

One attempt runs gate check, capture, probe extraction, reference
extraction and comparison in order. Every failure is converted into a
rejected ``MatchDecision`` with a human-readable reason, and the
orchestrator always ends an attempt back in the ``IDLE`` state so the
caller can retry.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from ..errors import (
    FaceAuthError,
    ModelsNotLoaded,
    MultipleFacesDetected,
)
from ..models.types import Descriptor, ImageFrame, MatchDecision
from ..utils.image import encode_image_data_url, load_image
from .comparator import compare, decide
from .embedding import EmbeddingExtractor
from .face_detection import GatePoller
from .matcher import describe as describe_frame

# Configure logging
logger = logging.getLogger(__name__)

NO_MATCH_REASON = "No matching profile found. Access denied."


class AttemptState(str, Enum):
    IDLE = "idle"
    PRECONDITION = "precondition"
    CAPTURING = "capturing"
    EXTRACTING_PROBE = "extracting_probe"
    EXTRACTING_REFERENCE = "extracting_reference"
    COMPARING = "comparing"
    DONE = "done"


class MatchOrchestrator:
    """Runs authentication attempts against one fixed reference image."""

    def __init__(
        self,
        extractor: EmbeddingExtractor,
        poller: GatePoller,
        reference_image_path: str,
        threshold: float,
        profile_id: str,
    ):
        self.extractor = extractor
        self.poller = poller
        self.reference_image_path = reference_image_path
        self.threshold = threshold
        self.profile_id = profile_id
        self.state = AttemptState.IDLE
        self.last_decision: Optional[MatchDecision] = None
        self._attempt_lock = asyncio.Lock()

    @property
    def models_ready(self) -> bool:
        return self.extractor.ready and self.poller.detector.ready

    def check_preconditions(self) -> None:
        """Raise if an attempt may not start right now."""
        if not self.models_ready:
            raise ModelsNotLoaded("Models not fully loaded. Please wait.")
        if self.poller.blocked:
            raise MultipleFacesDetected(
                "Multiple faces detected. Please ensure only one face is in the frame."
            )

    async def describe(self, frame: ImageFrame, label: str) -> Descriptor:
        return await describe_frame(self.extractor, frame, label)

    async def authenticate(self) -> MatchDecision:
        """Run one attempt and return its decision. Never raises."""
        async with self._attempt_lock:
            try:
                decision = await self._attempt()
            except FaceAuthError as e:
                logger.warning(f"Authentication rejected ({type(e).__name__}): {str(e)}")
                decision = MatchDecision.rejected(str(e), error_code=type(e).__name__)
            except Exception as e:
                logger.exception("Unexpected error during authentication")
                decision = MatchDecision.rejected(
                    f"Authentication failed: {str(e)}", error_code="InternalError"
                )
            finally:
                self.state = AttemptState.IDLE

            self.last_decision = decision
            return decision

    async def _attempt(self) -> MatchDecision:
        self.state = AttemptState.PRECONDITION
        self.check_preconditions()

        self.state = AttemptState.CAPTURING
        frame = await asyncio.to_thread(self.poller.source.read)

        self.state = AttemptState.EXTRACTING_PROBE
        probe = await self.describe(frame, "captured image")

        self.state = AttemptState.EXTRACTING_REFERENCE
        reference_frame = load_image(self.reference_image_path)
        reference = await self.describe(reference_frame, "reference image")

        self.state = AttemptState.COMPARING
        d = compare(probe, reference)
        if not decide(d, self.threshold):
            logger.info(f"No match: distance {d:.4f} > threshold {self.threshold}")
            return MatchDecision.rejected(NO_MATCH_REASON, distance=d, error_code="NoMatch")

        self.state = AttemptState.DONE
        logger.info(f"Match accepted for profile {self.profile_id}: distance {d:.4f}")
        return MatchDecision.accepted(d, self.profile_id, encode_image_data_url(frame))
