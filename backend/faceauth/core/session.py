"""Authentication sessions.

A session owns everything one camera page needs: the frame source, the two
model handles, the gate poller and the orchestrator. Starting a session
acquires the camera and loads models; ending it cancels polling and releases
both.
"""

import asyncio
import logging
import uuid
from typing import Callable, Dict, List, Optional

from ..config import Settings
from ..models.types import CaptureResult, ImageFrame, MatchDecision, SessionMode
from ..utils.image import encode_image_data_url
from .capture import FrameSource, WebcamSource
from .embedding import EmbeddingExtractor
from ..errors import (
    FaceAuthError,
    MultipleFacesDetected,
    SessionLimitError,
    SessionNotFoundError,
    WrongSessionMode,
)
from .face_detection import FaceDetector, GatePoller
from .orchestrator import MatchOrchestrator

# Configure logging
logger = logging.getLogger(__name__)


class AuthSession:
    """One camera session in either authenticate or preview mode."""

    def __init__(
        self,
        settings: Settings,
        source: FrameSource,
        extractor: EmbeddingExtractor,
        detector: FaceDetector,
        mode: SessionMode = "authenticate",
        session_id: Optional[str] = None,
    ):
        if mode not in ("authenticate", "preview"):
            raise ValueError(f"Unknown session mode: {mode}")
        self.id = session_id or uuid.uuid4().hex
        self.mode = mode
        self.settings = settings
        self.source = source
        self.extractor = extractor
        self.detector = detector
        interval = (
            settings.auth_poll_interval if mode == "authenticate"
            else settings.preview_poll_interval
        )
        self.poller = GatePoller(source, detector, interval)
        self.orchestrator = MatchOrchestrator(
            extractor,
            self.poller,
            reference_image_path=settings.reference_image_path,
            threshold=settings.match_threshold,
            profile_id=settings.reference_profile_id,
        )
        self.load_error: Optional[str] = None
        self.active = False

    @property
    def models_loaded(self) -> bool:
        if self.mode == "preview":
            return self.detector.ready
        return self.orchestrator.models_ready

    def _load_models(self) -> None:
        self.detector.load()
        if self.mode == "authenticate":
            self.extractor.load()

    async def start(self) -> "AuthSession":
        """Open the camera, load models and start gate polling.

        A model that fails to load is recorded in ``load_error``; the session
        stays usable and attempts are rejected until models are ready.
        """
        opener = getattr(self.source, "open", None)
        if opener is not None:
            await asyncio.to_thread(opener)

        try:
            await asyncio.to_thread(self._load_models)
        except FaceAuthError as e:
            self.load_error = str(e)
            logger.error(f"Session {self.id}: failed to load models: {str(e)}")

        self.active = True
        self.poller.start()
        logger.info(f"Session {self.id} started in {self.mode} mode")
        return self

    async def authenticate(self) -> MatchDecision:
        if self.mode != "authenticate":
            e = WrongSessionMode(
                f"Authentication is not available in {self.mode} sessions. "
                "Start an authenticate session instead."
            )
            logger.warning(f"Session {self.id}: {str(e)}")
            return MatchDecision.rejected(str(e), error_code=type(e).__name__)
        return await self.orchestrator.authenticate()

    async def capture(self) -> CaptureResult:
        """Preview capture: take a frame unless the gate is blocked."""
        try:
            if self.poller.blocked:
                raise MultipleFacesDetected("Cannot capture. Multiple faces detected!")
            frame: ImageFrame = await asyncio.to_thread(self.source.read)
        except FaceAuthError as e:
            logger.warning(f"Session {self.id}: capture refused: {str(e)}")
            return {'captured': False, 'message': str(e), 'image': None}

        return {
            'captured': True,
            'message': "Image captured successfully!",
            'image': encode_image_data_url(frame),
        }

    async def end(self) -> None:
        """Cancel polling and release the camera and models. Idempotent."""
        await self.poller.stop()
        await asyncio.to_thread(self.source.release)
        self.extractor.unload()
        self.detector.unload()
        if self.active:
            logger.info(f"Session {self.id} ended")
        self.active = False


SessionFactory = Callable[[SessionMode], AuthSession]


def default_session_factory(settings: Settings) -> SessionFactory:
    """Build sessions backed by the local webcam and on-disk models."""

    def factory(mode: SessionMode) -> AuthSession:
        return AuthSession(
            settings,
            WebcamSource(settings.camera_index),
            EmbeddingExtractor(settings.embedding_model_path),
            FaceDetector(settings.detection_model, settings.max_faces),
            mode=mode,
        )

    return factory


class SessionManager:
    """Registry of active sessions."""

    def __init__(self, factory: SessionFactory, max_sessions: int = 1):
        self.factory = factory
        self.max_sessions = max_sessions
        self.sessions: Dict[str, AuthSession] = {}
        self._lock = asyncio.Lock()

    def list(self) -> List[AuthSession]:
        return list(self.sessions.values())

    def get(self, session_id: str) -> AuthSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session

    async def start(self, mode: SessionMode = "authenticate") -> AuthSession:
        async with self._lock:
            if len(self.sessions) >= self.max_sessions:
                raise SessionLimitError(
                    f"Max sessions ({self.max_sessions}) reached"
                )
            session = self.factory(mode)
            try:
                await session.start()
            except Exception:
                await session.end()
                raise
            self.sessions[session.id] = session
            return session

    async def end(self, session_id: str) -> None:
        async with self._lock:
            session = self.sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        await session.end()

    async def end_all(self) -> None:
        async with self._lock:
            sessions = list(self.sessions.values())
            self.sessions.clear()
        for session in sessions:
            await session.end()
