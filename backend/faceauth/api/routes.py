"""Face authentication session API routes.

This module provides the endpoints a capture page uses: open a session
(camera plus models), poll its gate status, run authentication attempts or
preview captures, and end the session. A stateless two-image match
endpoint compares any pair of uploaded photos.
"""

import asyncio
import logging
import math
from typing import Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from ..core.matcher import ImageMatcher
from ..core.session import AuthSession, SessionManager
from ..errors import (
    CaptureError,
    DecodeError,
    ModelNotReadyError,
    SessionLimitError,
    SessionNotFoundError,
)
from ..models.types import (
    AuthenticationResult,
    CaptureResult,
    MatchDecision,
    MatchRequest,
    SessionRequest,
    SessionStatus,
)
from ..utils.image import decode_base64_image

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_matcher(request: Request) -> ImageMatcher:
    return request.app.state.matcher


def _session_or_404(sessions: SessionManager, session_id: str) -> AuthSession:
    try:
        return sessions.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _status(session: AuthSession) -> SessionStatus:
    return {
        'sessionId': session.id,
        'mode': session.mode,
        'modelsLoaded': session.models_loaded,
        'loadError': session.load_error,
        'multipleFacesDetected': session.poller.blocked,
        'faces': list(session.poller.detections),
        'pollInterval': session.poller.interval,
    }


def _result(decision: MatchDecision) -> AuthenticationResult:
    distance = decision.distance
    if distance is not None and not math.isfinite(distance):
        distance = None
    return {
        'accept': decision.accept,
        'distance': distance,
        'reason': decision.reason,
        'errorCode': decision.error_code,
        'profileId': decision.profile_id,
        'image': decision.image,
    }


@router.post("/sessions", status_code=status.HTTP_201_CREATED, response_model=SessionStatus)
async def start_session(
    request_data: SessionRequest = Body(default={}),
    sessions: SessionManager = Depends(get_sessions),
) -> Dict:
    """Start a capture session.

    Args:
        request_data: Optional body with ``mode`` set to "authenticate"
            (default, 500 ms gate polling) or "preview" (100 ms polling).

    Returns:
        Initial session status.

    Raises:
        HTTPException: 409 when the session limit is reached, 503 when the
            camera cannot be opened, 422 for an unknown mode.
    """
    mode = request_data.get('mode', 'authenticate')
    try:
        session = await sessions.start(mode)
    except SessionLimitError as e:
        logger.warning(f"Session rejected: {str(e)}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except CaptureError as e:
        logger.warning(f"Camera error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return _status(session)


@router.get("/sessions", response_model=List[SessionStatus])
async def list_sessions(sessions: SessionManager = Depends(get_sessions)) -> List[Dict]:
    """Status of every open session."""
    return [_status(session) for session in sessions.list()]


@router.get("/sessions/{session_id}", response_model=SessionStatus)
async def session_status(
    session_id: str,
    sessions: SessionManager = Depends(get_sessions),
) -> Dict:
    """Current gate and model status, including face boxes for overlays."""
    return _status(_session_or_404(sessions, session_id))


@router.post("/sessions/{session_id}/authenticate", response_model=AuthenticationResult)
async def authenticate(
    session_id: str,
    sessions: SessionManager = Depends(get_sessions),
) -> Dict:
    """Run one authentication attempt.

    Returns:
        Dictionary containing the decision:
            - accept: Boolean indicating if the face matches the reference
            - distance: Euclidean distance between descriptors, if computed
            - reason: Why the attempt was rejected
            - errorCode: Machine-readable rejection cause
            - profileId: Matched profile identifier on success
            - image: Captured frame as a JPEG data URL on success
    """
    session = _session_or_404(sessions, session_id)
    decision = await session.authenticate()
    return _result(decision)


@router.post("/sessions/{session_id}/capture", response_model=CaptureResult)
async def capture(
    session_id: str,
    sessions: SessionManager = Depends(get_sessions),
) -> Dict:
    """Capture a still frame unless multiple faces are in view."""
    session = _session_or_404(sessions, session_id)
    return await session.capture()


@router.delete("/sessions/{session_id}")
async def end_session(
    session_id: str,
    sessions: SessionManager = Depends(get_sessions),
) -> Dict:
    """End a session, stopping polling and releasing the camera."""
    try:
        await sessions.end(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {'sessionId': session_id, 'ended': True}


@router.post("/match", response_model=AuthenticationResult)
async def match_images(
    request_data: MatchRequest,
    matcher: ImageMatcher = Depends(get_matcher),
) -> Dict:
    """Match faces between a reference and an actual photo.

    Args:
        request_data: Dictionary containing base64-encoded images.
            - referenceImage: Base64 string of reference photo
            - actualImage: Base64 string of actual photo

    Returns:
        Decision in the same shape as an authentication attempt, without
        profile or image hand-off.

    Raises:
        HTTPException: 400 if an image cannot be decoded, 503 if the
            embedding model cannot be loaded.
    """
    try:
        logger.info("Decoding reference image...")
        reference_image = decode_base64_image(request_data['referenceImage'])
        logger.info("Decoding actual image...")
        actual_image = decode_base64_image(request_data['actualImage'])
    except DecodeError as e:
        logger.warning(f"Validation error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        await asyncio.to_thread(matcher.extractor.load)
        decision = await matcher.match(reference_image, actual_image)
    except ModelNotReadyError as e:
        logger.error(f"Embedding model unavailable: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return _result(decision)
