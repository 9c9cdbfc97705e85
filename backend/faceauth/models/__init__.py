"""Data models and type definitions"""
from .types import (
    Box,
    Descriptor,
    DetectionResult,
    ImageFrame,
    MatchDecision,
    SessionMode,
    SessionRequest,
    MatchRequest,
    SessionStatus,
    AuthenticationResult,
    CaptureResult,
)

__all__ = [
    'Box',
    'Descriptor',
    'DetectionResult',
    'ImageFrame',
    'MatchDecision',
    'SessionMode',
    'SessionRequest',
    'MatchRequest',
    'SessionStatus',
    'AuthenticationResult',
    'CaptureResult',
]
