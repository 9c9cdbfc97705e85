"""Core face authentication functionality"""
from .comparator import compare, decide, distance
from .embedding import EmbeddingExtractor, OpenCVEmbeddingModel
from .face_detection import FaceDetector, GatePoller, MultiFaceGate
from .matcher import ImageMatcher
from .orchestrator import AttemptState, MatchOrchestrator
from .session import AuthSession, SessionManager, default_session_factory

__all__ = [
    'compare',
    'decide',
    'distance',
    'EmbeddingExtractor',
    'OpenCVEmbeddingModel',
    'FaceDetector',
    'GatePoller',
    'MultiFaceGate',
    'AttemptState',
    'MatchOrchestrator',
    'ImageMatcher',
    'AuthSession',
    'SessionManager',
    'default_session_factory',
]
