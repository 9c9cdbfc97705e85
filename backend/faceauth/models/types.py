"""Data models and type definitions"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from typing_extensions import Literal, TypedDict

# Face embedding produced by the embedding model
Descriptor = Tuple[float, ...]

SessionMode = Literal["authenticate", "preview"]


class Box(TypedDict):
    x: int
    y: int
    width: int
    height: int


DetectionResult = List[Box]


@dataclass(frozen=True)
class ImageFrame:
    """A single still or video image as a 3-channel BGR array."""

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass(frozen=True)
class MatchDecision:
    """Outcome of one authentication attempt.

    ``reason`` is present exactly when ``accept`` is False. ``distance`` is
    None when the attempt failed before a comparison could run.
    """

    accept: bool
    distance: Optional[float] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    profile_id: Optional[str] = None
    image: Optional[str] = None

    def __post_init__(self):
        if self.accept and self.reason is not None:
            raise ValueError("An accepted decision cannot carry a reason")
        if not self.accept and not self.reason:
            raise ValueError("A rejected decision must state a reason")

    @classmethod
    def accepted(
        cls,
        distance: float,
        profile_id: Optional[str] = None,
        image: Optional[str] = None,
    ) -> "MatchDecision":
        return cls(accept=True, distance=distance, profile_id=profile_id, image=image)

    @classmethod
    def rejected(
        cls,
        reason: str,
        distance: Optional[float] = None,
        error_code: Optional[str] = None,
    ) -> "MatchDecision":
        return cls(accept=False, distance=distance, reason=reason, error_code=error_code)


class SessionRequest(TypedDict, total=False):
    mode: SessionMode


class SessionStatus(TypedDict):
    sessionId: str
    mode: str
    modelsLoaded: bool
    loadError: Optional[str]
    multipleFacesDetected: bool
    faces: List[Box]
    pollInterval: float


class AuthenticationResult(TypedDict):
    accept: bool
    distance: Optional[float]
    reason: Optional[str]
    errorCode: Optional[str]
    profileId: Optional[str]
    image: Optional[str]


class MatchRequest(TypedDict):
    referenceImage: str
    actualImage: str


class CaptureResult(TypedDict):
    captured: bool
    message: str
    image: Optional[str]

