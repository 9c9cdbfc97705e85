"""Runtime configuration.

All settings are read from ``FACEAUTH_*`` environment variables so the
service can be reconfigured without code changes.
"""

import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_MANIFEST_URL = (
    "https://tfhub.dev/mediapipe/tfjs-model/face_detection/short/1/model.json"
)


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    # Euclidean distance at or below which two descriptors are the same person.
    match_threshold: float = 0.6

    # Model and asset locations
    embedding_model_path: str = "models/embedding/model.onnx"
    embedding_model_url: str = ""
    reference_image_path: str = "dataset/3.jpg"
    reference_profile_id: str = "3"

    # Capture and multi-face gate
    camera_index: int = 0
    detection_model: str = "hog"
    max_faces: int = 5
    auth_poll_interval: float = 0.5
    preview_poll_interval: float = 0.1

    # Manifest passthrough
    manifest_url: str = DEFAULT_MANIFEST_URL
    manifest_timeout: float = 10.0

    max_sessions: int = 1
    log_level: str = "INFO"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            match_threshold=float(os.getenv("FACEAUTH_MATCH_THRESHOLD", "0.6")),
            embedding_model_path=os.getenv(
                "FACEAUTH_EMBEDDING_MODEL_PATH", "models/embedding/model.onnx"
            ),
            embedding_model_url=os.getenv("FACEAUTH_EMBEDDING_MODEL_URL", ""),
            reference_image_path=os.getenv(
                "FACEAUTH_REFERENCE_IMAGE", "dataset/3.jpg"
            ),
            reference_profile_id=os.getenv("FACEAUTH_REFERENCE_PROFILE_ID", "3"),
            camera_index=int(os.getenv("FACEAUTH_CAMERA_INDEX", "0")),
            detection_model=os.getenv("FACEAUTH_DETECTION_MODEL", "hog"),
            max_faces=int(os.getenv("FACEAUTH_MAX_FACES", "5")),
            auth_poll_interval=float(os.getenv("FACEAUTH_AUTH_POLL_INTERVAL", "0.5")),
            preview_poll_interval=float(
                os.getenv("FACEAUTH_PREVIEW_POLL_INTERVAL", "0.1")
            ),
            manifest_url=os.getenv("FACEAUTH_MANIFEST_URL", DEFAULT_MANIFEST_URL),
            manifest_timeout=float(os.getenv("FACEAUTH_MANIFEST_TIMEOUT", "10")),
            max_sessions=int(os.getenv("FACEAUTH_MAX_SESSIONS", "1")),
            log_level=os.getenv("FACEAUTH_LOG_LEVEL", "INFO").upper(),
            cors_allow_origins=_env_list("FACEAUTH_CORS_ALLOW_ORIGINS", "*"),
        )
