"""Exception hierarchy for the face authentication pipeline."""


class FaceAuthError(Exception):
    """Base exception for face authentication errors."""
    pass


class DecodeError(FaceAuthError):
    """Exception raised when an image cannot be read or decoded."""
    pass


class ModelNotReadyError(FaceAuthError):
    """Exception raised when a model is used before it has loaded."""
    pass


class CaptureError(FaceAuthError):
    """Exception raised when no frame is available from the camera."""
    pass


class DescriptorError(FaceAuthError):
    """Exception raised when extraction yields no usable descriptor."""
    pass


class DimensionMismatchError(FaceAuthError):
    """Exception raised when compared descriptors differ in length."""
    pass


class MultipleFacesDetected(FaceAuthError):
    """Exception raised when the multi-face gate blocks capture."""
    pass


class ModelsNotLoaded(FaceAuthError):
    """Exception raised when an attempt starts before models are ready."""
    pass


class SessionNotFoundError(FaceAuthError):
    """Exception raised for an unknown session id."""
    pass


class SessionLimitError(FaceAuthError):
    """Exception raised when no more sessions can be opened."""
    pass


class WrongSessionMode(FaceAuthError):
    """Exception raised when an action is not offered in the session's mode."""
    pass
