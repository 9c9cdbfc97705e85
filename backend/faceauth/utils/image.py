"""Image processing utilities.

This module turns raw image sources (files, base64 payloads, camera frames)
into ``ImageFrame`` objects and converts frames into the fixed-size tensor
the embedding model expects.
"""

import base64
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from ..errors import DecodeError
from ..models.types import ImageFrame

# Embedding model input geometry
TARGET_SIZE = (160, 160)
PIXEL_SCALE = 255.0


def to_frame(pixels: np.ndarray) -> ImageFrame:
    """Wrap a decoded array as a 3-channel BGR ``ImageFrame``.

    Args:
        pixels: Image array, grayscale (HxW), BGR (HxWx3) or BGRA (HxWx4).

    Returns:
        Frame holding a contiguous ``uint8`` BGR array.

    Raises:
        DecodeError: If the array is empty or has an unsupported shape.
    """
    if pixels is None or pixels.size == 0:
        raise DecodeError("Image contains no pixel data")

    if pixels.ndim == 2:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGR)
    elif pixels.ndim == 3 and pixels.shape[2] == 4:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_BGRA2BGR)
    elif pixels.ndim != 3 or pixels.shape[2] != 3:
        raise DecodeError(f"Unsupported image shape: {pixels.shape}")

    if pixels.dtype != np.uint8:
        pixels = np.clip(pixels, 0, 255).astype(np.uint8)

    return ImageFrame(np.ascontiguousarray(pixels))


def load_image(path: Union[str, Path]) -> ImageFrame:
    """Read an image file from disk.

    Raises:
        DecodeError: If the file is missing or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise DecodeError(f"Image file not found: {path}")

    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError(f"Failed to decode image file: {path}")
    return to_frame(image)


def decode_base64_image(base64_string: str) -> ImageFrame:
    """Decode base64 string to an image frame.

    Args:
        base64_string: Base64 encoded image string, optionally with data URL prefix.
            Example formats:
            - "data:image/jpeg;base64,/9j/4AAQSkZ..."
            - "/9j/4AAQSkZ..." (without prefix)

    Returns:
        Decoded frame in BGR format.

    Raises:
        DecodeError: If base64 decoding fails or the bytes are not an image.
    """
    # Remove data URL prefix if present
    if ';base64,' in base64_string:
        base64_string = base64_string.split(';base64,')[1]
    elif ',' in base64_string:
        base64_string = base64_string.split(',')[1]

    try:
        image_bytes = base64.b64decode(base64_string, validate=True)
    except ValueError as e:
        raise DecodeError(f"Failed to decode base64 string: {str(e)}")

    nparr = np.frombuffer(image_bytes, np.uint8)
    if nparr.size == 0:
        raise DecodeError("Image payload is empty")

    image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError("Failed to decode image data")
    return to_frame(image)


def encode_image_data_url(frame: ImageFrame, quality: int = 90) -> str:
    """Encode a frame as a JPEG data URL for the presentation layer."""
    ok, buffer = cv2.imencode(
        ".jpg", frame.pixels, [int(cv2.IMWRITE_JPEG_QUALITY), quality]
    )
    if not ok:
        raise DecodeError("Failed to encode image as JPEG")
    return "data:image/jpeg;base64," + base64.b64encode(buffer.tobytes()).decode("ascii")


def normalize_image(frame: ImageFrame) -> np.ndarray:
    """Convert a frame into the embedding model's input tensor.

    The frame is converted to RGB, resized to 160x160 with nearest-neighbour
    interpolation, scaled from [0, 255] to [0, 1] and given a batch axis.
    There is no cropping or aspect-ratio correction: reference descriptors
    are only comparable when this exact preprocessing is used.

    Args:
        frame: Source frame.

    Returns:
        float32 array of shape (1, 160, 160, 3).

    Raises:
        DecodeError: If the frame holds no usable pixels.
    """
    pixels = frame.pixels
    if pixels is None or pixels.ndim != 3 or pixels.shape[2] != 3 or pixels.size == 0:
        raise DecodeError("Frame is not a decodable 3-channel image")

    rgb = cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB)
    resized = cv2.resize(rgb, TARGET_SIZE, interpolation=cv2.INTER_NEAREST)
    tensor = resized.astype(np.float32) / PIXEL_SCALE
    return np.expand_dims(tensor, axis=0)
