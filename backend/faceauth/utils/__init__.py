"""Utility functions for image processing"""
from .image import (
    decode_base64_image,
    encode_image_data_url,
    load_image,
    normalize_image,
    to_frame,
)

__all__ = [
    'decode_base64_image',
    'encode_image_data_url',
    'load_image',
    'normalize_image',
    'to_frame',
]
