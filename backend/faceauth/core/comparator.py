"""Descriptor comparison.

Descriptors are compared by Euclidean distance. ``compare`` is the entry
point used by the authentication flow: it fails closed, so any error while
computing a distance is reported as an infinite distance and rejected by the
threshold check.
"""

import logging
import math
from typing import Sequence

import numpy as np

from ..errors import DimensionMismatchError

# Configure logging
logger = logging.getLogger(__name__)

# Distance reported when a comparison cannot be completed
MAX_DISTANCE = math.inf


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean (L2) distance between two descriptors.

    Raises:
        DimensionMismatchError: If the descriptors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Descriptor length mismatch: {len(a)} != {len(b)}"
        )
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sqrt(np.sum(diff * diff)))


def decide(d: float, threshold: float) -> bool:
    """Accept iff the distance is within the threshold."""
    return d <= threshold


def compare(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance between two descriptors, or ``MAX_DISTANCE`` on any error."""
    try:
        d = distance(a, b)
    except Exception as e:
        logger.warning(f"Descriptor comparison failed: {str(e)}")
        return MAX_DISTANCE

    if math.isnan(d):
        logger.warning("Descriptor comparison produced NaN")
        return MAX_DISTANCE

    logger.info(f"Descriptor distance: {d:.4f}")
    return d
