# unmatte/colour_convert.py
from __future__ import annotations

"""
Colour conversions and metrics (byte RGB <-> normalized RGB).

Exports:
  round_half_up(x)
  normalize_colour(rgb)
  denormalize_colour(norm)
  alpha_to_u8(alpha)
  colour_distance(a, b)
"""

from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

ArrayLike = Union[Sequence[float], np.ndarray]


def round_half_up(x: np.ndarray) -> np.ndarray:
    """Round to nearest with halves away from zero for x >= 0."""
    return np.floor(np.asarray(x, dtype=np.float64) + 0.5)


def normalize_colour(rgb: ArrayLike) -> NDArray[np.float64]:
    """
    Byte RGB (0..255) to normalized RGB (0.0..1.0). Vectorised.
    Args:
      rgb: array[...,3] or a 3-sequence
    Returns:
      float64 array of the same shape
    """
    return np.asarray(rgb, dtype=np.float64) / 255.0


def denormalize_colour(norm: ArrayLike) -> NDArray[np.uint8]:
    """Normalized RGB back to bytes with round-and-clamp. Preserves shape."""
    scaled = round_half_up(np.asarray(norm, dtype=np.float64) * 255.0)
    return np.clip(scaled, 0.0, 255.0).astype(np.uint8)


def alpha_to_u8(alpha: ArrayLike) -> NDArray[np.uint8]:
    """Alpha in [0,1] to a 0..255 byte."""
    scaled = round_half_up(np.asarray(alpha, dtype=np.float64) * 255.0)
    return np.clip(scaled, 0.0, 255.0).astype(np.uint8)


def colour_distance(a: ArrayLike, b: ArrayLike) -> Union[float, np.ndarray]:
    """Euclidean distance along the last axis. Scalar for two (3,) inputs."""
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    dist = np.sqrt(np.sum(diff * diff, axis=-1))
    if np.ndim(dist) == 0:
        return float(dist)
    return dist


__all__ = [
    "round_half_up",
    "normalize_colour",
    "denormalize_colour",
    "alpha_to_u8",
    "colour_distance",
]
