# unmatte/background.py
from __future__ import annotations

"""
Background colour estimation from image borders.

Samples the four corners plus every `edge_sample_interval`-th pixel along
each edge, flattens translucent samples over black, and returns the most
common sample. Ties go to the colour seen first in sampling order.
"""

from typing import Dict, List, Tuple

import numpy as np

from .colour_convert import round_half_up
from .constants import EDGE_SAMPLE_INTERVAL
from .core_types import RGBTuple, U8Image


def edge_sample_points(
    width: int, height: int, interval: int = EDGE_SAMPLE_INTERVAL
) -> List[Tuple[int, int]]:
    """(x, y) sample points: corners first, then top/bottom, then left/right edges."""
    if width <= 0 or height <= 0:
        return []
    step = max(1, int(interval))
    points = [(0, 0), (width - 1, 0), (0, height - 1), (width - 1, height - 1)]
    for x in range(0, width, step):
        points.append((x, 0))
        points.append((x, height - 1))
    for y in range(0, height, step):
        points.append((0, y))
        points.append((width - 1, y))
    return points


def detect_background_colour(
    rgba: U8Image, edge_sample_interval: int = EDGE_SAMPLE_INTERVAL
) -> RGBTuple:
    """Majority colour along the image border. Empty image -> (0, 0, 0)."""
    height, width = rgba.shape[0], rgba.shape[1]
    points = edge_sample_points(width, height, edge_sample_interval)
    if not points:
        return (0, 0, 0)

    xs = np.array([p[0] for p in points], dtype=np.int64)
    ys = np.array([p[1] for p in points], dtype=np.int64)
    samples = rgba[ys, xs].astype(np.float64)
    alpha = samples[:, 3:4] / 255.0
    flattened = np.where(
        alpha < 1.0, round_half_up(samples[:, :3] * alpha), samples[:, :3]
    ).astype(np.uint8)

    # dict keeps insertion order, so max() below resolves ties to first-seen
    counts: Dict[RGBTuple, int] = {}
    for r, g, b in flattened.tolist():
        key = (r, g, b)
        counts[key] = counts.get(key, 0) + 1
    return max(counts, key=lambda c: counts[c])


__all__ = ["edge_sample_points", "detect_background_colour"]
