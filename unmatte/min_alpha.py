# unmatte/min_alpha.py
from __future__ import annotations

"""
Minimum-alpha recovery for colours that match no fixed foreground.

Finds the smallest alpha in (0,1] such that some foreground with every
channel in [0,1] satisfies observed = alpha * fg + (1 - alpha) * bg.

Two passes, smaller valid alpha wins:
  corners: the 8 extreme foregrounds {0,1}^3, solved exactly
  scan   : alpha = k / ALPHA_SCAN_STEPS upward, first in-gamut foreground

Fallback is alpha = 1, fg = observed, which always reconstructs exactly.
"""

from itertools import product
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import ALPHA_SCAN_STEPS, EPSILON
from .core_types import NormColour, NormRows

_CORNERS = np.array(list(product((0.0, 1.0), repeat=3)), dtype=np.float64)


def _corner_search(
    observed: NormRows, background: NormColour
) -> Tuple[NormRows, NDArray[np.float64]]:
    n_rows = observed.shape[0]
    best_alpha = np.ones(n_rows, dtype=np.float64)
    best_fg = observed.copy()
    offset = observed - background

    for corner in _CORNERS:
        denom = corner - background
        alpha_needed = np.zeros(n_rows, dtype=np.float64)
        has_alpha = np.zeros(n_rows, dtype=bool)
        valid = np.ones(n_rows, dtype=bool)

        for ch in range(3):
            if abs(denom[ch]) < EPSILON:
                # fg == bg on this channel: only feasible if observed == bg too
                valid &= np.abs(offset[:, ch]) <= EPSILON
                continue
            alpha_ch = offset[:, ch] / denom[ch]
            agrees = np.abs(alpha_ch - alpha_needed) <= EPSILON
            valid &= ~has_alpha | agrees
            alpha_needed = np.where(has_alpha, alpha_needed, alpha_ch)
            has_alpha[:] = True

        valid &= has_alpha
        valid &= (alpha_needed > 0.0) & (alpha_needed <= 1.0)
        valid &= alpha_needed < best_alpha
        if not np.any(valid):
            continue

        recon = alpha_needed[:, None] * corner + (1.0 - alpha_needed)[:, None] * background
        valid &= np.all(np.abs(recon - observed) <= EPSILON, axis=1)
        best_alpha = np.where(valid, alpha_needed, best_alpha)
        best_fg[valid] = corner

    return best_fg, best_alpha


def _scan_search(
    observed: NormRows,
    background: NormColour,
    best_fg: NormRows,
    best_alpha: NDArray[np.float64],
) -> None:
    """Refine best_fg / best_alpha in place with the discretised upward scan."""
    pending = np.ones(observed.shape[0], dtype=bool)
    for step in range(1, ALPHA_SCAN_STEPS + 1):
        alpha = step / float(ALPHA_SCAN_STEPS)
        pending &= alpha < best_alpha
        if not np.any(pending):
            break
        idx = np.flatnonzero(pending)
        fg = (observed[idx] - (1.0 - alpha) * background) / alpha
        in_gamut = np.all((fg >= 0.0) & (fg <= 1.0), axis=1)
        if not np.any(in_gamut):
            continue
        hit = idx[in_gamut]
        best_alpha[hit] = alpha
        best_fg[hit] = fg[in_gamut]
        pending[hit] = False


def find_minimum_alpha_batch(
    observed: NormRows, background: NormColour
) -> Tuple[NormRows, NDArray[np.float64]]:
    """
    Minimum alpha and matching foreground for each normalized row.

    Returns:
      fg: (U,3) in [0,1]
      alpha: (U,) in (0,1]
    """
    obs = np.asarray(observed, dtype=np.float64).reshape(-1, 3)
    bg = np.asarray(background, dtype=np.float64).reshape(3)
    if obs.shape[0] == 0:
        return np.zeros((0, 3), dtype=np.float64), np.zeros(0, dtype=np.float64)
    best_fg, best_alpha = _corner_search(obs, bg)
    _scan_search(obs, bg, best_fg, best_alpha)
    return best_fg, best_alpha


def find_minimum_alpha(
    observed: Sequence[float], background: Sequence[float]
) -> Tuple[NormColour, float]:
    """Scalar form of find_minimum_alpha_batch for one normalized colour."""
    fg, alpha = find_minimum_alpha_batch(
        np.asarray(observed, dtype=np.float64).reshape(1, 3),
        np.asarray(background, dtype=np.float64),
    )
    return fg[0], float(alpha[0])


__all__ = ["find_minimum_alpha_batch", "find_minimum_alpha"]
