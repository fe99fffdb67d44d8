# unmatte/unmix.py
from __future__ import annotations

"""
Linear unmixing of observed colours against a fixed foreground list.

Model: observed = sum_i w_i * fg_i + (1 - sum_i w_i) * bg, w_i >= 0.

Flavours:
  single   : closed-form projection onto (fg - bg), one foreground colour
  simple   : least squares via the pseudo-inverse, clamp, renormalise if sum > 1
  optimised: simple, then every single colour, then every pair; keeps the
             highest alpha whose reconstruction error stays under
             RECONSTRUCTION_TOL

Batch helpers take (U,3) normalized rows and return (U,N) weights and (U,)
alphas. The scalar entry points wrap them.
"""

from itertools import combinations
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .colour_convert import normalize_colour
from .constants import EPSILON, PAIR_SEARCH_MAX_ALPHA, RECONSTRUCTION_TOL
from .core_types import NormColour, NormRows, UnmixResult

Weights = NDArray[np.float64]  # (U, N)
Alphas = NDArray[np.float64]  # (U,)


def _as_rows(colours: object) -> NormRows:
    rows = np.asarray(colours, dtype=np.float64)
    return rows.reshape(-1, 3)


def _least_squares_weights(
    target: NormRows, columns: NormRows
) -> Optional[Weights]:
    """
    Solve target ~= w @ columns for every row, negatives clamped to 0.

    columns holds (fg_i - bg) rows. Returns None when the solve is singular.
    """
    a = columns.T  # (3, N)
    try:
        a_inv = np.linalg.pinv(a, rcond=EPSILON)
    except np.linalg.LinAlgError:
        return None
    solution = target @ a_inv.T
    if not np.all(np.isfinite(solution)):
        return None
    return np.maximum(solution, 0.0)


def project_single(
    observed: NormRows, foreground: NormColour, background: NormColour
) -> Alphas:
    """Clamped projection weight of (observed - bg) onto (fg - bg)."""
    direction = foreground - background
    if float(np.linalg.norm(direction)) <= EPSILON:
        return np.zeros(observed.shape[0], dtype=np.float64)
    dot = (observed - background) @ direction
    return np.clip(dot / float(direction @ direction), 0.0, 1.0)


def _unmix_single(
    observed: NormRows, foreground: NormColour, background: NormColour
) -> Tuple[Weights, Alphas]:
    weight = project_single(observed, foreground, background)
    return weight[:, None], weight.copy()


def _unmix_simple(
    observed: NormRows, foreground: NormRows, background: NormColour
) -> Tuple[Weights, Alphas]:
    n_rows = observed.shape[0]
    n_fg = foreground.shape[0]
    weights = _least_squares_weights(observed - background, foreground - background)
    if weights is None:
        # Singular solve: all weight on the first foreground colour.
        weights = np.zeros((n_rows, n_fg), dtype=np.float64)
        weights[:, 0] = 1.0

    total = weights.sum(axis=1)
    over = total > 1.0
    if np.any(over):
        weights[over] = weights[over] / total[over, None]
    alpha = np.where(over, 1.0, total)
    return weights, alpha


def _unmix_optimised(
    observed: NormRows, foreground: NormRows, background: NormColour
) -> Tuple[Weights, Alphas]:
    n_rows = observed.shape[0]
    n_fg = foreground.shape[0]
    target = observed - background
    columns = foreground - background

    best_w = np.zeros((n_rows, n_fg), dtype=np.float64)
    best_alpha = np.zeros(n_rows, dtype=np.float64)

    # 1) least squares over every colour
    ls = _least_squares_weights(target, columns)
    if ls is not None:
        total = ls.sum(axis=1)
        take = total > 0.0
        if np.any(take):
            over = total > 1.0
            scaled = np.where(over[:, None], ls / np.maximum(total, EPSILON)[:, None], ls)
            best_w[take] = scaled[take]
            best_alpha[take] = np.minimum(total[take], 1.0)

    # 2) each colour alone
    for i in range(n_fg):
        if float(np.linalg.norm(columns[i])) <= EPSILON:
            continue
        w = project_single(observed, foreground[i], background)
        recon = w[:, None] * foreground[i] + (1.0 - w)[:, None] * background
        err = np.linalg.norm(recon - observed, axis=1)
        upd = (w > best_alpha) & (err < RECONSTRUCTION_TOL)
        if np.any(upd):
            best_w[upd] = 0.0
            best_w[upd, i] = w[upd]
            best_alpha[upd] = w[upd]

    # 3) pairs, only for rows not already near-opaque
    try_pairs = best_alpha < PAIR_SEARCH_MAX_ALPHA
    if n_fg >= 2 and np.any(try_pairs):
        for i, j in combinations(range(n_fg), 2):
            pair = _least_squares_weights(target, columns[[i, j]])
            if pair is None:
                continue
            w_i, w_j = pair[:, 0], pair[:, 1]
            total = w_i + w_j
            over = total > 1.0
            safe_total = np.maximum(total, EPSILON)
            nw_i = np.where(over, w_i / safe_total, w_i)
            nw_j = np.where(over, w_j / safe_total, w_j)
            recon = (
                nw_i[:, None] * foreground[i]
                + nw_j[:, None] * foreground[j]
                + (1.0 - nw_i - nw_j)[:, None] * background
            )
            err = np.linalg.norm(recon - observed, axis=1)
            alpha = np.minimum(total, 1.0)
            upd = (
                try_pairs
                & (total > 0.0)
                & (alpha > best_alpha)
                & (err < RECONSTRUCTION_TOL)
            )
            if np.any(upd):
                best_w[upd] = 0.0
                best_w[upd, i] = nw_i[upd]
                best_w[upd, j] = nw_j[upd]
                best_alpha[upd] = alpha[upd]

    return best_w, best_alpha


def unmix_batch(
    observed: NormRows,
    foreground: NormRows,
    background: NormColour,
    *,
    optimise_opacity: bool = True,
) -> Tuple[Weights, Alphas]:
    """
    Unmix many observed colours at once.

    Args:
      observed: (U,3) normalized rows
      foreground: (N,3) normalized rows, N may be 0
      background: (3,) normalized
      optimise_opacity: pick the highest-alpha subset (singles/pairs) that
        still reconstructs the colour; False gives plain least squares
    Returns:
      weights (U,N) non-negative, alpha (U,) in [0,1]
    """
    obs = _as_rows(observed)
    fg = np.asarray(foreground, dtype=np.float64).reshape(-1, 3)
    bg = np.asarray(background, dtype=np.float64).reshape(3)
    n_fg = fg.shape[0]
    if n_fg == 0:
        return (
            np.zeros((obs.shape[0], 0), dtype=np.float64),
            np.zeros(obs.shape[0], dtype=np.float64),
        )
    if n_fg == 1:
        return _unmix_single(obs, fg[0], bg)
    if optimise_opacity:
        return _unmix_optimised(obs, fg, bg)
    return _unmix_simple(obs, fg, bg)


def result_colours_batch(
    weights: Weights, alpha: Alphas, foreground: NormRows
) -> NormRows:
    """Weight-normalised blend of the foreground colours; black where alpha is 0."""
    n_rows = weights.shape[0]
    out = np.zeros((n_rows, 3), dtype=np.float64)
    if weights.shape[1] == 0:
        return out
    fg = np.asarray(foreground, dtype=np.float64).reshape(-1, 3)
    total = weights.sum(axis=1)
    ok = (alpha != 0.0) & (total > 0.0)
    if np.any(ok):
        out[ok] = (weights[ok] @ fg) / total[ok, None]
    return out


def close_to_foreground_batch(
    observed: NormRows,
    foreground: NormRows,
    background: NormColour,
    threshold: float,
) -> NDArray[np.bool_]:
    """True where a single foreground colour alone reconstructs the row within threshold."""
    obs = _as_rows(observed)
    fg = np.asarray(foreground, dtype=np.float64).reshape(-1, 3)
    bg = np.asarray(background, dtype=np.float64).reshape(3)
    close = np.zeros(obs.shape[0], dtype=bool)
    for colour in fg:
        if float(np.linalg.norm(colour - bg)) <= EPSILON:
            continue
        w = project_single(obs, colour, bg)
        recon = w[:, None] * colour + (1.0 - w)[:, None] * bg
        close |= np.linalg.norm(recon - obs, axis=1) < threshold
    return close


# Scalar entry points


def unmix_colours(
    observed_rgb: Sequence[int],
    foreground: Sequence[Sequence[float]],
    background: Sequence[float],
    *,
    optimise_opacity: bool = True,
) -> UnmixResult:
    """
    Unmix one byte colour against normalized foreground and background colours.
    """
    obs = normalize_colour(observed_rgb).reshape(1, 3)
    weights, alpha = unmix_batch(
        obs,
        np.asarray(foreground, dtype=np.float64).reshape(-1, 3),
        np.asarray(background, dtype=np.float64),
        optimise_opacity=optimise_opacity,
    )
    return UnmixResult(
        weights=tuple(float(w) for w in weights[0]), alpha=float(alpha[0])
    )


def compute_result_colour(
    result: UnmixResult, foreground: Sequence[Sequence[float]]
) -> Tuple[NormColour, float]:
    """Final normalized colour and alpha for an UnmixResult."""
    if result.alpha == 0.0:
        return np.zeros(3, dtype=np.float64), 0.0
    fg = np.asarray(foreground, dtype=np.float64).reshape(-1, 3)
    weights = np.asarray(result.weights, dtype=np.float64)
    n = min(weights.shape[0], fg.shape[0])
    colour = result_colours_batch(
        weights[None, :n], np.array([result.alpha]), fg[:n]
    )[0]
    return colour, float(result.alpha)


def is_colour_close_to_foreground(
    observed: Sequence[float],
    foreground: Sequence[Sequence[float]],
    background: Sequence[float],
    threshold: float,
) -> bool:
    """Scalar form of close_to_foreground_batch for one normalized colour."""
    return bool(
        close_to_foreground_batch(
            np.asarray(observed, dtype=np.float64).reshape(1, 3),
            np.asarray(foreground, dtype=np.float64).reshape(-1, 3),
            np.asarray(background, dtype=np.float64),
            threshold,
        )[0]
    )


__all__ = [
    "project_single",
    "unmix_batch",
    "result_colours_batch",
    "close_to_foreground_batch",
    "unmix_colours",
    "compute_result_colour",
    "is_colour_close_to_foreground",
]
