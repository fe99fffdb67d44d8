# unmatte/pipeline.py
from __future__ import annotations

"""
Per-pixel transform.

Composites existing translucency onto the background, collapses the image to
unique colours, resolves each unique colour to (colour, alpha) according to
the pixel mode, then scatters the results back onto the grid. Unique colours
are independent, so they are processed in contiguous parts on a thread pool.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .colour_convert import (
    alpha_to_u8,
    denormalize_colour,
    normalize_colour,
    round_half_up,
)
from .constants import BACKGROUND_MATCH_EPS, PARALLEL_MIN_COLOURS
from .core_types import (
    NormColour,
    NormRows,
    RGBTuple,
    U8Image,
    U8Rows,
    coerce_to_rgb_tuple,
)
from .min_alpha import find_minimum_alpha_batch
from .mode import PixelMode, resolve_pixel_mode
from .unmix import close_to_foreground_batch, result_colours_batch, unmix_batch
from .utils import (
    debug_log,
    format_seconds_compact,
    key_value_pairs_to_string,
    split_into_parts,
)


def composite_over_background(rgba: U8Image, background: Sequence[int]) -> U8Image:
    """
    Flatten translucent pixels onto the background.

    result = colour * a + background * (1 - a) for a < 1; opaque pixels pass
    through untouched. Returns uint8 (H,W,3).
    """
    rgb = rgba[..., :3]
    alpha = rgba[..., 3:4].astype(np.float64) / 255.0
    bg = normalize_colour(background)
    blended = round_half_up((normalize_colour(rgb) * alpha + bg * (1.0 - alpha)) * 255.0)
    blended = np.clip(blended, 0.0, 255.0).astype(np.uint8)
    return np.where(rgba[..., 3:4] == 255, rgb, blended).astype(np.uint8)


def composite_pixel_over_background(
    pixel: Sequence[int], background: Sequence[int]
) -> RGBTuple:
    """Scalar composite for one (r, g, b, a) pixel."""
    arr = np.asarray(pixel, dtype=np.uint8).reshape(1, 1, 4)
    return coerce_to_rgb_tuple(composite_over_background(arr, background)[0, 0])


def _unique_colours_with_inverse(rgb: U8Image) -> Tuple[U8Rows, NDArray[np.int64]]:
    """
    Unique RGB rows with the inverse index.

    Returns:
      unique_rgb: uint8 [U,3]
      inverse_idx: int64 [H*W], unique_rgb[inverse_idx] rebuilds the flat image
    """
    flat = np.ascontiguousarray(rgb).reshape(-1, 3)
    if flat.shape[0] == 0:
        return np.zeros((0, 3), dtype=np.uint8), np.zeros((0,), dtype=np.int64)
    unique_rgb, inverse_idx = np.unique(flat, axis=0, return_inverse=True)
    return (
        unique_rgb.astype(np.uint8, copy=False),
        inverse_idx.reshape(-1).astype(np.int64, copy=False),
    )


def _pack_rgba(colours: NormRows, alpha: NDArray[np.float64]) -> U8Rows:
    out = np.zeros((colours.shape[0], 4), dtype=np.uint8)
    out[:, :3] = denormalize_colour(colours)
    out[:, 3] = alpha_to_u8(alpha)
    return out


def _unmix_rows(
    observed: NormRows, foreground: NormRows, background: NormColour
) -> U8Rows:
    weights, alpha = unmix_batch(observed, foreground, background, optimise_opacity=True)
    colours = result_colours_batch(weights, alpha, foreground)
    return _pack_rgba(colours, alpha)


def _min_alpha_rows(observed: NormRows, background: NormColour) -> U8Rows:
    fg, alpha = find_minimum_alpha_batch(observed, background)
    return _pack_rgba(fg, alpha)


def process_colours(
    observed_rgb: U8Rows,
    foreground: NormRows,
    background: NormColour,
    mode: PixelMode,
    threshold: float,
) -> U8Rows:
    """
    Resolve composited byte colours to RGBA output rows.

    Exact background (every channel within BACKGROUND_MATCH_EPS) becomes
    (0,0,0,0). Everything else is dispatched on `mode`.
    """
    obs = normalize_colour(observed_rgb).reshape(-1, 3)
    out = np.zeros((obs.shape[0], 4), dtype=np.uint8)
    work = ~np.all(np.abs(obs - background) < BACKGROUND_MATCH_EPS, axis=1)
    if not np.any(work):
        return out
    idx = np.flatnonzero(work)
    obs_w = obs[idx]

    if mode == "strict":
        out[idx] = _unmix_rows(obs_w, foreground, background)
    elif mode == "min_alpha":
        out[idx] = _min_alpha_rows(obs_w, background)
    else:
        close = close_to_foreground_batch(obs_w, foreground, background, threshold)
        if np.any(close):
            out[idx[close]] = _unmix_rows(obs_w[close], foreground, background)
        if not np.all(close):
            far = ~close
            out[idx[far]] = _min_alpha_rows(obs_w[far], background)
    return out


def process_pixels(
    rgba: U8Image,
    foreground: Sequence[RGBTuple],
    background: RGBTuple,
    *,
    strict: bool,
    threshold: float,
    workers: int = 1,
    debug: bool = False,
) -> U8Image:
    """
    Transform an (H,W,4) RGBA grid against a fully resolved palette.

    Output is independent of `workers`: parts are gathered in order.
    """
    t0 = time.perf_counter()
    height, width = rgba.shape[0], rgba.shape[1]
    fg_norm = normalize_colour(list(foreground)).reshape(-1, 3)
    bg_norm = normalize_colour(background).reshape(3)
    mode = resolve_pixel_mode(strict, fg_norm.shape[0])

    composited = composite_over_background(rgba, background)
    unique_rgb, inverse_idx = _unique_colours_with_inverse(composited)
    n_unique = int(unique_rgb.shape[0])

    if workers > 1 and n_unique >= PARALLEL_MIN_COLOURS:
        spans = split_into_parts(n_unique, workers)
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futures = [
                ex.submit(
                    process_colours,
                    unique_rgb[s:e],
                    fg_norm,
                    bg_norm,
                    mode,
                    threshold,
                )
                for s, e in spans
            ]
            parts = [f.result() for f in futures]
        resolved = np.vstack(parts)
    else:
        resolved = process_colours(unique_rgb, fg_norm, bg_norm, mode, threshold)

    out = resolved[inverse_idx].reshape(height, width, 4)
    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Pixel mode", mode),
                    ("Unique colours", n_unique),
                    ("Workers", workers),
                    ("Transform", format_seconds_compact(time.perf_counter() - t0)),
                ]
            )
        )
    return np.ascontiguousarray(out, dtype=np.uint8)


__all__ = [
    "composite_over_background",
    "composite_pixel_over_background",
    "process_colours",
    "process_pixels",
]
