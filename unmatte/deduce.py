# unmatte/deduce.py
from __future__ import annotations

"""
Foreground colour deduction for "auto" slots.

Pipeline:
  1. histogram of distinct byte colours (count desc, first-seen on ties)
  2. raw candidates: the top colours un-blended at a few fixed alphas
  3. de-duplicate within the closeness threshold, keep first
  4. cap to DEDUCE_CANDIDATES_PER_UNKNOWN * unknowns by farthest-point picking
  5. add standard saturated colours not already covered
  6. bounded exhaustive search over 1, 2 or 3 unknown slots, scored by the
     sqrt(count)-weighted reconstruction error of the whole histogram;
     4+ unknowns take the most mutually different candidates directly
  7. slots left without a colour get NEUTRAL_FILL
"""

import time
from itertools import combinations
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .colour_convert import colour_distance, denormalize_colour, normalize_colour
from .constants import (
    DEDUCE_ALPHAS,
    DEDUCE_CANDIDATES_PER_UNKNOWN,
    DEDUCE_RECON_TOL_U8,
    DEDUCE_SKIP_NEAR_BG,
    DEDUCE_TOP_COLOURS,
    MAX_CANDIDATES_2_UNKNOWNS,
    MAX_CANDIDATES_3_UNKNOWNS_ALL,
    MAX_CANDIDATES_3_UNKNOWNS_SELECTED,
    MAX_PENALTY_PER_COLOUR,
    NEUTRAL_FILL,
    RGB_CUBE_DIAGONAL,
    STANDARD_COLOURS,
)
from .core_types import (
    ColourHistogram,
    ForegroundSpec,
    Known,
    NormColour,
    NormRows,
    RGBTuple,
    U8Image,
    Unknown,
    rgb_to_hex,
)
from .unmix import result_colours_batch, unmix_batch
from .utils import debug_log, format_seconds_compact, key_value_pairs_to_string


# Histogram


def build_colour_histogram(image: U8Image) -> ColourHistogram:
    """
    Count distinct RGB byte colours of an (H,W,3/4) image, alpha ignored.

    Colours are packed into a single integer key, so grouping does not depend
    on iteration order. Ties in count are broken by first-seen (row-major).
    """
    flat = np.ascontiguousarray(image[..., :3]).reshape(-1, 3)
    if flat.shape[0] == 0:
        return ColourHistogram(
            np.zeros((0, 3), dtype=np.uint8), np.zeros((0,), dtype=np.int64)
        )
    keys = (
        (flat[:, 0].astype(np.uint32) << 16)
        | (flat[:, 1].astype(np.uint32) << 8)
        | flat[:, 2].astype(np.uint32)
    )
    uniq, first_idx, counts = np.unique(keys, return_index=True, return_counts=True)
    order = np.lexsort((first_idx, -counts))
    uniq = uniq[order]
    colours = np.stack(
        [(uniq >> 16) & 0xFF, (uniq >> 8) & 0xFF, uniq & 0xFF], axis=1
    ).astype(np.uint8)
    return ColourHistogram(colours, counts[order].astype(np.int64))


# Candidate proposal


def dedupe_candidates(
    candidates: Iterable[RGBTuple], threshold: float
) -> List[RGBTuple]:
    """Drop candidates within `threshold` (normalized distance) of an earlier one."""
    kept: List[RGBTuple] = []
    kept_norm: List[NormColour] = []
    for colour in candidates:
        norm = normalize_colour(colour)
        if any(colour_distance(norm, other) < threshold for other in kept_norm):
            continue
        kept.append(colour)
        kept_norm.append(norm)
    return kept


def _spread(colour: RGBTuple) -> int:
    return max(colour) - min(colour)


def select_most_different_colours(
    colours: Sequence[RGBTuple], n: int
) -> List[RGBTuple]:
    """
    Greedy farthest-point selection of `n` colours.

    Starts from the most saturated (largest channel spread), then repeatedly
    adds the colour whose nearest selected colour is farthest away. Distances
    are compared at 1/1000 resolution; ties go to the earlier colour.
    """
    if len(colours) <= n:
        return list(colours)

    selected: List[RGBTuple] = []
    selected_norm: List[NormColour] = []
    while len(selected) < n:
        remaining = [c for c in colours if c not in selected]
        if not remaining:
            break
        if not selected:
            pick = max(remaining, key=_spread)
        else:

            def nearest_selected(colour: RGBTuple) -> int:
                norm = normalize_colour(colour)
                return min(
                    int(colour_distance(norm, s) * 1000.0) for s in selected_norm
                )

            pick = max(remaining, key=nearest_selected)
        selected.append(pick)
        selected_norm.append(normalize_colour(pick))
    return selected


def find_candidate_colours(
    histogram: ColourHistogram,
    background: RGBTuple,
    num_candidates: int,
    threshold: float,
) -> List[RGBTuple]:
    """
    Propose plausible foreground colours from the most frequent image colours.

    Each of the top DEDUCE_TOP_COLOURS colours is un-blended from the
    background at every alpha in DEDUCE_ALPHAS; in-gamut results that blend
    back to the observed colour within DEDUCE_RECON_TOL_U8 are kept.
    """
    bg_norm = normalize_colour(background)
    raw: List[RGBTuple] = []

    for observed in histogram.colours[:DEDUCE_TOP_COLOURS].tolist():
        obs_norm = normalize_colour(observed)
        if colour_distance(obs_norm, bg_norm) < DEDUCE_SKIP_NEAR_BG:
            continue
        for alpha in DEDUCE_ALPHAS:
            fg = (obs_norm - bg_norm * (1.0 - alpha)) / alpha
            if np.any((fg < 0.0) | (fg > 1.0)):
                continue
            recon = (fg * alpha + bg_norm * (1.0 - alpha)) * 255.0
            error = colour_distance(recon, np.asarray(observed, dtype=np.float64))
            if error < DEDUCE_RECON_TOL_U8:
                r, g, b = denormalize_colour(fg).tolist()
                raw.append((r, g, b))

    unique = dedupe_candidates(raw, threshold)
    if len(unique) > num_candidates:
        return select_most_different_colours(unique, num_candidates)
    return unique


def add_standard_colours(
    candidates: Sequence[RGBTuple],
    known: Sequence[RGBTuple],
    background: RGBTuple,
    threshold: float,
) -> List[RGBTuple]:
    """Append STANDARD_COLOURS not known, not the background, and not already covered."""
    out = list(candidates)
    for colour in STANDARD_COLOURS:
        if colour in known or colour == tuple(background):
            continue
        norm = normalize_colour(colour)
        if any(
            colour_distance(norm, normalize_colour(c)) < threshold for c in out
        ):
            continue
        out.append(colour)
    return out


# Scoring


def evaluate_colour_set(
    foreground: NormRows,
    observed: NormRows,
    pixel_weights: NDArray[np.float64],
    background: NormColour,
) -> float:
    """
    Weighted mean reconstruction error of `observed` under `foreground`.

    Uses plain least-squares unmixing. A tiny penalty (at most
    MAX_PENALTY_PER_COLOUR per colour) favours colours far from the background.
    """
    weights, alpha = unmix_batch(
        observed, foreground, background, optimise_opacity=False
    )
    colours = result_colours_batch(weights, alpha, foreground)
    recon = colours * alpha[:, None] + background * (1.0 - alpha)[:, None]
    error = np.sqrt(np.sum((recon - observed) ** 2, axis=1))

    total_weight = float(pixel_weights.sum())
    reconstruction_error = (
        float(np.dot(error, pixel_weights)) / total_weight if total_weight > 0 else 0.0
    )

    penalty = 0.0
    for colour in foreground:
        distance_to_bg = colour_distance(colour, background)
        penalty += (1.0 - distance_to_bg / RGB_CUBE_DIAGONAL) * MAX_PENALTY_PER_COLOUR
    penalty /= max(1, len(foreground))

    return reconstruction_error + penalty


def _assemble(
    specs: Sequence[ForegroundSpec], fill: Sequence[RGBTuple]
) -> List[RGBTuple]:
    """Known colours in place, `fill` consumed in order for Unknown slots."""
    out: List[RGBTuple] = []
    fill_iter = iter(fill)
    for spec in specs:
        if isinstance(spec, Known):
            out.append(spec.rgb)
        else:
            out.append(next(fill_iter, NEUTRAL_FILL))
    return out


def _search_trials(
    candidates: List[RGBTuple], n_unknown: int, debug: bool
) -> Optional[Iterable[Tuple[RGBTuple, ...]]]:
    """Trial assignments for the unknown slots, or None for direct selection."""
    if n_unknown == 1:
        return ((c,) for c in candidates)
    if n_unknown == 2:
        pool = candidates
        if len(pool) > MAX_CANDIDATES_2_UNKNOWNS:
            pool = select_most_different_colours(pool, MAX_CANDIDATES_2_UNKNOWNS)
            if debug:
                debug_log(f"pair search: reduced candidates to {len(pool)}")
        return combinations(pool, 2)
    if n_unknown == 3:
        pool = candidates
        if len(pool) > MAX_CANDIDATES_3_UNKNOWNS_ALL:
            pool = select_most_different_colours(
                pool, MAX_CANDIDATES_3_UNKNOWNS_SELECTED
            )
            if debug:
                debug_log(f"triple search: reduced candidates to {len(pool)}")
        return combinations(pool, 3)
    return None


def deduce_unknown_colours(
    histogram: ColourHistogram,
    specs: Sequence[ForegroundSpec],
    background: RGBTuple,
    threshold: float,
    *,
    debug: bool = False,
) -> List[RGBTuple]:
    """
    Resolve every spec to a concrete colour, one per spec position.

    Known specs are returned verbatim; Unknown slots are filled by the search.
    """
    known = [s.rgb for s in specs if isinstance(s, Known)]
    n_unknown = sum(1 for s in specs if isinstance(s, Unknown))
    if n_unknown == 0:
        return known

    t0 = time.perf_counter()
    candidates = find_candidate_colours(
        histogram,
        background,
        n_unknown * DEDUCE_CANDIDATES_PER_UNKNOWN,
        threshold,
    )
    candidates = add_standard_colours(candidates, known, background, threshold)

    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Histogram colours", len(histogram)),
                    ("Unknown slots", n_unknown),
                    ("Candidates", len(candidates)),
                ]
            )
        )

    best: List[RGBTuple] = []
    trials = _search_trials(candidates, n_unknown, debug)
    if trials is None:
        best = select_most_different_colours(candidates, n_unknown)
    else:
        observed = normalize_colour(histogram.colours)
        pixel_weights = np.sqrt(histogram.counts.astype(np.float64))
        bg_norm = normalize_colour(background)
        best_error = float("inf")
        n_trials = 0
        for trial in trials:
            n_trials += 1
            fg = normalize_colour(_assemble(specs, trial))
            error = evaluate_colour_set(fg, observed, pixel_weights, bg_norm)
            if error < best_error:
                best_error = error
                best = list(trial)
        if debug:
            debug_log(
                key_value_pairs_to_string(
                    [("Trials", n_trials), ("Best error", best_error)]
                )
            )

    resolved = _assemble(specs, best)
    if debug:
        debug_log(
            f"deduced palette: {', '.join(rgb_to_hex(c) for c in resolved)} "
            f"in {format_seconds_compact(time.perf_counter() - t0)}"
        )
    return resolved


def deduce_foreground_colours(
    image: U8Image,
    specs: Sequence[ForegroundSpec],
    background: RGBTuple,
    threshold: float,
    *,
    debug: bool = False,
) -> List[RGBTuple]:
    """Image-level deduction. The histogram is only built when a slot is Unknown."""
    if not any(isinstance(s, Unknown) for s in specs):
        return [s.rgb for s in specs if isinstance(s, Known)]
    histogram = build_colour_histogram(image)
    return deduce_unknown_colours(
        histogram, specs, background, threshold, debug=debug
    )


__all__ = [
    "build_colour_histogram",
    "dedupe_candidates",
    "select_most_different_colours",
    "find_candidate_colours",
    "add_standard_colours",
    "evaluate_colour_set",
    "deduce_unknown_colours",
    "deduce_foreground_colours",
]
