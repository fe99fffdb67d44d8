# unmatte/process.py
from __future__ import annotations

"""
Top-level entry points.

Two phases per image:
  analysis : background (given or detected) and foreground deduction
  transform: independent per-pixel unmixing against the resolved palette

All option parsing happens before any pixel work, so a bad hex string or
threshold fails fast and no partial output is ever produced.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .background import detect_background_colour
from .colour_convert import alpha_to_u8, denormalize_colour, normalize_colour
from .constants import DEFAULT_COLOUR_CLOSENESS_THRESHOLD
from .core_types import (
    ForegroundSpec,
    NormColour,
    RGBTuple,
    U8Image,
    UnmixResult,
    assert_rgba_image,
    coerce_to_rgb_tuple,
    hex_to_rgb,
    parse_foreground_specs,
    rgb_to_hex,
)
from .deduce import deduce_foreground_colours
from .image_io import (
    decode_image_bytes,
    encode_png_bytes,
    load_image_rgba,
    save_image_rgba,
    trim_to_content,
)
from .pipeline import composite_pixel_over_background, process_pixels
from .unmix import compute_result_colour, unmix_colours
from .utils import debug_log, print_config_line


@dataclass(frozen=True)
class ProcessOptions:
    """
    Per-call configuration.

    foreground_colours: hex strings or "auto", order preserved
    background_colour : hex string, or None to detect from the borders
    strict_mode       : unmix only against the declared colours
    threshold         : closeness threshold in [0, 1]
    trim              : crop transparent margins from the result
    workers           : thread pool size for the transform phase
    debug             : verbose [debug] lines
    """

    foreground_colours: Sequence[str] = field(default_factory=tuple)
    background_colour: Optional[str] = None
    strict_mode: bool = False
    threshold: float = DEFAULT_COLOUR_CLOSENESS_THRESHOLD
    trim: bool = False
    workers: int = 1
    debug: bool = False

    def validate(self) -> None:
        if not 0.0 <= float(self.threshold) <= 1.0:
            raise ValueError(
                f"threshold must be within [0.0, 1.0] (got {self.threshold})"
            )
        if int(self.workers) < 1:
            raise ValueError(f"workers must be >= 1 (got {self.workers})")
        _parse_specs(self)
        _parse_background(self)


@dataclass(frozen=True)
class ResolvedColours:
    """Background and the fully resolved foreground list for one image."""

    background: RGBTuple
    foreground: Tuple[RGBTuple, ...]


def _parse_specs(options: ProcessOptions) -> List[ForegroundSpec]:
    try:
        return parse_foreground_specs(list(options.foreground_colours))
    except ValueError as e:
        raise ValueError(f"Invalid foreground colour: {e}") from e


def _parse_background(options: ProcessOptions) -> Optional[RGBTuple]:
    if options.background_colour is None:
        return None
    try:
        return hex_to_rgb(options.background_colour)
    except ValueError as e:
        raise ValueError(f"Invalid background colour: {e}") from e


def resolve_colours(rgba: U8Image, options: ProcessOptions) -> ResolvedColours:
    """Analysis phase: parse options, detect background, deduce 'auto' slots."""
    options.validate()
    specs = _parse_specs(options)
    background = _parse_background(options)
    detected = background is None
    if background is None:
        background = detect_background_colour(rgba)
    foreground = deduce_foreground_colours(
        rgba, specs, background, float(options.threshold), debug=options.debug
    )
    if options.debug:
        print_config_line(
            "colours",
            [
                (
                    "Background",
                    rgb_to_hex(background) + (" (detected)" if detected else ""),
                ),
                ("Foreground", ", ".join(rgb_to_hex(c) for c in foreground) or "-"),
            ],
            debug=True,
        )
    return ResolvedColours(background=background, foreground=tuple(foreground))


def remove_background(rgba: U8Image, options: ProcessOptions) -> U8Image:
    """Full transform of an (H,W,4) RGBA array. Returns a new RGBA array."""
    assert_rgba_image(rgba)
    resolved = resolve_colours(rgba, options)
    out = process_pixels(
        rgba,
        resolved.foreground,
        resolved.background,
        strict=options.strict_mode,
        threshold=float(options.threshold),
        workers=int(options.workers),
        debug=options.debug,
    )
    if options.trim:
        trimmed = trim_to_content(out)
        if options.debug:
            debug_log(
                f"trim {out.shape[1]}x{out.shape[0]} -> {trimmed.shape[1]}x{trimmed.shape[0]}"
            )
        out = trimmed
    return out


def process_image_bytes(data: bytes, options: ProcessOptions) -> bytes:
    """Decode, transform, and encode as PNG."""
    return encode_png_bytes(remove_background(decode_image_bytes(data), options))


def process_image_file(src: Path, dst: Path, options: ProcessOptions) -> Path:
    """Read `src`, write the PNG result to `dst`. Returns the written path."""
    return save_image_rgba(dst, remove_background(load_image_rgba(src), options))


# Small public helpers


def parse_colour(hex_str: str) -> RGBTuple:
    """Parse '#rrggbb', 'rrggbb', '#rgb' or 'rgb'."""
    return hex_to_rgb(hex_str)


def colour_to_normalized(rgb: Sequence[int]) -> Tuple[float, float, float]:
    r, g, b = normalize_colour(rgb).reshape(3).tolist()
    return (r, g, b)


def normalized_to_colour(norm: Sequence[float]) -> RGBTuple:
    return coerce_to_rgb_tuple(denormalize_colour(norm))


def get_default_threshold() -> float:
    return DEFAULT_COLOUR_CLOSENESS_THRESHOLD


def detect_background(data: bytes) -> RGBTuple:
    """Background colour of an encoded image."""
    return detect_background_colour(decode_image_bytes(data))


def deduce_palette(
    rgba: U8Image,
    foreground_colours: Sequence[str],
    background_colour: Optional[str] = None,
    threshold: float = DEFAULT_COLOUR_CLOSENESS_THRESHOLD,
    *,
    debug: bool = False,
) -> List[RGBTuple]:
    """
    Deduction only: one resolved colour per input spec, no pixel transform.
    """
    options = ProcessOptions(
        foreground_colours=tuple(foreground_colours),
        background_colour=background_colour,
        threshold=threshold,
        debug=debug,
    )
    return list(resolve_colours(assert_rgba_image(rgba), options).foreground)


def _normalized_palette(foreground: Sequence[Sequence[int]]) -> np.ndarray:
    return normalize_colour(list(foreground)).reshape(-1, 3)


def unmix_colour(
    observed: Sequence[int],
    foreground: Sequence[Sequence[int]],
    background: Sequence[int],
) -> UnmixResult:
    """Opacity-optimised unmix of one byte colour against byte colours."""
    bg: NormColour = normalize_colour(background).reshape(3)
    return unmix_colours(observed, _normalized_palette(foreground), bg)


def compute_unmix_result_colour(
    weights: Sequence[float], alpha: float, foreground: Sequence[Sequence[int]]
) -> Tuple[int, int, int, int]:
    """Final (r, g, b, a) bytes for a set of weights and alpha."""
    colour, out_alpha = compute_result_colour(
        UnmixResult(weights=tuple(float(w) for w in weights), alpha=float(alpha)),
        _normalized_palette(foreground),
    )
    r, g, b = denormalize_colour(colour).tolist()
    return (r, g, b, int(alpha_to_u8(out_alpha)))


__all__ = [
    "ProcessOptions",
    "ResolvedColours",
    "resolve_colours",
    "remove_background",
    "process_image_bytes",
    "process_image_file",
    "parse_colour",
    "colour_to_normalized",
    "normalized_to_colour",
    "get_default_threshold",
    "detect_background",
    "deduce_palette",
    "unmix_colour",
    "compute_unmix_result_colour",
    "composite_pixel_over_background",
]
