# unmatte/mode.py
from __future__ import annotations
from typing import Literal

"""
Per-pixel strategy selection.

Exports:
- resolve_pixel_mode(strict, n_foreground) -> Literal["strict","min_alpha","mixed"]

Notes:
- "strict"    : opacity-optimised unmixing against the declared colours only.
- "min_alpha" : no foreground colours at all; every pixel gets its minimum alpha.
- "mixed"     : pixels close to a declared colour are unmixed against the list,
                the rest fall back to minimum alpha so unexpected colours
                (glows, gradients) survive.
"""


PixelMode = Literal["strict", "min_alpha", "mixed"]


def resolve_pixel_mode(strict: bool, n_foreground: int) -> PixelMode:
    """
    Resolve processing flags into a concrete per-pixel strategy.
    - strict            -> "strict" (even with no colours: everything clears)
    - non-strict, none  -> "min_alpha"
    - non-strict, some  -> "mixed"
    """
    if strict:
        return "strict"
    if n_foreground == 0:
        return "min_alpha"
    return "mixed"


__all__ = ["PixelMode", "resolve_pixel_mode"]
