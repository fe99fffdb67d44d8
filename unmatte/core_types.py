# unmatte/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, and lightweight helpers.
"""

import string
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 4) RGBA or (H, W, 3) RGB
U8Rows = NDArray[np.uint8]  # (N, 3) RGB rows
NormRows = NDArray[np.float64]  # (N, 3) normalized RGB rows
NormColour = NDArray[np.float64]  # (3,)

AUTO_TOKEN = "auto"

_HEX_SHORTHAND_MULTIPLIER = 17
_COMPONENT_NAMES = ("red", "green", "blue")

# Foreground specs (closed sum type: Known | Unknown)


@dataclass(frozen=True)
class Known:
    """Foreground colour given by the caller."""

    rgb: RGBTuple


@dataclass(frozen=True)
class Unknown:
    """Foreground slot to be deduced from the image."""


ForegroundSpec = Union[Known, Unknown]

# Value objects


@dataclass(frozen=True)
class UnmixResult:
    """Per-foreground weights (resolved foreground order) and overall alpha."""

    weights: Tuple[float, ...]
    alpha: float


@dataclass(frozen=True)
class ColourHistogram:
    """
    Distinct byte colours of an image with their pixel counts.

    Rows are ordered by count descending; ties keep first-seen (row-major) order.
    """

    colours: U8Rows  # (K, 3) uint8
    counts: NDArray[np.int64] = field(repr=False)  # (K,)

    def __len__(self) -> int:
        return int(self.colours.shape[0])

    def entries(self) -> List[Tuple[RGBTuple, int]]:
        return [
            ((int(r), int(g), int(b)), int(n))
            for (r, g, b), n in zip(self.colours.tolist(), self.counts.tolist())
        ]


# Small helpers


def rgb_to_hex(rgb: Sequence[int]) -> HexStr:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{int(rgb[0]):02x}{int(rgb[1]):02x}{int(rgb[2]):02x}"


def _parse_component(digits: str, index: int) -> int:
    if not digits or any(ch not in string.hexdigits for ch in digits):
        raise ValueError(f"Invalid {_COMPONENT_NAMES[index]} component: {digits!r}")
    return int(digits, 16)


def hex_to_rgb(hex_str: str) -> RGBTuple:
    """
    Parse '#rgb', 'rgb', '#rrggbb' or 'rrggbb' (case-insensitive) into an RGB tuple.

    Raises ValueError naming the offending component or the bad length.
    """
    s = hex_str.strip().lstrip("#")
    if len(s) == 3:
        r, g, b = (
            _parse_component(s[i], i) * _HEX_SHORTHAND_MULTIPLIER for i in range(3)
        )
        return (r, g, b)
    if len(s) == 6:
        r, g, b = (_parse_component(s[2 * i : 2 * i + 2], i) for i in range(3))
        return (r, g, b)
    raise ValueError(
        f"Hex colour must be 3 or 6 characters long (got {len(s)}: {s!r})"
    )


def parse_foreground_spec(spec: str) -> ForegroundSpec:
    """'auto' becomes Unknown(); anything else must be a hex colour."""
    if spec.strip() == AUTO_TOKEN:
        return Unknown()
    return Known(hex_to_rgb(spec))


def parse_foreground_specs(specs: Sequence[str]) -> List[ForegroundSpec]:
    """Parse an ordered list of specs. Order is preserved."""
    return [parse_foreground_spec(s) for s in specs]


def coerce_to_rgb_tuple(value: Union[Sequence[int], NDArray[np.generic]]) -> RGBTuple:
    """Coerce a 3-length sequence or array row to an (int, int, int) RGB tuple."""
    if isinstance(value, np.ndarray):
        if value.size < 3:
            raise ValueError("array too small for RGB")
        flat = value.reshape(-1)
        return (int(flat[0]), int(flat[1]), int(flat[2]))
    if len(value) < 3:
        raise ValueError("sequence too small for RGB")
    return (int(value[0]), int(value[1]), int(value[2]))


def assert_rgba_image(image: np.ndarray) -> U8Image:
    """Validate a uint8 (H,W,4) image and return it typed as U8Image."""
    if (
        not isinstance(image, np.ndarray)
        or image.dtype != np.uint8
        or image.ndim != 3
        or image.shape[-1] != 4
    ):
        raise TypeError("expected uint8 (H,W,4) RGBA image")
    return image  # type: ignore[return-value]


__all__ = [
    # aliases / types
    "RGBTuple",
    "HexStr",
    "U8Image",
    "U8Rows",
    "NormRows",
    "NormColour",
    "AUTO_TOKEN",
    # value objects
    "Known",
    "Unknown",
    "ForegroundSpec",
    "UnmixResult",
    "ColourHistogram",
    # helpers
    "rgb_to_hex",
    "hex_to_rgb",
    "parse_foreground_spec",
    "parse_foreground_specs",
    "coerce_to_rgb_tuple",
    "assert_rgba_image",
]
