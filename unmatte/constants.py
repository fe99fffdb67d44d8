# unmatte/constants.py
"""
Global tunables used across the project.

- Numeric tolerances (EPSILON, BACKGROUND_MATCH_EPS, ...)
- Unmixing constants (RECONSTRUCTION_TOL, PAIR_SEARCH_MAX_ALPHA)
- Minimum-alpha search constants (ALPHA_SCAN_STEPS)
- Deduction constants (DEDUCE_*, STANDARD_COLOURS, caps)
- Background detection constants
"""
from __future__ import annotations

from typing import List, Tuple

# =================
# Numeric tolerances
# =================
EPSILON: float = 1e-10
BACKGROUND_MATCH_EPS: float = 1e-6

# Closeness threshold, fraction of normalized RGB distance.
DEFAULT_COLOUR_CLOSENESS_THRESHOLD: float = 0.05

# =========
# Unmixing
# =========
RECONSTRUCTION_TOL: float = 0.01
PAIR_SEARCH_MAX_ALPHA: float = 0.99

# ================
# Minimum alpha
# ================
ALPHA_SCAN_STEPS: int = 1000

# ==========
# Deduction
# ==========
DEDUCE_TOP_COLOURS: int = 100
DEDUCE_ALPHAS: Tuple[float, ...] = (0.25, 0.50, 0.75, 0.90, 1.00)
DEDUCE_RECON_TOL_U8: float = 5.0
DEDUCE_SKIP_NEAR_BG: float = 0.01
DEDUCE_CANDIDATES_PER_UNKNOWN: int = 10

MAX_CANDIDATES_2_UNKNOWNS: int = 30
MAX_CANDIDATES_3_UNKNOWNS_ALL: int = 25
MAX_CANDIDATES_3_UNKNOWNS_SELECTED: int = 20

MAX_PENALTY_PER_COLOUR: float = 1e-5
RGB_CUBE_DIAGONAL: float = 1.732

NEUTRAL_FILL: Tuple[int, int, int] = (128, 128, 128)

STANDARD_COLOURS: List[Tuple[int, int, int]] = [
    (255, 0, 0),  # red
    (0, 255, 0),  # green
    (0, 0, 255),  # blue
    (255, 255, 0),  # yellow
    (255, 0, 255),  # magenta
    (0, 255, 255),  # cyan
    (255, 128, 0),  # orange
    (128, 0, 255),  # violet
]

# ====================
# Background detection
# ====================
EDGE_SAMPLE_INTERVAL: int = 10

# ===========
# Parallelism
# ===========
PARALLEL_MIN_COLOURS: int = 4096

__all__ = [
    "EPSILON",
    "BACKGROUND_MATCH_EPS",
    "DEFAULT_COLOUR_CLOSENESS_THRESHOLD",
    "RECONSTRUCTION_TOL",
    "PAIR_SEARCH_MAX_ALPHA",
    "ALPHA_SCAN_STEPS",
    "DEDUCE_TOP_COLOURS",
    "DEDUCE_ALPHAS",
    "DEDUCE_RECON_TOL_U8",
    "DEDUCE_SKIP_NEAR_BG",
    "DEDUCE_CANDIDATES_PER_UNKNOWN",
    "MAX_CANDIDATES_2_UNKNOWNS",
    "MAX_CANDIDATES_3_UNKNOWNS_ALL",
    "MAX_CANDIDATES_3_UNKNOWNS_SELECTED",
    "MAX_PENALTY_PER_COLOUR",
    "RGB_CUBE_DIAGONAL",
    "NEUTRAL_FILL",
    "STANDARD_COLOURS",
    "EDGE_SAMPLE_INTERVAL",
    "PARALLEL_MIN_COLOURS",
]
