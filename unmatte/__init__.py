# unmatte/__init__.py
"""
unmatte package.

Purpose:
  Remove a uniform background colour from an image by unmixing every pixel
  into foreground colour(s) plus the background, recovering per-pixel alpha.
  See remove_bg.py for the CLI.

Public API:
  remove_background : full transform of an RGBA array (ProcessOptions).
  process_image_bytes / process_image_file : encoded in, PNG out.
  deduce_palette    : resolve "auto" foreground slots without transforming.
  colour_convert    : byte <-> normalized colour helpers and distance.
  core_types        : shared aliases and value objects (Known, Unknown, UnmixResult).
  unmix / min_alpha / deduce / pipeline : the engine pieces.
  utils             : formatting, work splitting, logging.

Quick start:
  from unmatte import ProcessOptions, remove_background
  out = remove_background(rgba, ProcessOptions(foreground_colours=["auto"]))
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import constants
from . import unmix
from . import min_alpha
from . import deduce
from . import pipeline
from . import utils

# Entry points. ImportError should surface immediately if missing.
from .process import (  # noqa: E402,F401
    ProcessOptions,
    compute_unmix_result_colour,
    deduce_palette,
    detect_background,
    process_image_bytes,
    process_image_file,
    remove_background,
    unmix_colour,
)

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "constants",
    "unmix",
    "min_alpha",
    "deduce",
    "pipeline",
    "utils",
    "ProcessOptions",
    "remove_background",
    "process_image_bytes",
    "process_image_file",
    "deduce_palette",
    "detect_background",
    "unmix_colour",
    "compute_unmix_result_colour",
]
