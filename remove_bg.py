#!/usr/bin/env python3
"""
remove_bg.py
Remove a solid background colour from images, recovering per-pixel alpha.

Usage:
  python remove_bg.py INPUT [OUTPUT] --bg HEX --fg HEX|auto ... --strict --threshold T --trim --detect --debug

Modes:
  default : pixels close to a --fg colour are unmixed against the --fg list;
            everything else gets the smallest alpha that reproduces it.
  strict  : every pixel is unmixed against the --fg list only.
  no --fg : every pixel gets the smallest alpha that reproduces it.

Input:
  Any Pillow-readable image, or a folder of .png/.jpg/.jpeg/.webp files.
  Existing translucency is composited over the background first.

Output:
  PNG. If OUTPUT is omitted, writes <stem>-unmatte.png next to INPUT
  (or in --outdir), adding -1, -2, ... if that name is taken.

Notes:
  Foreground "auto" slots are deduced from the image's colour histogram.
  Without --bg the background is the majority colour along the borders.
"""

from __future__ import annotations

import argparse
import io
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from PIL import UnidentifiedImageError

from unmatte.background import detect_background_colour
from unmatte.core_types import rgb_to_hex
from unmatte.image_io import load_image_rgba, save_image_rgba
from unmatte.process import ProcessOptions, remove_background
from unmatte.utils import (
    default_workers,
    enable_line_buffered_stdout,
    error,
    format_seconds_compact,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
    warn,
)

OUTPUT_SUFFIX = "-unmatte"
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp"}

# CLI args & small helpers


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments for background removal.

    Returns:
      argparse.Namespace with:
        src: Path to image or folder
        output: optional Path for a single-file output
        outdir: optional Path for outputs
        bg: optional background hex
        fg: optional list of foreground hex strings / "auto"
        strict: bool
        threshold: float closeness threshold
        trim: bool crop transparent margins
        detect: only print the detected background colour
        jobs: parallel file workers
        workers: internal threads for the per-pixel transform
        debug: bool for verbose details
    """
    parser = argparse.ArgumentParser(
        prog="remove_bg",
        description="Remove solid background colours from images.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "output", type=Path, nargs="?", default=None, help="Output file (optional)"
    )
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "-b", "--bg", default=None, help="Background colour (hex, e.g. #ffffff or fff)"
    )
    parser.add_argument(
        "-f",
        "--fg",
        nargs="+",
        default=None,
        help='Foreground colours (hex, or "auto" to deduce)',
    )
    parser.add_argument(
        "-s",
        "--strict",
        action="store_true",
        help="Only use the specified foreground colours",
    )
    parser.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=None,
        help="Colour closeness threshold (0.0-1.0, default 0.05)",
    )
    parser.add_argument(
        "--trim", action="store_true", help="Trim output to the content bounding box"
    )
    parser.add_argument(
        "--detect",
        action="store_true",
        help="Only detect and print the background colour",
    )
    parser.add_argument(
        "--jobs", type=int, default=1, help="Files processed in parallel"
    )
    parser.add_argument(
        "--workers", type=int, default=default_workers(), help="Internal workers"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def generate_output_path(src: Path, outdir: Optional[Path] = None) -> Path:
    """<stem>-unmatte.png beside src (or in outdir), numbered if already taken."""
    folder = outdir if outdir is not None else src.parent
    candidate = folder / f"{src.stem}{OUTPUT_SUFFIX}.png"
    counter = 1
    while candidate.exists():
        candidate = folder / f"{src.stem}{OUTPUT_SUFFIX}-{counter}.png"
        counter += 1
    return candidate


def _is_output_artifact(path: Path) -> bool:
    stem = path.stem
    if stem.endswith(OUTPUT_SUFFIX):
        return True
    head, _, tail = stem.rpartition("-")
    return tail.isdigit() and head.endswith(OUTPUT_SUFFIX)


def build_options(args: argparse.Namespace) -> ProcessOptions:
    kwargs = dict(
        foreground_colours=tuple(args.fg or ()),
        background_colour=args.bg,
        strict_mode=bool(args.strict),
        trim=bool(args.trim),
        workers=max(1, int(args.workers)),
        debug=bool(args.debug),
    )
    if args.threshold is not None:
        kwargs["threshold"] = float(args.threshold)
    options = ProcessOptions(**kwargs)
    options.validate()
    return options


# Per-file processing


def _detect_only(src_path: Path, stream: Optional[TextIO] = None) -> None:
    rgba = load_image_rgba(src_path)
    r, g, b = detect_background_colour(rgba)
    log(
        f"Detected background colour: {rgb_to_hex((r, g, b))} (rgb({r}, {g}, {b}))",
        stream,
    )


def _process_single_image(
    src_path: Path,
    out_path: Optional[Path],
    options: ProcessOptions,
    stream: Optional[TextIO] = None,
) -> Path:
    """Load, report the settings, remove the background, save, report the result."""
    t_start = time.perf_counter()
    print_banner(src_path.name, stream)

    rgba = load_image_rgba(src_path)
    height, width = rgba.shape[0], rgba.shape[1]

    if options.background_colour is not None:
        bg_display = options.background_colour
    else:
        bg_display = f"{rgb_to_hex(detect_background_colour(rgba))} (auto-detected)"
    pairs = [("Size", f"{width}x{height}"), ("Background", bg_display)]
    if options.foreground_colours:
        pairs.append(("Foreground", ", ".join(options.foreground_colours)))
    pairs.append(("Mode", "strict" if options.strict_mode else "default"))
    pairs.append(("Threshold", float(options.threshold)))
    pairs.append(("Trim", options.trim))
    log(key_value_pairs_to_string(pairs), stream)

    out = remove_background(rgba, options)
    if out_path is None:
        out_path = generate_output_path(src_path)
    written = save_image_rgba(out_path, out)

    opaque = int((out[..., 3] == 255).sum())
    clear = int((out[..., 3] == 0).sum())
    log(
        f"Wrote {written.name} | size={out.shape[1]}x{out.shape[0]} "
        f"| opaque={opaque:,} | transparent={clear:,}",
        stream,
    )
    log(f"Total time {format_seconds_compact(time.perf_counter() - t_start)}", stream)
    return written


def _run_one(
    path: Path,
    out_path: Optional[Path],
    options: ProcessOptions,
    detect: bool,
    stream: Optional[TextIO] = None,
) -> bool:
    """Process or detect one file; reports failures and returns False on error."""
    try:
        if detect:
            _detect_only(path, stream)
        else:
            _process_single_image(path, out_path, options, stream)
        return True
    except (UnidentifiedImageError, OSError, ValueError) as e:
        error(f"{path.name}: {e}")
        return False


def _run_one_captured(
    path: Path, outdir: Optional[Path], options: ProcessOptions, detect: bool
) -> Tuple[bool, str]:
    """
    _run_one writing into a private buffer so parallel files print as whole
    blocks. Worker threads share sys.stdout, so it is never redirected here.
    """
    buf = io.StringIO()
    dst = generate_output_path(path, outdir) if outdir else None
    ok = _run_one(path, dst, options, detect, buf)
    return ok, buf.getvalue()


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """
    Console entry point. Returns the process exit code.

    0 on success, 1 when options are invalid or any file fails, 2 when the
    input path does not exist. Folder input honours --jobs; per-file output
    is printed in file-name order either way.
    """
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    src = args.src
    if not src.exists():
        error(f"Input file not found: {src}")
        return 2

    try:
        options = build_options(args)
    except ValueError as e:
        error(str(e))
        return 1

    print_config_line(
        "run",
        [("Workers", options.workers), ("Jobs", args.jobs)],
        debug=args.debug,
    )

    if args.outdir is not None and not args.detect:
        args.outdir.mkdir(parents=True, exist_ok=True)

    if not src.is_dir():
        out = args.output
        if out is None and args.outdir is not None:
            out = generate_output_path(src, args.outdir)
        return 0 if _run_one(src, out, options, args.detect) else 1

    files = [
        p
        for p in src.iterdir()
        if p.is_file() and p.suffix.lower() in IMAGE_EXTS and not _is_output_artifact(p)
    ]
    files.sort(key=lambda p: p.name.lower())
    if args.output is not None:
        warn(f"OUTPUT is ignored for folder input: {args.output}")
    if not files:
        warn(f"No images found in {src}")
        return 0

    if args.jobs <= 1:
        results = []
        for p in files:
            dst = generate_output_path(p, args.outdir) if args.outdir else None
            results.append(_run_one(p, dst, options, args.detect))
    else:
        with ThreadPoolExecutor(max_workers=args.jobs) as ex:
            futures = [
                ex.submit(_run_one_captured, p, args.outdir, options, args.detect)
                for p in files
            ]
            blocks = [f.result() for f in futures]
        print("".join(text for _ok, text in blocks), end="", flush=True)
        results = [ok for ok, _text in blocks]

    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
