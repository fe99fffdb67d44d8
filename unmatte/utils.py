# unmatte/utils.py
from __future__ import annotations

"""
Shared utilities for unmatte.

Timing strings, worker counts and span splitting for the threaded transform,
plus the line-oriented console logging used by the CLI and the debug paths.
"""

import os
import sys
from typing import Any, Iterable, List, Optional, TextIO, Tuple


# Timing


def format_seconds_compact(seconds: float) -> str:
    """'12.3ms', '4.567s' or '2m 5.0s'."""
    if seconds >= 60.0:
        minutes, rest = divmod(seconds, 60.0)
        return f"{int(minutes)}m {rest:.1f}s"
    if seconds >= 1.0:
        return f"{seconds:.3f}s"
    return f"{seconds * 1000.0:.1f}ms"


# Work splitting


def default_workers() -> int:
    """CPU count minus a small reserve that grows with the machine, at least 1."""
    cpus = os.cpu_count() or 4
    reserve = min(4, 1 + max(0, cpus - 1) // 6)
    return max(1, cpus - reserve)


def split_into_parts(length: int, parts: int) -> List[Tuple[int, int]]:
    """
    Contiguous [start, end) spans covering range(length), at most `parts` of them.

    Spans are returned in order so results can be stacked back directly.
    """
    if length <= 0:
        return []
    size = -(-length // max(1, int(parts)))
    return [(lo, min(lo + size, length)) for lo in range(0, length, size)]


# Console output


def enable_line_buffered_stdout() -> None:
    """Flush stdout per line where the stream allows it (CLI progress output)."""
    reconfigure = getattr(sys.stdout, "reconfigure", None)
    if not callable(reconfigure):
        return
    try:
        reconfigure(line_buffering=True, write_through=True)
    except (OSError, ValueError):
        pass


def format_bool_on_off(value: Any) -> str:
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Thousands separators for ints, at most six decimals for floats."""
    if isinstance(value, bool):
        return format_bool_on_off(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:.6f}".rstrip("0").rstrip(".") or "0"
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """'Name: value' pairs joined by `sep`; bools read on/off, numbers compact."""
    return sep.join(f"{name}{eq}{format_number_compact(value)}" for name, value in pairs)


def _emit(
    message: str, prefix: Optional[str] = None, stream: Optional[TextIO] = None
) -> None:
    text = message if prefix is None else f"[{prefix}] {message}"
    print(text, file=stream if stream is not None else sys.stdout, flush=True)


def log(message: str, stream: Optional[TextIO] = None) -> None:
    _emit(message, stream=stream)


def debug_log(message: str, stream: Optional[TextIO] = None) -> None:
    _emit(message, "debug", stream)


def warn(message: str, stream: Optional[TextIO] = None) -> None:
    _emit(message, "warn", stream)


def error(message: str) -> None:
    """Errors go to stderr so captured per-file stdout stays clean."""
    _emit(message, "error", sys.stderr)


def print_config_line(
    section: str,
    pairs: Iterable[Tuple[str, Any]],
    debug: bool,
    stream: Optional[TextIO] = None,
) -> None:
    """
    One '[section] Name: value  ...' line, e.g.
      [colours] Background: #ffffff (detected)  Foreground: #ff0000
    Sent through debug_log when debug is set, log otherwise.
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    if debug:
        debug_log(line, stream)
    else:
        log(line, stream)


def print_banner(title: str, stream: Optional[TextIO] = None) -> None:
    _emit(f"\n=== {title} ===", stream=stream)


__all__ = [
    "format_seconds_compact",
    "default_workers",
    "split_into_parts",
    "enable_line_buffered_stdout",
    "format_bool_on_off",
    "format_number_compact",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
