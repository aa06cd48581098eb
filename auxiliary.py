#!/usr/bin/env python3
"""
Auxiliary utility functions for Megethos

Formatting and argument-parsing helpers shared by the scan engine,
the report sink and the command line front end.
"""

import math
import pathlib
from typing import Optional

_SIZE_MULTIPLIERS = {
    "TIB": 1024**4,
    "GIB": 1024**3,
    "MIB": 1024**2,
    "KIB": 1024,
    "TB": 1024**4,
    "GB": 1024**3,
    "MB": 1024**2,
    "KB": 1024,
    "T": 1024**4,
    "G": 1024**3,
    "M": 1024**2,
    "K": 1024,
    "B": 1,
}


def format_bytes(size_bytes: int) -> str:
    """Format byte size into human-readable string

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.2 GiB", "345.0 MiB", "12.0 KiB", or "789 B"
    """
    if size_bytes >= 1024**4:
        return f"{size_bytes / (1024**4):.1f} TiB"
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GiB"
    if size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MiB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    return f"{size_bytes} B"


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format file path for display by replacing home directory with ~

    Undecodable bytes in POSIX file names (surrogate escapes) are shown as U+FFFD.
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())

    path = path.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    if home_path and path.startswith(home_path):
        return "~" + path[len(home_path) :]
    return path


def parse_size(value: str) -> int:
    """Parse a human-readable size string like '500M' or '1.5GiB' into bytes.

    Multipliers are binary (K = 1024). A bare number is taken as bytes.

    Raises:
        ValueError: if the value is empty, malformed, negative or not finite
    """
    text = str(value).strip().upper().replace(" ", "")
    if not text:
        raise ValueError("empty size value")

    multiplier = 1
    for suffix, mult in _SIZE_MULTIPLIERS.items():
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            multiplier = mult
            break

    try:
        number = float(text)
    except ValueError:
        raise ValueError(f"invalid size value: {value!r}") from None

    if not math.isfinite(number):
        raise ValueError(f"size must be a finite number: {value!r}")
    if number < 0:
        raise ValueError(f"size must not be negative: {value!r}")
    return int(number * multiplier)


def normalize_extension(value: str) -> str:
    """Return a lower-cased, dot-prefixed extension ('BAK' -> '.bak')"""
    ext = value.strip().lower()
    if not ext or ext == ".":
        raise ValueError(f"invalid extension: {value!r}")
    if not ext.startswith("."):
        ext = "." + ext
    return ext


def split_csv_arg(value: Optional[str]) -> list[str]:
    """Split a comma-separated command line value, dropping blanks"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
