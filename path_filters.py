#!/usr/bin/env python3
"""
Path and file filters for Megethos

is_excluded() decides at each directory boundary whether a subtree is pruned;
accepts() decides whether a single file makes it into a large-file report.
"""

import fnmatch
from typing import Iterable

from scan_config import ScanConfig


def is_excluded(directory_name: str, patterns: Iterable[str]) -> bool:
    """Return True if a directory name matches any exclusion pattern.

    Patterns are shell-style wildcards (``*``, ``?``, ``[...]``); an exact
    name is simply a pattern without wildcards. Matching is case-insensitive.
    """
    name = directory_name.lower()
    # fnmatchcase: both sides already lower-cased, keep semantics platform independent
    return any(fnmatch.fnmatchcase(name, pattern.lower()) for pattern in patterns)


def accepts(file, config: ScanConfig) -> bool:
    """Return True if a file passes the size, age and extension filters.

    *file* is anything exposing ``size_bytes``, ``last_modified`` and
    ``extension``. Checks run cheapest first and stop at the first rejection.
    """
    if file.size_bytes < config.min_size_bytes:
        return False

    if config.older_than_cutoff is not None and file.last_modified > config.older_than_cutoff:
        return False

    if file.extension and file.extension.lower() in config.exclude_extensions:
        return False

    return True
