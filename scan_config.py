#!/usr/bin/env python3
"""
Scan configuration for Megethos

Holds the immutable per-invocation settings of a scan. All validation and
normalization happens once, in ScanConfig.create(), before any traversal.
"""

import pathlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

from auxiliary import format_bytes, normalize_extension


class ConfigurationError(Exception):
    """Invalid scan configuration (missing root, out-of-range numbers)"""


class ScanMode(Enum):
    FILES = "files"
    FOLDERS = "folders"


@dataclass(frozen=True)
class ScanConfig:
    """Immutable configuration for one scan"""

    root_path: pathlib.Path
    mode: ScanMode = ScanMode.FILES
    min_size_bytes: int = 0
    older_than_cutoff: Optional[datetime] = None
    top_n: Optional[int] = None
    exclude_dir_patterns: frozenset[str] = frozenset()
    exclude_extensions: frozenset[str] = frozenset()
    export_path: Optional[pathlib.Path] = None
    follow_symlinks: bool = False
    workers: int = 1

    @classmethod
    def create(
        cls,
        root_path,
        mode: ScanMode = ScanMode.FILES,
        min_size_bytes: int = 0,
        older_than_days: Optional[float] = None,
        top_n: Optional[int] = None,
        exclude_dirs: Iterable[str] = (),
        exclude_extensions: Iterable[str] = (),
        export_path=None,
        follow_symlinks: bool = False,
        workers: int = 1,
        now: Optional[datetime] = None,
    ) -> "ScanConfig":
        """Validate arguments and build a ScanConfig

        Raises:
            ConfigurationError: if the root is not an existing directory or a
                numeric argument is out of range
        """
        root = pathlib.Path(root_path).expanduser()
        if not root.exists():
            raise ConfigurationError(f"Path does not exist: {root}")
        if not root.is_dir():
            raise ConfigurationError(f"Not a directory: {root}")

        if min_size_bytes < 0:
            raise ConfigurationError(f"Minimum size must not be negative: {min_size_bytes}")
        if top_n is not None and top_n < 1:
            raise ConfigurationError(f"--top must be a positive integer: {top_n}")
        if workers < 1:
            raise ConfigurationError(f"--workers must be a positive integer: {workers}")

        cutoff = None
        if older_than_days is not None:
            if older_than_days < 0:
                raise ConfigurationError(f"--older-than-days must not be negative: {older_than_days}")
            now = now or datetime.now(timezone.utc)
            cutoff = now - timedelta(days=older_than_days)

        try:
            extensions = frozenset(normalize_extension(ext) for ext in exclude_extensions)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        patterns = frozenset(p.strip().lower() for p in exclude_dirs if p.strip())

        return cls(
            root_path=root.resolve(),
            mode=mode,
            min_size_bytes=int(min_size_bytes),
            older_than_cutoff=cutoff,
            top_n=top_n,
            exclude_dir_patterns=patterns,
            exclude_extensions=extensions,
            export_path=pathlib.Path(export_path).expanduser() if export_path else None,
            follow_symlinks=follow_symlinks,
            workers=workers,
        )

    def describe(self) -> dict:
        """Settings as display-ready key/value pairs"""
        info = {
            "Root": str(self.root_path),
            "Mode": self.mode.value,
            "Minimum size": format_bytes(self.min_size_bytes),
        }
        if self.older_than_cutoff:
            info["Modified before"] = self.older_than_cutoff.isoformat(timespec="seconds")
        if self.top_n:
            info["Top"] = self.top_n
        if self.exclude_dir_patterns:
            info["Excluded dirs"] = sorted(self.exclude_dir_patterns)
        if self.exclude_extensions:
            info["Excluded extensions"] = sorted(self.exclude_extensions)
        if self.export_path:
            info["Export"] = str(self.export_path)
        if self.workers > 1:
            info["Workers"] = self.workers
        return info
