#!/usr/bin/env python3
"""
Configuration management for Megethos

Two layers sit below the command line flags:

- bundled defaults and exclusion presets in megethos_defaults.toml
- user exclusions and run statistics persisted in the shared kosmos
  configuration file (~/.kosmos/config.json, "megethos" section)
"""

import contextlib
import json
import logging
import os
import pathlib
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

import tomllib

from auxiliary import normalize_extension, parse_size

logger = logging.getLogger(__name__)

TOOL_NAME = "megethos"
DEFAULTS_FILE = pathlib.Path(__file__).parent / "megethos_defaults.toml"


# ---------------------------------------------------------------------------
# Bundled defaults
# ---------------------------------------------------------------------------


@dataclass
class Preset:
    name: str
    exclude_dirs: list[str] = field(default_factory=list)
    exclude_extensions: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class BundledDefaults:
    files_min_size: int = 500 * 1024**2
    folders_min_size: int = 0
    top: Optional[int] = None
    presets: dict[str, Preset] = field(default_factory=dict)


def load_defaults(path: pathlib.Path = DEFAULTS_FILE) -> BundledDefaults:
    """Load default thresholds and exclusion presets from a TOML file.

    A missing file yields the built-in defaults without presets.
    """
    if not path.exists():
        logger.debug("Defaults file %s not found, using built-in defaults", path)
        return BundledDefaults()

    with path.open("rb") as f:
        data = tomllib.load(f)

    defaults = data.get("defaults", {})
    top = defaults.get("top")
    if top is not None and (isinstance(top, bool) or not isinstance(top, int) or top < 1):
        raise ValueError(f"{path}: [defaults] top must be a positive integer, got {top!r}")
    presets = {
        name: Preset(
            name=name,
            exclude_dirs=list(entry.get("exclude_dirs", [])),
            exclude_extensions=list(entry.get("exclude_extensions", [])),
            description=entry.get("description", ""),
        )
        for name, entry in data.get("presets", {}).items()
    }

    return BundledDefaults(
        files_min_size=parse_size(defaults.get("files_min_size", "500M")),
        folders_min_size=parse_size(defaults.get("folders_min_size", "0")),
        top=top,
        presets=presets,
    )


# ---------------------------------------------------------------------------
# Persisted user configuration
# ---------------------------------------------------------------------------


@dataclass
class MegethosConfig:
    """User settings persisted between runs"""

    exclude_dirs: list[str] = field(default_factory=list)
    exclude_extensions: list[str] = field(default_factory=list)
    last_run: Optional[str] = None
    stats: dict = field(default_factory=lambda: {"total_runs": 0, "largest_seen_bytes": 0})

    def add_exclude_dirs(self, patterns: list[str]) -> list[str]:
        """Add directory patterns; returns the ones that were new"""
        added = []
        for pattern in patterns:
            if pattern not in self.exclude_dirs:
                self.exclude_dirs.append(pattern)
                added.append(pattern)
        return added

    def add_exclude_extensions(self, extensions: list[str]) -> list[str]:
        """Add extensions (normalized to '.ext'); returns the ones that were new"""
        added = []
        for ext in extensions:
            ext = normalize_extension(ext)
            if ext not in self.exclude_extensions:
                self.exclude_extensions.append(ext)
                added.append(ext)
        return added

    def clear_exclusions(self):
        self.exclude_dirs = []
        self.exclude_extensions = []

    def record_run(self, largest_bytes: int = 0):
        """Update last run timestamp and run statistics"""
        self.stats["total_runs"] = self.stats.get("total_runs", 0) + 1
        self.stats["largest_seen_bytes"] = max(self.stats.get("largest_seen_bytes", 0), largest_bytes)
        self.last_run = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MegethosConfig":
        """Create from dictionary"""
        config = cls(
            exclude_dirs=list(data.get("exclude_dirs", [])),
            exclude_extensions=list(data.get("exclude_extensions", [])),
            last_run=data.get("last_run"),
        )
        config.stats.update(data.get("stats", {}))
        return config


class SharedConfigManager:
    """Reads and writes the megethos section of the shared kosmos config file"""

    def __init__(self, kosmos_dir: Optional[pathlib.Path] = None):
        """Initialize configuration manager

        Args:
            kosmos_dir: Override default .kosmos directory location
        """
        self.kosmos_dir = kosmos_dir or pathlib.Path.home() / ".kosmos"
        self.config_file = self.kosmos_dir / "config.json"

    def _read_all(self) -> dict:
        if not self.config_file.exists():
            return {}
        try:
            with self.config_file.open(encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            # Corrupted or unreadable config falls back to defaults
            logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> MegethosConfig:
        """Load the megethos section, or defaults if absent"""
        section = self._read_all().get(TOOL_NAME)
        if not isinstance(section, dict):
            return MegethosConfig()
        return MegethosConfig.from_dict(section)

    def save(self, config: MegethosConfig):
        """Save the megethos section, leaving other tools' sections untouched

        The file is replaced atomically, so a failed write keeps the previous
        contents.
        """
        data = self._read_all()
        data.setdefault("version", "1.0")
        data[TOOL_NAME] = config.to_dict()

        self.kosmos_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".config.", suffix=".tmp", dir=self.kosmos_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.config_file)
        except OSError:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
