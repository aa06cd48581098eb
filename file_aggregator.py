#!/usr/bin/env python3
"""
File Aggregator Module for Megethos

Walks a directory tree once and produces either a flat list of large files
(FileRecord) or one recursive size total per top-level child directory
(FolderRecord). Excluded directories are pruned at the boundary and never
opened. Unreadable entries are reported as EntryAccessError values, counted,
and skipped; they never abort a scan.
"""

import logging
import os
import stat as statmod
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional, Union

from path_filters import accepts, is_excluded
from scan_config import ScanConfig, ScanMode

logger = logging.getLogger(__name__)

PROGRESS_EVERY_DIRS = 200

ProgressCb = Callable[[str, int, int], None]  # (current_dir, dirs_scanned, files_seen)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Entry:
    """One successfully enumerated filesystem entry"""

    name: str
    path: str
    is_dir: bool
    size_bytes: int
    last_modified: datetime
    created: datetime

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1].lower()


@dataclass(frozen=True)
class EntryAccessError:
    """An entry that could not be read (permission denied, vanished, broken link)"""

    path: str
    reason: str


EntryResult = Union[Entry, EntryAccessError]


@dataclass(frozen=True)
class FileRecord:
    """A file that survived filtering in large-file mode"""

    full_path: str
    parent_directory: str
    name: str
    extension: str
    size_bytes: int
    last_modified: datetime
    created: datetime

    @property
    def size_mb(self) -> float:
        return self.size_bytes / 1024**2

    @property
    def size_gb(self) -> float:
        return self.size_bytes / 1024**3

    @classmethod
    def from_entry(cls, entry: Entry) -> "FileRecord":
        return cls(
            full_path=entry.path,
            parent_directory=os.path.dirname(entry.path),
            name=entry.name,
            extension=entry.extension,
            size_bytes=entry.size_bytes,
            last_modified=entry.last_modified,
            created=entry.created,
        )


@dataclass
class FolderRecord:
    """Recursive totals for one immediate child directory of the scan root"""

    folder_path: str
    total_size_bytes: int = 0
    item_count: int = 0


@dataclass
class ScanStats:
    dirs_scanned: int = 0
    files_seen: int = 0
    entries_skipped: int = 0
    dirs_pruned: int = 0

    def merge(self, other: "ScanStats"):
        self.dirs_scanned += other.dirs_scanned
        self.files_seen += other.files_seen
        self.entries_skipped += other.entries_skipped
        self.dirs_pruned += other.dirs_pruned


@dataclass
class ScanOutcome:
    """Everything one scan produced, handed over to ranking and reporting"""

    config: ScanConfig
    records: list = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)
    elapsed_sec: float = 0.0
    interrupted: bool = False


# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------


def _stat_entry(entry: os.DirEntry, follow_symlinks: bool) -> os.stat_result:
    return entry.stat(follow_symlinks=follow_symlinks)


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _describe_error(error: OSError) -> str:
    return error.strerror or error.__class__.__name__


def iter_entries(directory: str, follow_symlinks: bool = False) -> Iterator[EntryResult]:
    """Enumerate one directory, yielding an Entry or an EntryAccessError per item.

    A directory that cannot be opened yields a single error. An entry that
    cannot be stat'ed yields an error and enumeration continues with its
    siblings. Symlinks are skipped unless *follow_symlinks* is set.
    """
    try:
        iterator = os.scandir(directory)
    except OSError as e:
        yield EntryAccessError(str(directory), _describe_error(e))
        return

    with iterator:
        while True:
            try:
                entry = next(iterator)
            except StopIteration:
                break
            except OSError as e:
                yield EntryAccessError(str(directory), _describe_error(e))
                break

            try:
                if entry.is_symlink() and not follow_symlinks:
                    continue
                st = _stat_entry(entry, follow_symlinks)
            except OSError as e:
                yield EntryAccessError(entry.path, _describe_error(e))
                continue

            is_dir = statmod.S_ISDIR(st.st_mode)
            yield Entry(
                name=entry.name,
                path=entry.path,
                is_dir=is_dir,
                size_bytes=0 if is_dir else int(st.st_size),
                last_modified=_timestamp(st.st_mtime),
                created=_timestamp(getattr(st, "st_birthtime", st.st_ctime)),
            )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class FileAggregator:
    """Runs one traversal per scan and accumulates records for the chosen mode"""

    def __init__(
        self,
        progress_callback: Optional[ProgressCb] = None,
        cancel_flag: Optional[Callable[[], bool]] = None,
    ):
        """Initialize aggregator

        Args:
            progress_callback: Optional callback receiving (current_dir, dirs_scanned, files_seen)
            cancel_flag: Optional callable returning True once the scan should stop
        """
        self.progress_callback = progress_callback
        self.cancel_flag = cancel_flag

    def scan(self, config: ScanConfig) -> ScanOutcome:
        start = time.monotonic()

        if config.mode is ScanMode.FOLDERS:
            records, stats = self._scan_folders(config)
        else:
            records, stats = self._scan_files(config)

        outcome = ScanOutcome(
            config=config,
            records=records,
            stats=stats,
            elapsed_sec=time.monotonic() - start,
            interrupted=self._cancelled(),
        )
        logger.debug(
            "Scan of %s finished: %d records, %d dirs, %d files, %d skipped, %d pruned",
            config.root_path,
            len(records),
            stats.dirs_scanned,
            stats.files_seen,
            stats.entries_skipped,
            stats.dirs_pruned,
        )
        return outcome

    # -- large-file mode ------------------------------------------------------

    def _scan_files(self, config: ScanConfig) -> tuple[list[FileRecord], ScanStats]:
        records: list[FileRecord] = []
        stats = ScanStats()

        def collect(entry: Entry):
            if not entry.is_dir and accepts(entry, config):
                records.append(FileRecord.from_entry(entry))

        self._walk(str(config.root_path), config, stats, collect)
        return records, stats

    # -- folder-size mode -----------------------------------------------------

    def _scan_folders(self, config: ScanConfig) -> tuple[list[FolderRecord], ScanStats]:
        stats = ScanStats()
        stats.dirs_scanned += 1
        children: list[str] = []

        for item in iter_entries(str(config.root_path), config.follow_symlinks):
            if isinstance(item, EntryAccessError):
                self._skip(item, stats)
                continue
            if not item.is_dir:
                stats.files_seen += 1
                continue
            if is_excluded(item.name, config.exclude_dir_patterns):
                self._prune(item, stats)
                continue
            children.append(item.path)

        if config.workers > 1 and len(children) > 1:
            with ThreadPoolExecutor(max_workers=config.workers) as pool:
                results = list(pool.map(lambda path: self._measure_folder(path, config), children))
        else:
            results = [self._measure_folder(path, config) for path in children]

        records: list[FolderRecord] = []
        for record, folder_stats in results:
            records.append(record)
            stats.merge(folder_stats)
        return records, stats

    def _measure_folder(self, folder_path: str, config: ScanConfig) -> tuple[FolderRecord, ScanStats]:
        """Sum sizes and count entries below one folder; owns its own accumulator"""
        record = FolderRecord(folder_path=folder_path)
        stats = ScanStats()

        def add(entry: Entry):
            record.item_count += 1
            if not entry.is_dir:
                record.total_size_bytes += entry.size_bytes

        self._walk(folder_path, config, stats, add)
        return record, stats

    # -- traversal --------------------------------------------------------------

    def _walk(self, top: str, config: ScanConfig, stats: ScanStats, visit: Callable[[Entry], None]):
        """Depth-first traversal below *top*, pruning excluded directories"""
        stack = [top]
        seen: set[str] = {os.path.realpath(top)} if config.follow_symlinks else set()

        while stack:
            if self._cancelled():
                return

            current = stack.pop()
            stats.dirs_scanned += 1
            if self.progress_callback and stats.dirs_scanned % PROGRESS_EVERY_DIRS == 0:
                self.progress_callback(current, stats.dirs_scanned, stats.files_seen)

            for item in iter_entries(current, config.follow_symlinks):
                if isinstance(item, EntryAccessError):
                    self._skip(item, stats)
                    continue

                if item.is_dir:
                    if is_excluded(item.name, config.exclude_dir_patterns):
                        self._prune(item, stats)
                        continue
                    if config.follow_symlinks:
                        # Symlinked directories can form cycles
                        real = os.path.realpath(item.path)
                        if real in seen:
                            continue
                        seen.add(real)
                    visit(item)
                    stack.append(item.path)
                else:
                    stats.files_seen += 1
                    visit(item)

    def _skip(self, error: EntryAccessError, stats: ScanStats):
        stats.entries_skipped += 1
        logger.debug("Skipping unreadable entry %s: %s", error.path, error.reason)

    def _prune(self, entry: Entry, stats: ScanStats):
        stats.dirs_pruned += 1
        logger.debug("Pruned excluded directory %s", entry.path)

    def _cancelled(self) -> bool:
        return bool(self.cancel_flag and self.cancel_flag())
