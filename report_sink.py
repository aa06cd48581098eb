#!/usr/bin/env python3
"""
Report Sink Module for Megethos

Renders ranked scan records as Rich tables and exports them as UTF-8 CSV.
Exports are written to a temporary file next to the destination and moved
into place, so a failed export never leaves a half-written report behind.
"""

import contextlib
import csv
import logging
import os
import pathlib
import shutil
import tempfile
from datetime import datetime
from typing import Union

from rich import box
from rich.table import Table

from auxiliary import format_bytes, format_path_for_display
from console_ui import ConsoleUI
from file_aggregator import FileRecord, FolderRecord, ScanOutcome
from scan_config import ScanMode

logger = logging.getLogger(__name__)

FILE_FIELDS = ("full_path", "parent_directory", "name", "extension", "size_bytes", "last_modified", "created")
FOLDER_FIELDS = ("folder_path", "total_size_bytes", "item_count")


class ExportError(Exception):
    """Export destination could not be written"""

    def __init__(self, path, reason: str):
        self.path = pathlib.Path(path)
        self.reason = reason
        super().__init__(f"Could not export to {self.path}: {reason}")


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def _row(record: Union[FileRecord, FolderRecord]) -> list:
    if isinstance(record, FolderRecord):
        return [record.folder_path, record.total_size_bytes, record.item_count]
    return [
        record.full_path,
        record.parent_directory,
        record.name,
        record.extension,
        record.size_bytes,
        record.last_modified.isoformat(),
        record.created.isoformat(),
    ]


def export_records(records: list, path, mode: ScanMode) -> pathlib.Path:
    """Write records to *path* as CSV, creating missing parent directories.

    Returns:
        The destination path

    Raises:
        ExportError: if the directory or file cannot be written
    """
    destination = pathlib.Path(path)
    fields = FOLDER_FIELDS if mode is ScanMode.FOLDERS else FILE_FIELDS

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
    except OSError as e:
        raise ExportError(destination, e.strerror or str(e)) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_MINIMAL)
            writer.writerow(fields)
            for record in records:
                writer.writerow(_row(record))
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, destination)
    except (OSError, UnicodeError) as e:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        if isinstance(e, UnicodeError):
            # Non UTF-8 file names arrive as surrogate-escaped str on POSIX
            raise ExportError(destination, f"name not representable as UTF-8 ({e})") from e
        raise ExportError(destination, e.strerror or str(e)) from e

    logger.info("Exported %d records to %s", len(records), destination)
    return destination


def load_export(path) -> list:
    """Read a CSV written by export_records back into records"""
    with pathlib.Path(path).open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        header = tuple(reader.fieldnames or ())

        if header == FOLDER_FIELDS:
            return [
                FolderRecord(
                    folder_path=row["folder_path"],
                    total_size_bytes=int(row["total_size_bytes"]),
                    item_count=int(row["item_count"]),
                )
                for row in reader
            ]
        if header == FILE_FIELDS:
            return [
                FileRecord(
                    full_path=row["full_path"],
                    parent_directory=row["parent_directory"],
                    name=row["name"],
                    extension=row["extension"],
                    size_bytes=int(row["size_bytes"]),
                    last_modified=datetime.fromisoformat(row["last_modified"]),
                    created=datetime.fromisoformat(row["created"]),
                )
                for row in reader
            ]

    raise ValueError(f"Unrecognized export header in {path}: {', '.join(header)}")


# ---------------------------------------------------------------------------
# Console rendering
# ---------------------------------------------------------------------------


class ReportSink:
    """Presents scan results on the console and persists them on request"""

    def __init__(self, ui: ConsoleUI):
        self.ui = ui

    def render(self, records: list, mode: ScanMode) -> bool:
        """Print the ranked records; returns False when there was nothing to show"""
        if not records:
            if mode is ScanMode.FOLDERS:
                self.ui.print_success("No folders matched the filters.")
            else:
                self.ui.print_success("No files matched the filters.")
            return False

        if mode is ScanMode.FOLDERS:
            table = self._folder_table(records)
        else:
            table = self._file_table(records)

        self.ui.console.print(table)
        self.ui.console.print()
        return True

    def _file_table(self, records: list[FileRecord]) -> Table:
        table = Table(title="Largest Files", box=box.ROUNDED, show_lines=False)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Size", style="yellow", justify="right", min_width=10)
        table.add_column("Modified", style="dim", min_width=10)
        table.add_column("Path", style="white", overflow="fold")

        for idx, record in enumerate(records, 1):
            table.add_row(
                str(idx),
                format_bytes(record.size_bytes),
                record.last_modified.astimezone().strftime("%Y-%m-%d"),
                format_path_for_display(record.full_path),
            )
        return table

    def _folder_table(self, records: list[FolderRecord]) -> Table:
        table = Table(title="Folder Sizes", box=box.ROUNDED, show_lines=False)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Size", style="yellow", justify="right", min_width=10)
        table.add_column("Items", style="dim", justify="right", min_width=8)
        table.add_column("Folder", style="cyan", overflow="fold")

        for idx, record in enumerate(records, 1):
            table.add_row(
                str(idx),
                format_bytes(record.total_size_bytes),
                f"{record.item_count:,}",
                format_path_for_display(record.folder_path),
            )
        return table

    def render_summary(self, outcome: ScanOutcome, shown: list):
        """Totals, scan statistics and the usage of the volume holding the root"""
        stats = outcome.stats
        if outcome.config.mode is ScanMode.FOLDERS:
            total = sum(r.total_size_bytes for r in shown)
            noun = "folders"
        else:
            total = sum(r.size_bytes for r in shown)
            noun = "files"

        if shown:
            self.ui.print_info(f"Showing {len(shown)} of {len(outcome.records)} {noun}, {format_bytes(total)} total")

        skipped_note = f", {stats.entries_skipped:,} unreadable skipped" if stats.entries_skipped else ""
        pruned_note = f", {stats.dirs_pruned:,} excluded dirs pruned" if stats.dirs_pruned else ""
        self.ui.print_info(
            f"Scanned {stats.dirs_scanned:,} dirs and {stats.files_seen:,} files "
            f"in {outcome.elapsed_sec:.1f}s{skipped_note}{pruned_note}"
        )

        try:
            usage = shutil.disk_usage(outcome.config.root_path)
        except OSError as e:
            logger.debug("Volume usage unavailable for %s: %s", outcome.config.root_path, e)
        else:
            self.ui.print_plain(
                f"Volume: {format_bytes(usage.used)} used of {format_bytes(usage.total)}, "
                f"{format_bytes(usage.free)} free"
            )

        if outcome.interrupted:
            self.ui.print_warning("Scan was interrupted; results are partial.")

    def export(self, records: list, path, mode: ScanMode) -> pathlib.Path:
        """Export records and confirm on the console; ExportError propagates"""
        destination = export_records(records, path, mode)
        self.ui.print_success(f"Exported {len(records)} rows to {format_path_for_display(str(destination))}")
        return destination
