#!/usr/bin/env python3
"""
Megethos — Ancient Greek μέγεθος (size, magnitude)

A disk usage reporting tool. Finds the largest files below a directory, or
sums up the size of every top-level folder, with exclusion rules that prune
whole subtrees (node_modules, .git, ...) before they are ever walked.

Usage:
    megethos files [path]                          # Files >= 500 MiB
    megethos files ~ --min-size 1G --top 20        # Twenty largest files over 1 GiB
    megethos files . --older-than-days 365 --exclude-extensions bak,tmp
    megethos files ~/src --preset dev --export ~/reports/big.csv
    megethos folders [path] --min-size 10M         # Folder totals >= 10 MiB
    megethos config                                # Show persisted exclusions
    megethos config --add-exclude-dirs node_modules,.git
    megethos config --reset
"""

import argparse
import logging
import pathlib
import signal
import sys
from typing import Optional

from auxiliary import format_bytes, format_path_for_display, parse_size, split_csv_arg
from console_ui import ConsoleUI, configure_logging
from file_aggregator import FileAggregator, ScanOutcome
from megethos_config import SharedConfigManager, load_defaults
from report_sink import ExportError, ReportSink
from result_ranker import rank, size_of
from scan_config import ConfigurationError, ScanConfig, ScanMode

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_EXPORT_ERROR = 1
EXIT_WRITE_ERROR = 1
EXIT_CONFIG_ERROR = 2


class Megethos:
    """Main application class for the Megethos disk usage tool."""

    def __init__(self, args: argparse.Namespace, kosmos_dir: Optional[pathlib.Path] = None):
        self.args = args
        self.ui = ConsoleUI(quiet=getattr(args, "quiet", False))
        self.sink = ReportSink(self.ui)
        self._shutdown_requested = False

        self.config_manager = SharedConfigManager(kosmos_dir)
        self.user_config = self.config_manager.load()
        self.defaults = load_defaults()

    # -- signal handling ----------------------------------------------------

    def _signal_handler(self, signum, frame):
        if self._shutdown_requested:
            sys.exit(1)
        self._shutdown_requested = True
        self.ui.print_warning("\nStopping scan... press Ctrl+C again to force quit.")

    # -- configuration ------------------------------------------------------

    def build_config(self, mode: ScanMode) -> ScanConfig:
        """Merge bundled defaults, persisted exclusions and command line flags"""
        args = self.args

        if getattr(args, "min_size", None) is not None:
            try:
                min_size = parse_size(args.min_size)
            except ValueError as e:
                raise ConfigurationError(f"--min-size: {e}") from e
        elif mode is ScanMode.FOLDERS:
            min_size = self.defaults.folders_min_size
        else:
            min_size = self.defaults.files_min_size

        exclude_dirs = list(self.user_config.exclude_dirs)
        exclude_extensions = list(self.user_config.exclude_extensions)
        for name in getattr(args, "preset", None) or []:
            preset = self.defaults.presets.get(name)
            if preset is None:
                known = ", ".join(sorted(self.defaults.presets)) or "none"
                raise ConfigurationError(f"Unknown preset '{name}' (available: {known})")
            exclude_dirs.extend(preset.exclude_dirs)
            exclude_extensions.extend(preset.exclude_extensions)
        exclude_dirs.extend(split_csv_arg(getattr(args, "exclude_dirs", None)))
        exclude_extensions.extend(split_csv_arg(getattr(args, "exclude_extensions", None)))

        top_n = getattr(args, "top", None)
        if top_n is None:
            top_n = self.defaults.top

        return ScanConfig.create(
            root_path=getattr(args, "path", None) or pathlib.Path.cwd(),
            mode=mode,
            min_size_bytes=min_size,
            older_than_days=getattr(args, "older_than_days", None),
            top_n=top_n,
            exclude_dirs=exclude_dirs,
            exclude_extensions=exclude_extensions,
            export_path=getattr(args, "export", None),
            follow_symlinks=getattr(args, "follow_symlinks", False),
            workers=getattr(args, "workers", 1),
        )

    # -- scanning -------------------------------------------------------------

    def scan(self, config: ScanConfig) -> ScanOutcome:
        with self.ui.create_activity_progress() as progress:
            task = progress.add_task("Scanning...", total=None) if progress else None

            def on_progress(current: str, dirs: int, files: int):
                if progress:
                    progress.update(task, description=f"Scanning... {dirs:,} dirs, {files:,} files")

            aggregator = FileAggregator(progress_callback=on_progress, cancel_flag=lambda: self._shutdown_requested)
            return aggregator.scan(config)

    def cmd_scan(self, mode: ScanMode) -> int:
        try:
            config = self.build_config(mode)
        except ConfigurationError as e:
            self.ui.print_error(str(e))
            return EXIT_CONFIG_ERROR

        label = "Folder sizes" if mode is ScanMode.FOLDERS else "Large files"
        self.ui.print_header("Megethos", f"{label} in {format_path_for_display(str(config.root_path))}")
        self.ui.show_configuration(config.describe())

        outcome = self.scan(config)

        # Folder totals are only known after aggregation, so their threshold applies here
        min_size = config.min_size_bytes if mode is ScanMode.FOLDERS else 0
        ranked = rank(outcome.records, config.top_n, min_size)

        self.sink.render(ranked, mode)
        self.sink.render_summary(outcome, ranked)
        self._record_run(ranked)

        if config.export_path:
            try:
                self.sink.export(ranked, config.export_path, mode)
            except ExportError as e:
                logger.warning("Export failed: %s", e)
                self.ui.print_error(str(e))
                return EXIT_EXPORT_ERROR

        return EXIT_OK

    def _record_run(self, ranked: list):
        self.user_config.record_run(size_of(ranked[0]) if ranked else 0)
        try:
            self.config_manager.save(self.user_config)
        except OSError as e:
            logger.warning("Could not save run statistics: %s", e)

    # -- configuration command ------------------------------------------------

    def cmd_config(self) -> int:
        args = self.args
        changed = False

        if args.reset:
            self.user_config.clear_exclusions()
            self.ui.print_success("Persisted exclusions cleared.")
            changed = True

        dirs = split_csv_arg(args.add_exclude_dirs)
        if dirs:
            added = self.user_config.add_exclude_dirs(dirs)
            if added:
                self.ui.print_success(f"Excluding directories: {', '.join(added)}")
            changed = True

        extensions = split_csv_arg(args.add_exclude_extensions)
        if extensions:
            try:
                added = self.user_config.add_exclude_extensions(extensions)
            except ValueError as e:
                self.ui.print_error(str(e))
                return EXIT_CONFIG_ERROR
            if added:
                self.ui.print_success(f"Excluding extensions: {', '.join(added)}")
            changed = True

        if changed:
            try:
                self.config_manager.save(self.user_config)
            except OSError as e:
                self.ui.print_error(f"Could not save configuration to {self.config_manager.config_file}: {e}")
                return EXIT_WRITE_ERROR
            return EXIT_OK

        self.show_config()
        return EXIT_OK

    def show_config(self):
        cfg = self.user_config
        config_file = format_path_for_display(str(self.config_manager.config_file))
        self.ui.print_header("Megethos", f"Configuration in {config_file}")
        self.ui.show_configuration(
            {
                "Excluded dirs": cfg.exclude_dirs,
                "Excluded extensions": cfg.exclude_extensions,
                "Files min size": format_bytes(self.defaults.files_min_size),
                "Folders min size": format_bytes(self.defaults.folders_min_size),
                "Default top": self.defaults.top or "all",
                "Last run": cfg.last_run,
                "Total runs": cfg.stats.get("total_runs", 0),
                "Largest seen": format_bytes(cfg.stats.get("largest_seen_bytes", 0)),
            }
        )

        if self.defaults.presets:
            self.ui.print_info("Presets (use --preset NAME):")
            for name, preset in sorted(self.defaults.presets.items()):
                patterns = preset.exclude_dirs + preset.exclude_extensions
                self.ui.print_plain(f"  {name:<10} {preset.description}")
                self.ui.console.print(f"  [dim]{'':<10} {', '.join(patterns)}[/dim]")

    # -- main entry point ----------------------------------------------------

    def run(self) -> int:
        if self.args.command == "config":
            return self.cmd_config()

        mode = ScanMode.FOLDERS if self.args.command == "folders" else ScanMode.FILES

        previous_int = signal.signal(signal.SIGINT, self._signal_handler)
        previous_term = signal.signal(signal.SIGTERM, self._signal_handler) if hasattr(signal, "SIGTERM") else None
        try:
            return self.cmd_scan(mode)
        finally:
            signal.signal(signal.SIGINT, previous_int)
            if previous_term is not None:
                signal.signal(signal.SIGTERM, previous_term)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _add_scan_arguments(parser: argparse.ArgumentParser, min_size_help: str):
    parser.add_argument("path", nargs="?", type=pathlib.Path, help="Directory to scan (default: current directory)")
    parser.add_argument("--min-size", type=str, default=None, help=min_size_help)
    parser.add_argument("--top", type=int, default=None, help="Show only the N largest results")
    parser.add_argument("--exclude-dirs", default=None, help="Comma-separated directory names or globs to skip")
    parser.add_argument(
        "--preset", action="append", default=None, help="Apply a named exclusion preset (repeatable, see 'config')"
    )
    parser.add_argument("--export", type=pathlib.Path, default=None, help="Write the results to a CSV file")
    parser.add_argument("--follow-symlinks", action="store_true", help="Follow symbolic links while scanning")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="megethos",
        description="Megethos: find large files and measure folder sizes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  megethos files ~/Downloads --min-size 1G
  megethos files . --top 25 --older-than-days 180 --exclude-extensions iso,bak
  megethos folders ~ --min-size 100M --preset dev --export ~/reports/home.csv
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")
    parser.add_argument("-q", "--quiet", action="store_true", help="Hide the progress spinner")

    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    files_parser = subparsers.add_parser("files", help="List the largest files below a directory")
    _add_scan_arguments(files_parser, "Minimum file size (e.g. 500M, 1G; default 500M)")
    files_parser.add_argument("--older-than-days", type=int, default=None, help="Only files not modified in N days")
    files_parser.add_argument(
        "--exclude-extensions", default=None, help="Comma-separated extensions to skip (e.g. bak,tmp)"
    )

    folders_parser = subparsers.add_parser("folders", help="Total size of each top-level folder")
    _add_scan_arguments(folders_parser, "Minimum folder size (e.g. 10M; default 0)")
    folders_parser.add_argument("--workers", type=int, default=1, help="Measure folders in N parallel threads")

    config_parser = subparsers.add_parser("config", help="Show or change persisted exclusions")
    config_parser.add_argument("--add-exclude-dirs", default=None, help="Always exclude these directory patterns")
    config_parser.add_argument("--add-exclude-extensions", default=None, help="Always exclude these extensions")
    config_parser.add_argument("--reset", action="store_true", help="Clear persisted exclusions")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    app = Megethos(args)
    return app.run()


if __name__ == "__main__":
    sys.exit(main())
