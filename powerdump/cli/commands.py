# powerdump/cli/commands.py
from __future__ import annotations

import argparse
import logging
from datetime import timezone
from pathlib import Path

from powerdump.app.brownout import dump_brownout_log
from powerdump.app.config import BrownoutLog
from powerdump.app.loader import MetadataLoader
from powerdump.app.runner import detect_debug_build, run_report
from powerdump.report.renderer import ReportRenderer


# ---------------- Logging ----------------

def configure_logging(*, verbose: bool = False) -> None:
    """Diagnostics go to stderr so stdout stays a clean report."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def configure_file_logging(app_log_path: Path) -> None:
    """
    Add a file handler to the root logger (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(fh)

    if root.level > logging.INFO:
        root.setLevel(logging.INFO)


def _setup(args: argparse.Namespace) -> MetadataLoader:
    configure_logging(verbose=args.verbose)
    if args.log_file:
        configure_file_logging(args.log_file)

    loader = MetadataLoader(args.metadata, sysroot=args.sysroot)
    loader.load_all()
    return loader


# ---------------- Commands ----------------

def cmd_report(args: argparse.Namespace) -> int:
    loader = _setup(args)

    debug_build = args.debug_build if args.debug_build is not None else detect_debug_build()
    config = loader.report_config(time_mode=args.time_mode, debug_build=debug_build)

    run_report(
        config,
        tz=timezone.utc if args.utc else None,
        only=set(args.only) if args.only else None,
    )
    return 0


def cmd_brownout(args: argparse.Namespace) -> int:
    """Decode the given snapshot logs with the configured PMICs and layout."""
    loader = _setup(args)
    config = loader.report_config(time_mode=args.time_mode)
    renderer = ReportRenderer(tz=timezone.utc if args.utc else None)

    for path in args.paths:
        dump_brownout_log(
            BrownoutLog(path=Path(path), title=Path(path).name),
            config.brownout,
            config.layout,
            renderer=renderer,
        )
    return 0
