# powerdump/cli/args.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from powerdump.app.loader import SECTION_KINDS
from powerdump.model.timemath import TimeMode


def build_parser() -> argparse.ArgumentParser:
    """
    powerdump [report] [options]       full power report
    powerdump brownout PATH [PATH...]  decode specific snapshot logs
    """
    parser = argparse.ArgumentParser(prog="powerdump")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--metadata",
        type=Path,
        default=None,
        help="Directory with layout.yml, brownout.yml and sections.yml (default: packaged metadata).",
    )
    common.add_argument(
        "--sysroot",
        type=Path,
        default=None,
        help="Read device paths under this directory (e.g. a pulled filesystem).",
    )
    common.add_argument(
        "--time-mode",
        choices=[m.value for m in TimeMode],
        default=None,
        help="Latency borrow rule (default: from brownout.yml, normally 'legacy').",
    )
    common.add_argument(
        "--utc",
        action="store_true",
        help="Print wall-clock stamps in UTC instead of local time.",
    )
    common.add_argument("--log-file", type=Path, default=None, help="Also write diagnostics to this file.")
    common.add_argument("-v", "--verbose", action="store_true", help="Diagnostics at INFO level on stderr.")

    sub = parser.add_subparsers(dest="cmd")

    p_report = sub.add_parser("report", parents=[common], help="Print the full power report (default).")
    p_report.add_argument(
        "--only",
        nargs="+",
        choices=sorted(SECTION_KINDS),
        default=None,
        help="Run only sections of these kinds.",
    )
    p_report.add_argument(
        "--debug-build",
        action="store_true",
        default=None,
        help="Include debug-only sections (default: detect via getprop ro.build.type).",
    )

    p_brownout = sub.add_parser("brownout", parents=[common], help="Decode brownout snapshot log files.")
    p_brownout.add_argument("paths", type=Path, nargs="+")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    raw = sys.argv[1:] if argv is None else argv
    # bare `powerdump [options]` means `powerdump report [options]`
    if not raw or raw[0] not in {"report", "brownout", "-h", "--help"}:
        raw = ["report", *raw]
    return parser.parse_args(raw)
