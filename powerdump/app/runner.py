# powerdump/app/runner.py
from __future__ import annotations

import logging
import subprocess
from datetime import tzinfo
from typing import Callable, Optional

from powerdump.report.renderer import ReportRenderer
from .config import ReportConfig
from .sections import SectionRunner

_log = logging.getLogger(__name__)


def detect_debug_build(*, timeout_s: float = 2.0, logger: Optional[logging.Logger] = None) -> bool:
    """
    True on userdebug/eng builds (ro.build.type via getprop).

    Off-device, or when getprop fails, the build is treated as a user build.
    """
    log = logger or _log
    try:
        proc = subprocess.run(
            ["getprop", "ro.build.type"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            timeout=timeout_s,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        log.debug("GETPROP_UNAVAILABLE err=%s", e)
        return False

    build_type = proc.stdout.decode("utf-8", errors="replace").strip()
    return proc.returncode == 0 and build_type not in {"", "user"}


def run_report(
    config: ReportConfig,
    *,
    out: Callable[[str], None] = print,
    tz: Optional[tzinfo] = None,
    only: Optional[set] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Print every configured section (or only the kinds in `only`)."""
    log = logger or _log
    runner = SectionRunner(config, out=out, renderer=ReportRenderer(tz=tz), tz=tz, logger=log)

    log.info("REPORT_START sections=%d debug_build=%s", len(config.sections), config.debug_build)
    for spec in config.sections:
        if only and spec.kind not in only:
            continue
        runner.run(spec)
    log.info("REPORT_DONE")
