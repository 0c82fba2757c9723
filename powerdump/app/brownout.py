# powerdump/app/brownout.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from powerdump.decode.snapshot_loader import load_snapshots
from powerdump.errors import LogNotFoundError, LogOpenError, SizeMismatchError
from powerdump.model.channel import aggregate_channels
from powerdump.model.layout import LayoutConstants, RecordLayout
from powerdump.model.pmic import read_rail_names, read_scales, resolve_pmic
from powerdump.model.snapshot import Snapshot, concat_samples
from powerdump.report.renderer import BrownoutReport, ReportRenderer
from .config import BrownoutConfig, BrownoutLog

_log = logging.getLogger(__name__)

LineSink = Callable[[str], None]


def build_report(
    snapshots: Sequence[Snapshot],
    brownout: BrownoutConfig,
    layout: LayoutConstants,
    *,
    logger: Optional[logging.Logger] = None,
) -> BrownoutReport:
    """
    Resolve main/sub PMIC, aggregate both sample streams and compute the
    record-0 latencies.

    The record's main sample array belongs to whichever configured device
    resolves as main; scales and rail names are read from that device.
    """
    log = logger or _log
    if not snapshots:
        raise ValueError("At least one snapshot is required")

    roles = resolve_pmic(brownout.devices, logger=log)
    main_dev = brownout.devices[roles.main_index]
    sub_dev = brownout.devices[roles.sub_index]
    n = layout.channel_count

    main = aggregate_channels(
        concat_samples(snapshots, "main"),
        read_scales(main_dev, n, logger=log),
        read_rail_names(main_dev, n, logger=log),
    )
    sub = aggregate_channels(
        concat_samples(snapshots, "sub"),
        read_scales(sub_dev, n, logger=log),
        read_rail_names(sub_dev, n, logger=log),
    )

    return BrownoutReport(
        snapshots=tuple(snapshots),
        latencies=snapshots[0].latencies(brownout.time_mode),
        main=main,
        sub=sub,
        notes=(roles.note,) if roles.note else (),
    )


def size_mismatch_lines(title: str, err: SizeMismatchError) -> List[str]:
    return [
        "Invalid log size!",
        f"BrownoutStatsExtend size: {err.expected}",
        f"{title} size: {err.actual}",
    ]


def dump_brownout_log(
    log_cfg: BrownoutLog,
    brownout: BrownoutConfig,
    layout: LayoutConstants,
    *,
    renderer: Optional[ReportRenderer] = None,
    out: LineSink = print,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Decode and print one snapshot log. Returns False when the log was
    skipped (missing or wrong size); the failure is printed, never raised.
    """
    log = logger or _log
    renderer = renderer or ReportRenderer()

    try:
        snapshots = load_snapshots(log_cfg.path, RecordLayout(layout), logger=log)
    except (LogNotFoundError, LogOpenError) as e:
        out(e.message)
        return False
    except SizeMismatchError as e:
        for line in size_mismatch_lines(log_cfg.title, e):
            out(line)
        return False

    report = build_report(snapshots, brownout, layout, logger=log)
    for line in renderer.render(log_cfg.title, report):
        out(line)
    return True


def dump_brownout_logs(
    brownout: BrownoutConfig,
    layout: LayoutConstants,
    *,
    renderer: Optional[ReportRenderer] = None,
    out: LineSink = print,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Dump every configured log; one log's failure never affects the next."""
    decoded = 0
    for log_cfg in brownout.logs:
        if dump_brownout_log(log_cfg, brownout, layout, renderer=renderer, out=out, logger=logger):
            decoded += 1
    return decoded
