from __future__ import annotations

from datetime import timezone
from pathlib import Path

import pytest

from powerdump.app.brownout import build_report, dump_brownout_log, dump_brownout_logs
from powerdump.app.config import BrownoutConfig, BrownoutLog
from powerdump.decode.snapshot_loader import load_snapshots
from powerdump.model.layout import LayoutConstants
from powerdump.model.pmic import DeviceConfig
from powerdump.model.timemath import Instant, TimeMode
from powerdump.report.renderer import ReportRenderer

T0 = 1_700_000_000


def _brownout(d0: Path, d1: Path, logs=(), mode=TimeMode.LEGACY) -> BrownoutConfig:
    return BrownoutConfig(
        logs=tuple(logs),
        devices=(
            DeviceConfig("s2mpg14", d0, d0 / "enabled_rails", d0 / "name", "s2mpg14-odpm\n"),
            DeviceConfig("s2mpg15", d1, d1 / "enabled_rails", d1 / "name", "s2mpg15-odpm\n"),
        ),
        time_mode=mode,
    )


def _records(record_factory):
    ch = lambda v: [v] * 12  # noqa: E731
    return [
        record_factory(
            triggered=(T0, 900_000_000),
            triggered_idx=2,
            main=[(T0, 1, ch(10)), (T0, 2, ch(20))],
            sub=[(T0, 1, ch(3))],
            event_received=(T0 + 1, 100_000),
            dump=(T0 + 1, 600_000),
        ),
        # repeats T0.2 (dropped) and adds T0.3
        record_factory(main=[(T0, 2, ch(99)), (T0, 3, ch(30))]),
    ]


def test_build_report_uses_main_device_for_main_stream(pmic_tree, write_log, record_factory):
    d0, d1 = pmic_tree(
        scales0=[1.0] * 12,
        scales1=[2.0] * 12,
        rails0=[f"M{i}" for i in range(12)],
        rails1=[f"S{i}" for i in range(12)],
        name0="s2mpg14-odpm\n",
    )
    snaps = load_snapshots(write_log(_records(record_factory)))
    report = build_report(snaps, _brownout(d0, d1), LayoutConstants())

    assert report.main.sample_count == 3
    assert report.main.channels[0].name == "M0"
    assert report.main.channels[0].mean == pytest.approx(20.0)
    assert report.sub.sample_count == 1
    assert report.sub.channels[5].name == "S5"
    assert report.sub.channels[5].mean == 6.0
    assert report.notes == ()


def test_build_report_swaps_configs_when_device1_is_main(pmic_tree, write_log, record_factory):
    d0, d1 = pmic_tree(
        scales0=[1.0] * 12,
        scales1=[2.0] * 12,
        rails0=[f"M{i}" for i in range(12)],
        rails1=[f"S{i}" for i in range(12)],
        name0="s2mpg15-odpm\n",
    )
    snaps = load_snapshots(write_log(_records(record_factory)))
    report = build_report(snaps, _brownout(d0, d1), LayoutConstants())

    # main stream now scaled/named with device 1's files
    assert report.main.channels[0].name == "S0"
    assert report.main.channels[0].mean == pytest.approx(40.0)
    assert report.sub.channels[0].name == "M0"


def test_build_report_latency_modes(pmic_tree, write_log, record_factory):
    d0, d1 = pmic_tree()
    snaps = load_snapshots(write_log(_records(record_factory)))

    legacy = build_report(snaps, _brownout(d0, d1), LayoutConstants())
    assert legacy.latencies.received == Instant(1, 200_000_000)

    fixed = build_report(snaps, _brownout(d0, d1, mode=TimeMode.CORRECTED), LayoutConstants())
    assert fixed.latencies.received == Instant(0, 200_000_000)


def test_build_report_missing_aux_files_still_reports(pmic_tree, write_log, record_factory):
    d0, d1 = pmic_tree(name0=None)
    snaps = load_snapshots(write_log(_records(record_factory)))
    report = build_report(snaps, _brownout(d0, d1), LayoutConstants())

    assert report.notes and "set device0 as main pmic" in report.notes[0]
    ch = report.main.channels[0]
    assert ch.name is None
    assert ch.max.value == -1000.0 * 10  # smallest raw has the largest scaled value
    assert ch.min.value == -1000.0 * 30


def test_build_report_requires_snapshots(pmic_tree):
    d0, d1 = pmic_tree()
    with pytest.raises(ValueError):
        build_report([], _brownout(d0, d1), LayoutConstants())


def test_dump_log_prints_title_summary_and_raw(pmic_tree, write_log, record_factory):
    d0, d1 = pmic_tree(scales0=[1.0] * 12, scales1=[1.0] * 12)
    path = write_log(_records(record_factory))
    lines = []

    ok = dump_brownout_log(
        BrownoutLog(path, "thismeal.bin"),
        _brownout(d0, d1),
        LayoutConstants(),
        renderer=ReportRenderer(tz=timezone.utc),
        out=lines.append,
    )

    assert ok is True
    assert lines[:2] == ["", "------ thismeal.bin ------"]
    assert "triggered_idx: 2" in lines
    assert "recvLatency 1.200000000" in lines
    assert "== RAW ==" in lines
    assert sum(1 for ln in lines if ln.startswith("== Dump ")) == 12


def test_dump_log_size_mismatch_prints_both_sizes(pmic_tree, tmp_path):
    d0, d1 = pmic_tree()
    path = tmp_path / "lastmeal.bin"
    path.write_bytes(b"\x00" * 11072 * 2)
    lines = []

    ok = dump_brownout_log(BrownoutLog(path, "lastmeal.bin"), _brownout(d0, d1), LayoutConstants(), out=lines.append)

    assert ok is False
    assert lines == [
        "Invalid log size!",
        f"BrownoutStatsExtend size: {11072 * 12}",
        f"lastmeal.bin size: {11072 * 2}",
    ]


def test_dump_logs_continue_after_failures(pmic_tree, write_log, tmp_path):
    d0, d1 = pmic_tree()
    bad = tmp_path / "bad.bin"
    bad.write_bytes(b"\x01")
    good = write_log(name="good.bin")
    missing = tmp_path / "missing.bin"
    cfg = _brownout(
        d0,
        d1,
        logs=[BrownoutLog(missing, "missing.bin"), BrownoutLog(bad, "bad.bin"), BrownoutLog(good, "good.bin")],
    )
    lines = []

    decoded = dump_brownout_logs(cfg, LayoutConstants(), out=lines.append)

    assert decoded == 1
    assert lines[0] == f"Failed to access {missing}"
    assert "Invalid log size!" in lines
    assert "------ good.bin ------" in lines


def test_unopenable_log_does_not_stop_backup(pmic_tree, write_log, record_factory, tmp_path):
    d0, d1 = pmic_tree()
    current = tmp_path / "thismeal.bin"
    current.mkdir()  # a directory cannot be opened as a log, even as root
    backup = write_log([record_factory(triggered_idx=3)], name="lastmeal.bin")
    cfg = _brownout(
        d0,
        d1,
        logs=[BrownoutLog(current, "thismeal.bin"), BrownoutLog(backup, "lastmeal.bin")],
    )
    lines = []

    decoded = dump_brownout_logs(cfg, LayoutConstants(), out=lines.append)

    assert decoded == 1
    assert lines[0] == f"Failed to open {current}"
    assert "------ lastmeal.bin ------" in lines
    assert "triggered_idx: 3" in lines
