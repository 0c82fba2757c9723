from __future__ import annotations

import subprocess
from pathlib import Path

from powerdump.app import runner as runner_mod
from powerdump.app.config import BrownoutConfig, ReportConfig, SectionSpec
from powerdump.app.runner import detect_debug_build, run_report
from powerdump.model.layout import LayoutConstants
from powerdump.model.pmic import DeviceConfig


def _config(root: Path, sections) -> ReportConfig:
    dev = DeviceConfig("d", root, root / "enabled_rails", root / "name", "x\n")
    return ReportConfig(
        brownout=BrownoutConfig(logs=(), devices=(dev, dev)),
        layout=LayoutConstants(),
        sections=tuple(sections),
        sysroot=root,
    )


def test_run_report_in_order_and_isolated(tmp_path):
    (tmp_path / "a").write_text("A\n", encoding="utf-8")
    (tmp_path / "b").write_text("B\n", encoding="utf-8")
    sections = [
        SectionSpec("file", "first", params={"path": "/a"}),
        SectionSpec("dir", "broken", params={"path": "/", "style": "fancy"}),
        SectionSpec("file", "second", params={"path": "/b"}),
    ]
    lines = []
    run_report(_config(tmp_path, sections), out=lines.append)

    assert lines[:3] == ["", "------ first ------", "A"]
    assert lines[-3:] == ["", "------ second ------", "B"]
    assert any(ln.startswith("broken: ") for ln in lines)


def test_run_report_only_filters_kinds(tmp_path):
    (tmp_path / "a").write_text("A\n", encoding="utf-8")
    sections = [
        SectionSpec("file", "first", params={"path": "/a"}),
        SectionSpec("brownout"),
    ]
    lines = []
    run_report(_config(tmp_path, sections), out=lines.append, only={"brownout"})
    assert lines == []


def test_detect_debug_build(monkeypatch):
    def fake(stdout: bytes, rc: int = 0):
        return lambda cmd, **kw: subprocess.CompletedProcess(cmd, rc, stdout=stdout)

    monkeypatch.setattr(runner_mod.subprocess, "run", fake(b"userdebug\n"))
    assert detect_debug_build() is True

    monkeypatch.setattr(runner_mod.subprocess, "run", fake(b"user\n"))
    assert detect_debug_build() is False

    monkeypatch.setattr(runner_mod.subprocess, "run", fake(b"eng\n", rc=1))
    assert detect_debug_build() is False


def test_detect_debug_build_without_getprop(monkeypatch):
    def missing(cmd, **kw):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(runner_mod.subprocess, "run", missing)
    assert detect_debug_build() is False
