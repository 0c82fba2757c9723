# powerdump/app/sections.py
from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Callable, Dict, List, Optional

from powerdump.errors import PowerDumpError
from powerdump.report.renderer import ReportRenderer, title_lines
from powerdump.utils.paths import reroot
from .brownout import dump_brownout_logs
from .config import ReportConfig, SectionSpec

_INT_RE = re.compile(r"\s*([-+]?\d+)")

LineSink = Callable[[str], None]


def atoi(text: str) -> int:
    """Leading integer of `text`, 0 when there is none."""
    m = _INT_RE.match(text)
    return int(m.group(1)) if m else 0


def _chop_newline(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


class SectionRunner:
    """
    Executes report sections from sections.yml in order.

    Each section is isolated: a failure prints a one-line note and the report
    continues with the next section.
    """

    def __init__(
        self,
        config: ReportConfig,
        *,
        out: LineSink = print,
        renderer: Optional[ReportRenderer] = None,
        tz: Optional[tzinfo] = None,
        hexdump_timeout_s: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.out = out
        self.tz = tz
        self.renderer = renderer or ReportRenderer(tz=tz)
        self.hexdump_timeout_s = float(hexdump_timeout_s)
        self._log = logger or logging.getLogger(__name__)

        self._handlers: Dict[str, Callable[[SectionSpec], None]] = {
            "times": self._times,
            "file": self._file,
            "dir": self._dir,
            "hexdump": self._hexdump,
            "mitigation_stats": self._mitigation_stats,
            "brownout": self._brownout,
            "alternatives": self._alternatives,
            "irq_duration": self._irq_duration,
            "tcpc": self._tcpc,
        }

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _path(self, value) -> Path:
        return reroot(str(value), self.config.sysroot)

    def _emit(self, lines: List[str]) -> None:
        for line in lines:
            self.out(line)

    def _title(self, title: str) -> None:
        self._emit(title_lines(title))

    def _read(self, path: Path) -> Optional[str]:
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            self._log.debug("READ_FAILED path=%s err=%s", path, e)
            return None

    # ------------------------------------------------------------------
    # public
    # ------------------------------------------------------------------
    def run(self, spec: SectionSpec) -> None:
        if spec.debug_only and not self.config.debug_build:
            self._log.debug("SECTION_SKIPPED_USER_BUILD kind=%s title=%s", spec.kind, spec.title)
            return

        handler = self._handlers.get(spec.kind)
        if handler is None:
            raise NotImplementedError(f"Unknown section kind '{spec.kind}'")

        try:
            handler(spec)
        except (PowerDumpError, OSError) as e:
            self._log.warning("SECTION_FAILED kind=%s title=%s err=%s", spec.kind, spec.title, e)
            self.out(f"{spec.title or spec.kind}: {e}")
        except Exception as e:
            self._log.exception("SECTION_ERROR kind=%s title=%s", spec.kind, spec.title)
            self.out(f"{spec.title or spec.kind}: unexpected error: {e}")

    # ------------------------------------------------------------------
    # kinds
    # ------------------------------------------------------------------
    def _times(self, spec: SectionSpec) -> None:
        self._title(spec.title)
        now = time.time()

        uptime = self._read(self._path(spec.params.get("uptime_path", "/proc/uptime")))
        if uptime and uptime.split():
            boot = datetime.fromtimestamp(now - float(uptime.split()[0]), self.tz)
            self.out(f"Boot: {boot.strftime('%a %b %d %H:%M:%S %Y')}")

        self.out(f"Now: {datetime.fromtimestamp(now, self.tz).strftime('%m/%d/%Y %H:%M:%S')}")

    def _file(self, spec: SectionSpec) -> None:
        content = self._read(self._path(spec.params["path"]))
        if content is None:
            if spec.params.get("title_if_missing"):
                self._title(spec.title)
            return

        self._title(spec.title)
        self.out(_chop_newline(content))

    def _dir(self, spec: SectionSpec) -> None:
        p = spec.params
        directory = self._path(p["path"])
        style = p.get("style", "plain")
        header = p.get("header")

        try:
            names = sorted(os.listdir(directory))
        except OSError:
            if p.get("title_if_missing"):
                self._title(spec.title)
                if header:
                    self.out(header)
            return

        self._title(spec.title)
        if header:
            self.out(header)

        match = p.get("match")
        prefix = p.get("prefix")
        strip_suffix = p.get("strip_suffix", "")

        for name in names:
            if match and match not in name:
                continue
            if prefix and not name.startswith(prefix):
                continue

            location = directory / name
            if p.get("entry_file"):
                location = location / str(p["entry_file"])
            content = self._read(location)

            if style == "plain":
                if content is None:
                    continue
                if p.get("print_path"):
                    self._emit(["", "", str(location)])
                self.out(_chop_newline(content))
            elif style == "keyed":
                if content is None:
                    if p.get("skip_unreadable"):
                        continue
                    content = ""
                self.out(f"{name}: {_chop_newline(content)}")
            elif style in {"source", "assign"}:
                if content is None:
                    continue
                source = name.replace(strip_suffix, "", 1) if strip_suffix else name
                if style == "source":
                    self.out(f"{source} \t{content.strip()}")
                else:
                    self.out(f"{source}={content.strip()}")
            else:
                raise ValueError(f"Unknown dir style '{style}'")

    def _hexdump(self, spec: SectionSpec) -> None:
        command = str(spec.params.get("command", "xxd"))
        self._title(spec.title)

        for raw in spec.params.get("files") or []:
            path = self._path(raw)
            if not path.is_file():
                continue
            try:
                proc = subprocess.run(
                    [command, str(path)],
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=self.hexdump_timeout_s,
                )
            except FileNotFoundError:
                self._log.warning("HEXDUMP_TOOL_MISSING command=%s", command)
                self.out(f"{command} not available")
                return
            except subprocess.TimeoutExpired:
                self._log.warning("HEXDUMP_TIMEOUT command=%s path=%s", command, path)
                continue

            if proc.returncode != 0:
                self._log.warning(
                    "HEXDUMP_FAILED command=%s path=%s rc=%d stderr=%s",
                    command, path, proc.returncode, proc.stderr.decode("utf-8", errors="replace").strip(),
                )
                continue
            self.out(_chop_newline(proc.stdout.decode("utf-8", errors="replace")))

    def _mitigation_stats(self, spec: SectionSpec) -> None:
        p = spec.params
        count_dir = self._path(p["count_dir"])
        try:
            names = sorted(os.listdir(count_dir))
        except OSError:
            return

        self._title(spec.title)
        self.out("Source\t\tCount\tSOC\tTime\tVoltage")

        lookups = (
            (self._path(p["capacity_dir"]), "_cap"),
            (self._path(p["timestamp_dir"]), "_time"),
            (self._path(p["voltage_dir"]), "_volt"),
        )

        for name in names:
            if "_count" not in name:
                continue
            source = name.replace("_count", "", 1)

            row: List[int] = []
            for directory, suffix in ((count_dir, None),) + lookups:
                fname = name if suffix is None else f"{source}{suffix}"
                content = self._read(directory / fname)
                if content is None:
                    break
                value = atoi(content.strip())
                if value == -1:
                    break
                row.append(value)
            else:
                count, soc, ts, volt = row
                self.out(f"{source} \t{count}\t{soc}\t{ts}\t{volt}")

    def _irq_duration(self, spec: SectionSpec) -> None:
        """
        Per-source IRQ duration histogram joined with power-warn code,
        threshold and low-pass-filtered current.

        Rows past `non_odpm_channels` are ODPM channels: the first
        `odpm_channels` of them come from the main PMIC, the rest from sub.
        """
        p = spec.params
        non_odpm = int(p.get("non_odpm_channels", 12))
        odpm = int(p.get("odpm_channels", 12))

        names: List[str] = []
        durations: List[List[str]] = []
        for i, raw in enumerate(p["duration_files"]):
            content = self._read(self._path(raw))
            if content is None:
                return
            column = []
            for line in content.splitlines():
                if i == 0:
                    cut = line.find(":")
                    names.append(line[:cut] if cut >= 0 else line)
                # value keeps the space that follows ':'
                column.append(line[line.find(":") + 1:])
            durations.append(column)

        codes: List[List[str]] = []
        thresholds: List[List[str]] = []
        for raw in p.get("pwrwarn_dirs") or []:
            directory = self._path(raw)
            pmic_codes: List[str] = []
            pmic_thresholds: List[str] = []
            try:
                entries = sorted(os.listdir(directory))
            except OSError:
                entries = []
            for name in entries:
                content = self._read(directory / name)
                if content is None:
                    continue
                readout = content.strip()
                code, sep, threshold = readout.partition("=")
                pmic_codes.append(code)
                pmic_thresholds.append(threshold if sep else readout)
            codes.append(pmic_codes)
            thresholds.append(pmic_thresholds)

        currents: List[List[str]] = []
        for raw in p.get("lpf_current_files") or []:
            content = self._read(self._path(raw))
            values: List[str] = []
            # first line is a header; each value keeps its leading space
            for line in (content or "").splitlines()[1:]:
                cut = line.find(" ")
                values.append(line[cut:] if cut >= 0 else "")
            currents.append(values)

        def _at(table: List[List[str]], pmic: int, idx: int) -> str:
            if pmic < len(table) and idx < len(table[pmic]):
                return table[pmic][idx]
            return ""

        self._title(spec.title)
        self.out(
            "Source\t\t\t\tlt_5ms_cnt\tbt_5ms_to_10ms_cnt\tgt_10ms_cnt\tCode"
            "\tCurrent Threshold (uA)\tCurrent Reading (uA)"
        )

        for i, name in enumerate(names):
            code = threshold = current = ""
            suffix = "      \t"
            if i >= non_odpm:
                pmic, offset = (1, non_odpm + odpm) if i >= non_odpm + odpm else (0, non_odpm)
                suffix = ""
                code = _at(codes, pmic, i - offset)
                threshold = _at(thresholds, pmic, i - offset)
                current = _at(currents, pmic, i - offset)

            lt, bt, gt = (col[i] if i < len(col) else "" for col in durations)
            self.out(
                f"{name}{suffix}     \t{lt}\t\t{bt}\t\t\t{gt}\t\t{code}    \t{threshold}       \t\t{current}"
            )

    def _tcpc(self, spec: SectionSpec) -> None:
        """
        Labelled TCPC attribute files under each `match` entry of `path`.

        Labels are printed for every directory entry, so entries that do not
        match or cannot be read leave their labels on the pending line. A
        missing directory prints every label on its own line.
        """
        p = spec.params
        attrs = [(str(a["label"]), str(a["file"])) for a in p["attributes"]]
        match = str(p.get("match", ""))
        self._title(spec.title)

        directory = self._path(p["path"])
        try:
            names = sorted(os.listdir(directory))
        except OSError:
            for label, _ in attrs:
                self.out(label)
            return

        pending = ""
        for name in names:
            for label, rel in attrs:
                pending += f"{label} "
                if match not in name:
                    continue
                content = self._read(directory / name / rel.lstrip("/"))
                if content is None:
                    continue
                self.out(pending + content)
                pending = ""
        if pending:
            self.out(pending)

    def _brownout(self, spec: SectionSpec) -> None:
        dump_brownout_logs(
            self.config.brownout,
            self.config.layout,
            renderer=self.renderer,
            out=self.out,
            logger=self._log,
        )

    def _alternatives(self, spec: SectionSpec) -> None:
        for choice in spec.params["choices"]:
            cond = choice.get("when_exists")
            if cond is None or self._path(cond).exists():
                for sub in choice["sections"]:
                    self.run(sub)
                return
