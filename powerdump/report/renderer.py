# powerdump/report/renderer.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence

from powerdump.model.channel import DeviceSummary
from powerdump.model.snapshot import Sample, Snapshot
from powerdump.model.timemath import NSEC_PER_USEC, Instant, Latencies, format_duration

UNNAMED_CHANNEL = "-"
RAW_SEPARATOR = "============="


def title_lines(title: str) -> List[str]:
    """Section banner: a blank line, then '------ title ------'."""
    return ["", f"------ {title} ------"]


@dataclass(frozen=True)
class BrownoutReport:
    """Everything the renderer needs for one decoded snapshot log."""
    snapshots: Sequence[Snapshot]
    latencies: Latencies
    main: Optional[DeviceSummary]
    sub: Optional[DeviceSummary]
    notes: Sequence[str] = ()


class ReportRenderer:
    """
    Formats decoded brownout logs as text lines.

    Stateless apart from the timezone used for wall-clock stamps
    (None = local time), so a report can be rendered any number of times.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    # ------------------------------------------------------------------
    # Time formatting
    # ------------------------------------------------------------------
    def _wall(self, sec: int) -> str:
        try:
            return datetime.fromtimestamp(sec, self.tz).strftime("%m/%d/%Y_%H:%M:%S")
        except (OverflowError, OSError, ValueError):
            return str(sec)

    def format_instant(self, t: Instant) -> str:
        """Local time with the raw nanosecond count appended (not zero-padded)."""
        return f"{self._wall(t.sec)}.{t.nsec}"

    def format_timeval(self, t: Instant) -> str:
        """Microsecond stamp rendered as '<usec>000'."""
        return f"{self._wall(t.sec)}.{t.nsec // NSEC_PER_USEC}000"

    # ------------------------------------------------------------------
    # Summary view
    # ------------------------------------------------------------------
    def latency_lines(self, lat: Latencies) -> List[str]:
        return [
            f"recvLatency {format_duration(lat.received)}",
            f"dumpLatency {format_duration(lat.dump)}",
            f"totalLatency {format_duration(lat.total)}",
            "",
        ]

    def device_lines(self, summary: Optional[DeviceSummary]) -> List[str]:
        if summary is None:
            return []

        lines: List[str] = []
        for ch in summary.channels:
            name = ch.name if ch.name is not None else UNNAMED_CHANNEL
            lines.append(
                f"{name} Max: {ch.max.value:.2f} Min: {ch.min.value:.2f} "
                f"Avg: {ch.mean:.2f} Std: {ch.std:.2f}"
            )
        lines.append("")

        lines.append("time " + "".join(f"{self.format_instant(t)} " for t in summary.times))

        for ch in summary.channels:
            name = ch.name if ch.name is not None else UNNAMED_CHANNEL
            lines.append(f"{name} " + "".join(f"{tv.value:.2f} " for tv in ch.series))
        lines.append("")
        return lines

    def summary_lines(self, report: BrownoutReport) -> List[str]:
        first = report.snapshots[0]
        lines = [
            f"triggered_time: {self.format_instant(first.triggered_time)}",
            f"triggered_idx: {first.triggered_idx}",
        ]
        lines += self.latency_lines(report.latencies)
        lines += self.device_lines(report.main)
        lines += self.device_lines(report.sub)
        return lines

    # ------------------------------------------------------------------
    # Raw view
    # ------------------------------------------------------------------
    def sample_line(self, sample: Sample) -> Optional[str]:
        if sample.is_unused:
            return None
        return f"{self.format_instant(sample.time)} " + "".join(f"{v} " for v in sample.values)

    def snapshot_lines(self, snap: Snapshot) -> List[str]:
        lines = [
            f"triggered_time: {self.format_instant(snap.triggered_time)}",
            f"triggered_idx: {snap.triggered_idx}",
            "main_odpm_instant_data: ",
        ]
        lines += [self.sample_line(s) for s in snap.used_samples("main")]
        lines.append("sub_odpm_instant_data: ")
        lines += [self.sample_line(s) for s in snap.used_samples("sub")]
        lines.append("")

        for label, blob in (
            ("fvp_stats", snap.fvp_stats),
            ("pcie_modem", snap.pcie_modem),
            ("pcie_wifi", snap.pcie_wifi),
        ):
            lines += [f"{label}:", blob, ""]

        lines += [f"{st.name}: {st.value}" for st in snap.named_stats()]
        lines.append(f"eventReceivedTime: {self.format_timeval(snap.event_received_time)}")
        lines.append(f"dumpTime: {self.format_timeval(snap.dump_time)}")
        lines.append(f"eventIdx: {snap.event_idx}")
        return lines

    def raw_lines(self, snapshots: Sequence[Snapshot]) -> List[str]:
        lines = ["== RAW =="]
        for i, snap in enumerate(snapshots):
            lines.append(f"== Dump {i} ==")
            lines += self.snapshot_lines(snap)
            lines += [RAW_SEPARATOR, ""]
        return lines

    # ------------------------------------------------------------------
    # Whole log
    # ------------------------------------------------------------------
    def render(self, title: str, report: BrownoutReport) -> List[str]:
        lines = title_lines(title)
        lines += list(report.notes)
        lines += self.summary_lines(report)
        lines += self.raw_lines(report.snapshots)
        return lines
