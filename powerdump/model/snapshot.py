# powerdump/model/snapshot.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from .timemath import Instant, Latencies, TimeMode, latencies


@dataclass(frozen=True)
class Sample:
    """One ODPM instant reading: a timestamp plus one raw value per channel."""
    time: Instant
    values: Tuple[int, ...]

    @property
    def is_unused(self) -> bool:
        return self.time.is_unset


@dataclass(frozen=True)
class NumericStat:
    name: str
    value: int


@dataclass(frozen=True)
class Snapshot:
    """
    One decoded brownout record.

    Sample tuples keep every slot, including unused (0, 0) ones; consumers
    filter with Sample.is_unused.
    """
    triggered_time: Instant
    triggered_idx: int
    main_samples: Tuple[Sample, ...]
    sub_samples: Tuple[Sample, ...]
    fvp_stats: str
    pcie_modem: str
    pcie_wifi: str
    numeric_stats: Tuple[NumericStat, ...]
    event_received_time: Instant  # microsecond source, stored as nanoseconds
    dump_time: Instant            # microsecond source, stored as nanoseconds
    event_idx: int

    def samples(self, which: str) -> Tuple[Sample, ...]:
        """All slots of one device: "main" or "sub"."""
        if which == "main":
            return self.main_samples
        if which == "sub":
            return self.sub_samples
        raise ValueError(f"which must be 'main' or 'sub' (got {which!r})")

    def used_samples(self, which: str) -> Iterator[Sample]:
        return (s for s in self.samples(which) if not s.is_unused)

    def named_stats(self) -> List[NumericStat]:
        return [st for st in self.numeric_stats if st.name]

    def latencies(self, mode: TimeMode = TimeMode.LEGACY) -> Latencies:
        return latencies(self.triggered_time, self.event_received_time, self.dump_time, mode)


def concat_samples(snapshots: Sequence[Snapshot], which: str) -> List[Sample]:
    """
    All slots of one device across records: snapshot order, then slot order.
    """
    if which not in {"main", "sub"}:
        raise ValueError(f"which must be 'main' or 'sub' (got {which!r})")
    out: List[Sample] = []
    for snap in snapshots:
        out.extend(snap.samples(which))
    return out
