# powerdump/model/timemath.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

NSEC_PER_SEC = 1_000_000_000
NSEC_PER_USEC = 1_000


class TimeMode(str, Enum):
    """
    How subtract() handles a nanosecond borrow.

    LEGACY matches historical reports: the borrow only rewrites the nanosecond
    field and seconds are left as-is. CORRECTED also takes one second off.
    """
    LEGACY = "legacy"
    CORRECTED = "corrected"


@dataclass(frozen=True, order=True)
class Instant:
    """A (seconds, nanoseconds) point in time; ordering is (sec, nsec)."""
    sec: int
    nsec: int

    @classmethod
    def from_micros(cls, sec: int, usec: int) -> "Instant":
        return cls(int(sec), int(usec) * NSEC_PER_USEC)

    @property
    def is_unset(self) -> bool:
        return self.sec == 0 and self.nsec == 0


def subtract(a: Instant, b: Instant, mode: TimeMode = TimeMode.LEGACY) -> Instant:
    mode = TimeMode(mode)
    sec = a.sec - b.sec
    if a.nsec >= b.nsec:
        return Instant(sec, a.nsec - b.nsec)

    nsec = NSEC_PER_SEC - b.nsec + a.nsec
    if mode is TimeMode.CORRECTED:
        sec -= 1
    return Instant(sec, nsec)


def format_duration(d: Instant) -> str:
    """seconds.nanoseconds with a 9-digit fractional part."""
    return f"{d.sec}.{d.nsec:09d}"


class Latencies(NamedTuple):
    received: Instant  # eventReceived - triggered
    dump: Instant      # dumpTime - eventReceived
    total: Instant     # dumpTime - triggered


def latencies(triggered: Instant, event_received: Instant, dump_time: Instant,
              mode: TimeMode = TimeMode.LEGACY) -> Latencies:
    return Latencies(
        received=subtract(event_received, triggered, mode),
        dump=subtract(dump_time, event_received, mode),
        total=subtract(dump_time, triggered, mode),
    )
