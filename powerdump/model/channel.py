# powerdump/model/channel.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .snapshot import Sample
from .timemath import Instant

# Scale used when in_power<N>_scale cannot be read. Not filtered downstream:
# affected channels show large negative power, as in historical reports.
INVALID_SCALE = -1000.0


@dataclass(frozen=True)
class TimedValue:
    time: Instant
    value: float


@dataclass(frozen=True)
class ChannelStat:
    channel_id: int
    name: Optional[str]
    max: TimedValue
    min: TimedValue
    mean: float
    std: float
    series: Tuple[TimedValue, ...]  # ascending by (sec, nsec)


@dataclass(frozen=True)
class DeviceSummary:
    """Per-device aggregation result: distinct sample times + per-channel stats."""
    times: Tuple[Instant, ...]
    channels: Tuple[ChannelStat, ...]

    @property
    def sample_count(self) -> int:
        return len(self.times)


def _time_key(t: Instant) -> Tuple[int, int]:
    return (t.sec, t.nsec)


class ChannelAggregator:
    """
    Streaming per-channel statistics over ODPM samples of one PMIC.

    - (0, 0) samples are skipped
    - a timestamp already seen contributes nothing
    - value = scale[c] * raw[c]
    - max/min are seeded by the first accepted sample and replaced only on a
      strictly greater/smaller value, so ties keep the earliest time
    """

    def __init__(self, scales: Sequence[float], names: Optional[Sequence[Optional[str]]] = None):
        if not scales:
            raise ValueError("At least one channel scale is required")
        self.scales: Tuple[float, ...] = tuple(float(s) for s in scales)

        names = list(names or [])[: self.channel_count]
        names += [None] * (self.channel_count - len(names))
        self.names: Tuple[Optional[str], ...] = tuple(names)

        self._seen: Set[Tuple[int, int]] = set()
        self._times: List[Instant] = []
        self._series: List[List[TimedValue]] = [[] for _ in self.scales]
        self._sum: List[float] = [0.0] * self.channel_count
        self._max: List[Optional[TimedValue]] = [None] * self.channel_count
        self._min: List[Optional[TimedValue]] = [None] * self.channel_count

    @property
    def channel_count(self) -> int:
        return len(self.scales)

    @property
    def sample_count(self) -> int:
        return len(self._times)

    def scaled(self, channel: int, raw: float) -> float:
        return self.scales[channel] * raw

    def add(self, sample: Sample) -> bool:
        """Ingest one sample; returns True if it opened a new time column."""
        if sample.is_unused:
            return False

        key = _time_key(sample.time)
        if key in self._seen:
            return False

        if len(sample.values) < self.channel_count:
            raise ValueError(
                f"Sample has {len(sample.values)} values, expected {self.channel_count}"
            )

        self._seen.add(key)
        self._times.append(sample.time)

        for c in range(self.channel_count):
            tv = TimedValue(sample.time, self.scaled(c, sample.values[c]))
            self._series[c].append(tv)
            self._sum[c] += tv.value

            cur_max = self._max[c]
            if cur_max is None or tv.value > cur_max.value:
                self._max[c] = tv
            cur_min = self._min[c]
            if cur_min is None or tv.value < cur_min.value:
                self._min[c] = tv
        return True

    def extend(self, samples: Iterable[Sample]) -> int:
        return sum(1 for s in samples if self.add(s))

    def summary(self) -> Optional[DeviceSummary]:
        """Finalize mean/std; None when no sample was accepted."""
        n = self.sample_count
        if n == 0:
            return None

        channels: List[ChannelStat] = []
        for c in range(self.channel_count):
            series = self._series[c]
            mean = self._sum[c] / n
            mse = sum((tv.value - mean) ** 2 for tv in series)
            std = math.sqrt(mse / n)

            max_tv = self._max[c]
            min_tv = self._min[c]
            assert max_tv is not None and min_tv is not None

            channels.append(
                ChannelStat(
                    channel_id=c,
                    name=self.names[c],
                    max=max_tv,
                    min=min_tv,
                    mean=mean,
                    std=std,
                    series=tuple(sorted(series, key=lambda tv: _time_key(tv.time))),
                )
            )

        return DeviceSummary(
            times=tuple(sorted(self._times, key=_time_key)),
            channels=tuple(channels),
        )


def aggregate_channels(
    samples: Iterable[Sample],
    scales: Sequence[float],
    names: Optional[Sequence[Optional[str]]] = None,
) -> Optional[DeviceSummary]:
    agg = ChannelAggregator(scales, names)
    agg.extend(samples)
    return agg.summary()
