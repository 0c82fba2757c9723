# powerdump/model/layout.py
from __future__ import annotations

from dataclasses import dataclass, fields as dc_fields
from typing import Any, Dict, List, Mapping, Tuple

from .codec import primitive_size


@dataclass(frozen=True)
class LayoutConstants:
    """
    Producer-side sizes of the brownout snapshot record.

    Defaults describe the LP64 little-endian mitigation driver build.
    """
    channel_count: int = 12       # ODPM channels per PMIC
    logging_len: int = 20         # sample slots per PMIC per record
    record_count: int = 12        # records per log file
    fvp_stats_size: int = 4096
    pcie_modem_size: int = 512
    pcie_wifi_size: int = 512
    stat_name_size: int = 48
    stats_max_size: int = 64
    time_encode: str = "int64"    # time_t / long (timespec and timeval fields)
    value_encode: str = "uint32"  # raw ODPM reading
    index_encode: str = "uint32"  # triggered_idx / eventIdx
    stat_value_encode: str = "int32"
    endian: str = "little"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LayoutConstants":
        known = {f.name: f for f in dc_fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown layout constants: {unknown}")

        kw: Dict[str, Any] = {}
        for name, value in data.items():
            if isinstance(getattr(cls, name), int):
                if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                    raise ValueError(f"Layout constant '{name}' must be a positive integer (got {value!r})")
                kw[name] = int(value)
            else:
                kw[name] = str(value).lower()

        consts = cls(**kw)
        if consts.endian not in {"little", "big"}:
            raise ValueError(f"Invalid endian '{consts.endian}'")
        for enc in (consts.time_encode, consts.value_encode, consts.index_encode, consts.stat_value_encode):
            primitive_size(enc)  # raises on unknown type
        return consts


@dataclass(frozen=True)
class FieldSpec:
    """One entry of the record's field/offset/size table."""
    name: str
    offset: int
    size: int       # total bytes, including every element of an array
    count: int = 1
    stride: int = 0  # element size for arrays (0 for scalars/blobs)

    @property
    def end(self) -> int:
        return self.offset + self.size

    def element_offset(self, i: int) -> int:
        if not 0 <= i < self.count:
            raise IndexError(f"{self.name}[{i}] out of range (count={self.count})")
        return self.offset + i * self.stride


def _align(offset: int, alignment: int) -> int:
    return (offset + alignment - 1) // alignment * alignment


class _Packer:
    """Lays out fields with natural C alignment."""

    def __init__(self) -> None:
        self.offset = 0
        self.max_align = 1
        self.fields: List[FieldSpec] = []

    def add(self, name: str, size: int, align: int, *, count: int = 1) -> FieldSpec:
        self.offset = _align(self.offset, align)
        self.max_align = max(self.max_align, align)
        spec = FieldSpec(
            name=name,
            offset=self.offset,
            size=size * count,
            count=count,
            stride=size if count > 1 else 0,
        )
        self.fields.append(spec)
        self.offset += spec.size
        return spec

    def pad_to(self, align: int) -> None:
        self.offset = _align(self.offset, align)

    def finish(self) -> int:
        return _align(self.offset, self.max_align)


class RecordLayout:
    """
    Field/offset/size table for one BrownoutStatsExtend record.

        brownout_stats:
            triggered_time          timespec
            triggered_idx           index
            main_samples[logging_len]
            sub_samples[logging_len]
        fvp_stats                   char[fvp_stats_size]
        pcie_modem                  char[pcie_modem_size]
        pcie_wifi                   char[pcie_wifi_size]
        numeric_stats[stats_max_size]   {char name[stat_name_size]; int value}
        event_received_time         timeval
        dump_time                   timeval
        event_idx                   index

    Sample: {timespec time; value[channel_count]}.
    Decoding reads each field at its offset; nothing relies on host struct layout.
    """

    def __init__(self, constants: LayoutConstants | None = None):
        self.constants = constants or LayoutConstants()
        c = self.constants

        t = primitive_size(c.time_encode)
        v = primitive_size(c.value_encode)
        idx = primitive_size(c.index_encode)
        sv = primitive_size(c.stat_value_encode)

        # timespec / timeval: two time_encode words
        self.time_size = 2 * t

        # sample
        self.sample_values_offset = _align(self.time_size, v)
        self.sample_align = max(t, v)
        self.sample_size = _align(self.sample_values_offset + c.channel_count * v, self.sample_align)

        # numeric stat
        self.stat_value_offset = _align(c.stat_name_size, sv)
        self.stat_size = _align(self.stat_value_offset + sv, sv)

        p = _Packer()
        p.add("triggered_time", self.time_size, t)
        p.add("triggered_idx", idx, idx)
        p.add("main_samples", self.sample_size, self.sample_align, count=c.logging_len)
        p.add("sub_samples", self.sample_size, self.sample_align, count=c.logging_len)
        # end of the nested brownout_stats struct
        p.pad_to(max(t, idx, self.sample_align))
        p.add("fvp_stats", c.fvp_stats_size, 1)
        p.add("pcie_modem", c.pcie_modem_size, 1)
        p.add("pcie_wifi", c.pcie_wifi_size, 1)
        p.add("numeric_stats", self.stat_size, sv, count=c.stats_max_size)
        p.add("event_received_time", self.time_size, t)
        p.add("dump_time", self.time_size, t)
        p.add("event_idx", idx, idx)

        self.fields: Dict[str, FieldSpec] = {f.name: f for f in p.fields}
        self.record_size: int = p.finish()

    @property
    def record_count(self) -> int:
        return self.constants.record_count

    @property
    def expected_log_size(self) -> int:
        return self.record_size * self.constants.record_count

    def field(self, name: str) -> FieldSpec:
        try:
            return self.fields[name]
        except KeyError:
            raise KeyError(f"Unknown record field '{name}'") from None

    def table(self) -> List[Tuple[str, int, int]]:
        return [(f.name, f.offset, f.size) for f in self.fields.values()]

    def __repr__(self) -> str:
        return f"RecordLayout(record_size={self.record_size}, records={self.record_count})"
