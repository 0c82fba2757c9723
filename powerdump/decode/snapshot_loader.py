# powerdump/decode/snapshot_loader.py
from __future__ import annotations

import logging
import mmap
from pathlib import Path
from typing import List, Optional

from powerdump.errors import LogNotFoundError, LogOpenError, SizeMismatchError
from powerdump.model.codec import decode_cstring, decode_primitive_at, primitive_struct
from powerdump.model.layout import RecordLayout
from powerdump.model.snapshot import NumericStat, Sample, Snapshot
from powerdump.model.timemath import Instant

_log = logging.getLogger(__name__)


class SnapshotDecoder:
    """
    Decodes records from a buffer by explicit offset reads against a
    RecordLayout.
    """

    def __init__(self, layout: RecordLayout):
        self.layout = layout
        c = layout.constants
        self._endian = c.endian
        self._time = primitive_struct(c.time_encode, 2, endian=c.endian)
        self._values = primitive_struct(c.value_encode, c.channel_count, endian=c.endian)

    def _instant(self, buf, offset: int) -> Instant:
        sec, nsec = self._time.unpack_from(buf, offset)
        return Instant(sec, nsec)

    def _timeval(self, buf, offset: int) -> Instant:
        sec, usec = self._time.unpack_from(buf, offset)
        return Instant.from_micros(sec, usec)

    def _index(self, buf, offset: int) -> int:
        return int(decode_primitive_at(self.layout.constants.index_encode, buf, offset, endian=self._endian))

    def _samples(self, buf, base: int, field_name: str) -> tuple:
        spec = self.layout.field(field_name)
        out = []
        for i in range(spec.count):
            off = base + spec.element_offset(i)
            out.append(
                Sample(
                    time=self._instant(buf, off),
                    values=tuple(self._values.unpack_from(buf, off + self.layout.sample_values_offset)),
                )
            )
        return tuple(out)

    def _text(self, buf, base: int, field_name: str) -> str:
        spec = self.layout.field(field_name)
        start = base + spec.offset
        return decode_cstring(bytes(buf[start: start + spec.size]))

    def _stats(self, buf, base: int) -> tuple:
        spec = self.layout.field("numeric_stats")
        name_size = self.layout.constants.stat_name_size
        enc = self.layout.constants.stat_value_encode
        out = []
        for i in range(spec.count):
            off = base + spec.element_offset(i)
            name = decode_cstring(bytes(buf[off: off + name_size]))
            value = decode_primitive_at(enc, buf, off + self.layout.stat_value_offset, endian=self._endian)
            out.append(NumericStat(name=name, value=int(value)))
        return tuple(out)

    def decode_record(self, buf, index: int = 0) -> Snapshot:
        base = index * self.layout.record_size
        if base + self.layout.record_size > len(buf):
            raise ValueError(f"Record {index} extends past end of buffer ({len(buf)} bytes)")

        f = self.layout.field
        return Snapshot(
            triggered_time=self._instant(buf, base + f("triggered_time").offset),
            triggered_idx=self._index(buf, base + f("triggered_idx").offset),
            main_samples=self._samples(buf, base, "main_samples"),
            sub_samples=self._samples(buf, base, "sub_samples"),
            fvp_stats=self._text(buf, base, "fvp_stats"),
            pcie_modem=self._text(buf, base, "pcie_modem"),
            pcie_wifi=self._text(buf, base, "pcie_wifi"),
            numeric_stats=self._stats(buf, base),
            event_received_time=self._timeval(buf, base + f("event_received_time").offset),
            dump_time=self._timeval(buf, base + f("dump_time").offset),
            event_idx=self._index(buf, base + f("event_idx").offset),
        )

    def decode_all(self, buf) -> List[Snapshot]:
        if len(buf) != self.layout.expected_log_size:
            raise ValueError(
                f"Buffer length {len(buf)} != expected {self.layout.expected_log_size}"
            )
        return [self.decode_record(buf, i) for i in range(self.layout.record_count)]


def load_snapshots(
    path: str | Path,
    layout: Optional[RecordLayout] = None,
    *,
    logger: Optional[logging.Logger] = None,
) -> List[Snapshot]:
    """
    Load a brownout snapshot log.

    Raises:
        LogNotFoundError: path does not exist.
        LogOpenError: path exists but cannot be opened or mapped.
        SizeMismatchError: length != record_size * record_count.

    The file is mapped read-only and copied out; the mapping and descriptor
    are closed before this returns or raises.
    """
    log = logger or _log
    layout = layout or RecordLayout()
    path = Path(path)

    try:
        f = open(path, "rb")
    except FileNotFoundError as e:
        log.info("SNAPSHOT_LOG_MISSING path=%s", path)
        raise LogNotFoundError(path) from e
    except OSError as e:
        log.warning("SNAPSHOT_LOG_OPEN_FAILED path=%s err=%s", path, e)
        raise LogOpenError(path, details={"error": str(e)}) from e

    with f:
        try:
            actual = f.seek(0, 2)
        except OSError as e:
            log.warning("SNAPSHOT_LOG_OPEN_FAILED path=%s err=%s", path, e)
            raise LogOpenError(path, details={"error": str(e)}) from e

        expected = layout.expected_log_size
        if actual != expected:
            log.warning("SNAPSHOT_SIZE_MISMATCH path=%s expected=%d actual=%d", path, expected, actual)
            raise SizeMismatchError(path, expected=expected, actual=actual)

        try:
            with mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as mm:
                data = bytes(mm)
        except (OSError, ValueError) as e:
            log.warning("SNAPSHOT_LOG_MAP_FAILED path=%s err=%s", path, e)
            raise LogOpenError(path, details={"error": str(e)}) from e

    # File may be rewritten between the size check and the map.
    if len(data) != expected:
        log.warning("SNAPSHOT_SIZE_CHANGED path=%s expected=%d actual=%d", path, expected, len(data))
        raise SizeMismatchError(path, expected=expected, actual=len(data))

    snapshots = SnapshotDecoder(layout).decode_all(data)
    log.info("SNAPSHOT_LOG_LOADED path=%s records=%d", path, len(snapshots))
    return snapshots
