from __future__ import annotations

import struct
from pathlib import Path
from typing import Iterable, Sequence, Tuple

import pytest

# Default BrownoutStatsExtend layout, written out by hand so decoding is
# checked against fixed offsets rather than against layout.py itself.
RECORD_SIZE = 11072
RECORD_COUNT = 12
SAMPLE_SIZE = 64
STAT_SIZE = 52
CHANNELS = 12

OFF_TRIGGERED_TIME = 0
OFF_TRIGGERED_IDX = 16
OFF_MAIN = 24
OFF_SUB = 1304
OFF_FVP = 2584
OFF_MODEM = 6680
OFF_WIFI = 7192
OFF_STATS = 7704
OFF_EVENT_RECEIVED = 11032
OFF_DUMP = 11048
OFF_EVENT_IDX = 11064

SampleSpec = Tuple[int, int, Sequence[int]]  # (sec, nsec, values)


def pack_record(
    *,
    triggered: Tuple[int, int] = (0, 0),
    triggered_idx: int = 0,
    main: Iterable[SampleSpec] = (),
    sub: Iterable[SampleSpec] = (),
    fvp: bytes = b"",
    modem: bytes = b"",
    wifi: bytes = b"",
    stats: Iterable[Tuple[str, int]] = (),
    event_received: Tuple[int, int] = (0, 0),  # (sec, usec)
    dump: Tuple[int, int] = (0, 0),            # (sec, usec)
    event_idx: int = 0,
) -> bytes:
    buf = bytearray(RECORD_SIZE)
    struct.pack_into("<qq", buf, OFF_TRIGGERED_TIME, *triggered)
    struct.pack_into("<I", buf, OFF_TRIGGERED_IDX, triggered_idx)

    for base, samples in ((OFF_MAIN, main), (OFF_SUB, sub)):
        for i, (sec, nsec, values) in enumerate(samples):
            values = list(values) + [0] * (CHANNELS - len(values))
            struct.pack_into("<qq12I", buf, base + i * SAMPLE_SIZE, sec, nsec, *values)

    buf[OFF_FVP: OFF_FVP + len(fvp)] = fvp
    buf[OFF_MODEM: OFF_MODEM + len(modem)] = modem
    buf[OFF_WIFI: OFF_WIFI + len(wifi)] = wifi

    for i, (name, value) in enumerate(stats):
        off = OFF_STATS + i * STAT_SIZE
        raw = name.encode("utf-8")
        buf[off: off + len(raw)] = raw
        struct.pack_into("<i", buf, off + 48, value)

    struct.pack_into("<qq", buf, OFF_EVENT_RECEIVED, *event_received)
    struct.pack_into("<qq", buf, OFF_DUMP, *dump)
    struct.pack_into("<I", buf, OFF_EVENT_IDX, event_idx)
    return bytes(buf)


@pytest.fixture
def record_factory():
    return pack_record


@pytest.fixture
def write_log(tmp_path: Path):
    """Write records (padded with empty ones up to 12) to a log file."""

    def _write(records: Sequence[bytes] = (), name: str = "thismeal.bin", *, pad: bool = True) -> Path:
        records = list(records)
        if pad:
            records += [pack_record()] * (RECORD_COUNT - len(records))
        path = tmp_path / name
        path.write_bytes(b"".join(records))
        return path

    return _write


@pytest.fixture
def pmic_tree(tmp_path: Path):
    """
    Build two iio ODPM directories.

    Returns a function(scales0, scales1, rails0, rails1, name0) -> (dir0, dir1);
    None for any argument leaves that file out.
    """

    def _make(scales0=None, scales1=None, rails0=None, rails1=None, name0="s2mpg14-odpm\n"):
        dirs = []
        for i, (scales, rails) in enumerate(((scales0, rails0), (scales1, rails1))):
            d = tmp_path / "iio" / f"iio:device{i}"
            d.mkdir(parents=True, exist_ok=True)
            for c, s in enumerate(scales or []):
                (d / f"in_power{c}_scale").write_text(f"{s}\n", encoding="utf-8")
            if rails is not None:
                (d / "enabled_rails").write_text("".join(f"{r}\n" for r in rails), encoding="utf-8")
            dirs.append(d)
        if name0 is not None:
            (dirs[0] / "name").write_text(name0, encoding="utf-8")
        return dirs[0], dirs[1]

    return _make
