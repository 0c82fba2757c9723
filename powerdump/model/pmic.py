# powerdump/model/pmic.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from powerdump.errors import MalformedAuxError
from .channel import INVALID_SCALE

_log = logging.getLogger(__name__)

_FLOAT_RE = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


@dataclass(frozen=True)
class DeviceConfig:
    """
    Static description of one PMIC's ODPM.

    odpm_dir:            iio device directory holding in_power<N>_scale files
    enabled_rails_path:  one rail name per line, in channel order
    name_path:           identification file
    expected_name:       verbatim content of name_path on the main PMIC
    """
    label: str
    odpm_dir: Path
    enabled_rails_path: Path
    name_path: Path
    expected_name: str

    def scale_path(self, channel: int) -> Path:
        return self.odpm_dir / f"in_power{int(channel)}_scale"


@dataclass(frozen=True)
class PmicRoles:
    main_index: int
    sub_index: int
    note: Optional[str] = None  # set when resolution fell back to the default


def resolve_pmic(devices: Sequence[DeviceConfig], *, logger: Optional[logging.Logger] = None) -> PmicRoles:
    """
    Decide which configured PMIC is "main".

    Only device 0's identification file is read. If it matches device 0's
    expected name verbatim, device 0 is main; any other content makes device 1
    main. An unreadable file defaults to device 0.
    """
    log = logger or _log
    if len(devices) != 2:
        raise ValueError(f"Exactly two PMIC devices are required (got {len(devices)})")

    first = devices[0]
    try:
        content = Path(first.name_path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        log.warning("PMIC_NAME_UNREADABLE path=%s err=%s", first.name_path, e)
        return PmicRoles(
            main_index=0,
            sub_index=1,
            note=f"Failed to open {first.name_path}, set device0 as main pmic",
        )

    main = 0 if content == first.expected_name else 1
    log.debug("PMIC_RESOLVED main=%d name=%r", main, content)
    return PmicRoles(main_index=main, sub_index=1 - main)


def resolve_main_index(devices: Sequence[DeviceConfig], *, logger: Optional[logging.Logger] = None) -> int:
    return resolve_pmic(devices, logger=logger).main_index


# ---------------------------------------------------------------------------
# Auxiliary inputs
# ---------------------------------------------------------------------------

def parse_scale(text: str) -> float:
    """Leading floating-point number of `text` (trailing junk ignored)."""
    m = _FLOAT_RE.match(text)
    if not m:
        raise MalformedAuxError(f"Not a number: {text[:32]!r}")
    return float(m.group(1))


def read_scale(path: Path) -> float:
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise MalformedAuxError(f"Cannot read {path}: {e}", details={"path": str(path)}) from e
    try:
        return parse_scale(text)
    except MalformedAuxError as e:
        raise MalformedAuxError(f"{path}: {e.message}", details={"path": str(path)}) from e


def read_scales(device: DeviceConfig, channel_count: int, *, logger: Optional[logging.Logger] = None) -> List[float]:
    """One scale per channel; INVALID_SCALE where a file is missing or bad."""
    log = logger or _log
    out: List[float] = []
    for c in range(channel_count):
        try:
            out.append(read_scale(device.scale_path(c)))
        except MalformedAuxError as e:
            log.warning("ODPM_SCALE_INVALID device=%s channel=%d: %s", device.label, c, e.message)
            out.append(INVALID_SCALE)
    return out


def read_rail_names_strict(path: Path, channel_count: int) -> List[str]:
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise MalformedAuxError(f"Cannot read {path}: {e}", details={"path": str(path)}) from e

    names: List[str] = []
    for line in text.splitlines(keepends=True):
        names.append(line[:-1] if line.endswith("\n") else line)
        if len(names) == channel_count:
            break
    return names


def read_rail_names(device: DeviceConfig, channel_count: int, *, logger: Optional[logging.Logger] = None) -> List[Optional[str]]:
    """Rail names in channel order; channels without a name map to None."""
    log = logger or _log
    try:
        names: List[Optional[str]] = list(read_rail_names_strict(device.enabled_rails_path, channel_count))
    except MalformedAuxError as e:
        log.warning("ODPM_RAIL_NAMES_UNREADABLE device=%s: %s", device.label, e.message)
        names = []
    return names + [None] * (channel_count - len(names))
