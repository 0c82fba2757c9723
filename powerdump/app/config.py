# powerdump/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from powerdump.model.layout import LayoutConstants
from powerdump.model.pmic import DeviceConfig
from powerdump.model.timemath import TimeMode


@dataclass(frozen=True)
class BrownoutLog:
    path: Path
    title: str


@dataclass(frozen=True)
class BrownoutConfig:
    logs: Tuple[BrownoutLog, ...]
    devices: Tuple[DeviceConfig, ...]
    time_mode: TimeMode = TimeMode.LEGACY


@dataclass(frozen=True)
class SectionSpec:
    """One report section as declared in sections.yml."""
    kind: str
    title: str = ""
    debug_only: bool = False
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReportConfig:
    brownout: BrownoutConfig
    layout: LayoutConstants
    sections: Tuple[SectionSpec, ...]
    sysroot: Optional[Path] = None
    debug_build: bool = False
