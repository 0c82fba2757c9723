# powerdump/utils/paths.py
from __future__ import annotations

from pathlib import Path
from typing import Optional


def reroot(path: str | Path, sysroot: Optional[str | Path] = None) -> Path:
    """
    Map an absolute device path under `sysroot` (offline analysis of a pulled
    filesystem). Without a sysroot the path is returned unchanged.
    """
    p = Path(path)
    if sysroot is None:
        return p
    if p.is_absolute():
        p = p.relative_to(p.anchor)
    return Path(sysroot) / p
