# powerdump/app/loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from powerdump.errors import MetadataError
from powerdump.model.layout import LayoutConstants
from powerdump.model.pmic import DeviceConfig
from powerdump.model.timemath import TimeMode
from powerdump.utils.paths import reroot
from .config import BrownoutConfig, BrownoutLog, ReportConfig, SectionSpec

PACKAGED_METADATA_DIR = Path(__file__).resolve().parents[1] / "metadata"

SECTION_KINDS = frozenset(
    {"times", "file", "dir", "hexdump", "mitigation_stats", "irq_duration", "tcpc", "brownout", "alternatives"}
)


class MetadataLoader:
    """
    Loads report metadata from YAML into typed config objects.

    Loads:
        - layout.yml     (snapshot record constants)
        - brownout.yml   (snapshot logs, PMIC devices, time mode)
        - sections.yml   (report sections, in order)

    After calling load_all(), exposes:
        self.layout    : LayoutConstants
        self.brownout  : BrownoutConfig
        self.sections  : tuple[SectionSpec, ...]

    Device paths in brownout.yml are re-rooted under `sysroot` when given.
    """

    REQUIRED_FILES = ("layout.yml", "brownout.yml", "sections.yml")

    def __init__(self, config_dir: str | Path | None = None, *, sysroot: str | Path | None = None):
        self.config_dir = Path(config_dir) if config_dir else PACKAGED_METADATA_DIR
        self.sysroot = Path(sysroot) if sysroot else None

        self.layout: LayoutConstants = LayoutConstants()
        self.brownout: Optional[BrownoutConfig] = None
        self.sections: Tuple[SectionSpec, ...] = ()

    # ---------------------------------------------------------------------
    # YAML utility
    # ---------------------------------------------------------------------
    def _load_yaml(self, filename: str) -> dict:
        full_path = self.config_dir / filename
        if not full_path.exists():
            raise MetadataError(
                f"Missing metadata file: {full_path}",
                hint="Pass --metadata pointing at a directory with layout.yml, brownout.yml and sections.yml.",
            )

        try:
            with open(full_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise MetadataError(f"Invalid YAML in {full_path}: {e}") from e

        if not isinstance(data, dict):
            raise MetadataError(f"{filename} must contain a mapping at the top level")
        return data

    # ---------------------------------------------------------------------
    # Public entry point
    # ---------------------------------------------------------------------
    def load_all(self) -> None:
        self._load_layout()
        self._load_brownout()
        self._load_sections()

    def report_config(self, *, time_mode: Optional[str] = None, debug_build: bool = False) -> ReportConfig:
        if self.brownout is None:
            self.load_all()
        assert self.brownout is not None

        brownout = self.brownout
        if time_mode is not None:
            brownout = BrownoutConfig(
                logs=brownout.logs,
                devices=brownout.devices,
                time_mode=self._time_mode(time_mode),
            )

        return ReportConfig(
            brownout=brownout,
            layout=self.layout,
            sections=self.sections,
            sysroot=self.sysroot,
            debug_build=debug_build,
        )

    # ---------------------------------------------------------------------
    # Layout
    # ---------------------------------------------------------------------
    def _load_layout(self) -> None:
        data = self._load_yaml("layout.yml")

        layout = data.get("layout")
        if not isinstance(layout, dict):
            raise MetadataError("layout.yml is missing 'layout' root node")

        try:
            self.layout = LayoutConstants.from_mapping(layout)
        except (ValueError, NotImplementedError) as e:
            raise MetadataError(f"layout.yml: {e}") from e

    # ---------------------------------------------------------------------
    # Brownout logs + PMICs
    # ---------------------------------------------------------------------
    @staticmethod
    def _time_mode(value: Any) -> TimeMode:
        try:
            return TimeMode(str(value).lower())
        except ValueError:
            choices = ", ".join(m.value for m in TimeMode)
            raise MetadataError(f"Invalid time_mode {value!r} (expected one of: {choices})") from None

    def _path(self, value: Any, what: str) -> Path:
        if not value:
            raise MetadataError(f"brownout.yml: {what} is missing")
        return reroot(str(value), self.sysroot)

    def _load_brownout(self) -> None:
        data = self._load_yaml("brownout.yml")

        root = data.get("brownout")
        if not isinstance(root, dict):
            raise MetadataError("brownout.yml is missing 'brownout' root node")

        logs_raw = root.get("logs") or []
        if not isinstance(logs_raw, list):
            raise MetadataError("brownout.yml 'logs' must be a list")

        logs: List[BrownoutLog] = []
        for i, entry in enumerate(logs_raw):
            if not isinstance(entry, dict):
                raise MetadataError(f"Brownout log {i} entry must be a mapping")
            path = self._path(entry.get("path"), f"logs[{i}].path")
            logs.append(BrownoutLog(path=path, title=str(entry.get("title") or path.name)))

        pmics_raw = root.get("pmics") or []
        if not isinstance(pmics_raw, list) or len(pmics_raw) != 2:
            raise MetadataError("brownout.yml 'pmics' must list exactly two devices")

        devices: List[DeviceConfig] = []
        for i, entry in enumerate(pmics_raw):
            if not isinstance(entry, dict):
                raise MetadataError(f"PMIC {i} entry must be a mapping")

            expected_name = entry.get("expected_name")
            if expected_name is None:
                raise MetadataError(f"PMIC {i} is missing 'expected_name'")

            devices.append(
                DeviceConfig(
                    label=str(entry.get("label") or f"device{i}"),
                    odpm_dir=self._path(entry.get("odpm_dir"), f"pmics[{i}].odpm_dir"),
                    enabled_rails_path=self._path(entry.get("enabled_rails"), f"pmics[{i}].enabled_rails"),
                    name_path=self._path(entry.get("name_path"), f"pmics[{i}].name_path"),
                    expected_name=str(expected_name),
                )
            )

        self.brownout = BrownoutConfig(
            logs=tuple(logs),
            devices=tuple(devices),
            time_mode=self._time_mode(root.get("time_mode", TimeMode.LEGACY.value)),
        )

    # ---------------------------------------------------------------------
    # Sections
    # ---------------------------------------------------------------------
    def _parse_section(self, entry: Any, where: str) -> SectionSpec:
        if not isinstance(entry, dict):
            raise MetadataError(f"Section {where} must be a mapping")

        kind = entry.get("kind")
        if kind not in SECTION_KINDS:
            raise MetadataError(f"Section {where} has unknown kind {kind!r}")

        title = str(entry.get("title") or "")
        if not title and kind not in {"brownout", "alternatives"}:
            raise MetadataError(f"Section {where} ({kind}) is missing 'title'")

        params: Dict[str, Any] = {
            k: v for k, v in entry.items() if k not in {"kind", "title", "debug_only"}
        }

        if kind == "irq_duration":
            files = params.get("duration_files")
            if not isinstance(files, list) or len(files) != 3:
                raise MetadataError(f"Section {where} (irq_duration) needs exactly three 'duration_files'")

        if kind == "tcpc":
            attrs = params.get("attributes")
            if not isinstance(attrs, list) or not all(
                isinstance(a, dict) and "label" in a and "file" in a for a in attrs
            ):
                raise MetadataError(f"Section {where} (tcpc) needs an 'attributes' list of label/file mappings")

        if kind == "alternatives":
            choices = params.get("choices")
            if not isinstance(choices, list) or not choices:
                raise MetadataError(f"Section {where} (alternatives) needs a non-empty 'choices' list")
            parsed = []
            for j, choice in enumerate(choices):
                if not isinstance(choice, dict) or not isinstance(choice.get("sections"), list):
                    raise MetadataError(f"Section {where}.choices[{j}] needs a 'sections' list")
                parsed.append(
                    {
                        "when_exists": choice.get("when_exists"),
                        "sections": tuple(
                            self._parse_section(s, f"{where}.choices[{j}].sections[{k}]")
                            for k, s in enumerate(choice["sections"])
                        ),
                    }
                )
            params["choices"] = tuple(parsed)

        return SectionSpec(
            kind=str(kind),
            title=title,
            debug_only=bool(entry.get("debug_only", False)),
            params=params,
        )

    def _load_sections(self) -> None:
        data = self._load_yaml("sections.yml")

        sections = data.get("sections")
        if not isinstance(sections, list):
            raise MetadataError("sections.yml is missing 'sections' list")

        self.sections = tuple(self._parse_section(s, f"[{i}]") for i, s in enumerate(sections))
