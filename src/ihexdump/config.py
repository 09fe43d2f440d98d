"""Load viewer settings and region tables from TOML files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping

import tomllib

from .memory_image import ADDRESS_MASK
from .regions import DEFAULT_REGIONS, MemoryRegion, RegionTable, RegionTableError

DEFAULT_DEBOUNCE_MS = 150
MAX_DEBOUNCE_MS = 5000


class ConfigError(ValueError):
    """Raised when a viewer configuration file fails validation."""


@dataclass(frozen=True)
class ViewerConfig:
    """Settings applied to every session opened by the command line."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    regions: RegionTable = DEFAULT_REGIONS
    default_region: str | None = None

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def region_range(self, region_id: str | None = None) -> tuple[int, int] | None:
        """Return the address range for ``region_id`` or the default region."""

        selected = region_id if region_id is not None else self.default_region
        if selected is None:
            return None
        try:
            return self.regions.require(selected).address_range
        except KeyError as exc:
            raise ConfigError(str(exc.args[0])) from exc


def load_viewer_config(config_path: Path | None) -> ViewerConfig:
    """Parse ``config_path``; ``None`` yields the built-in defaults."""

    if config_path is None:
        return ViewerConfig()

    with config_path.open("rb") as stream:
        try:
            data = tomllib.load(stream)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"{config_path}: {exc}") from exc

    viewer = _parse_viewer_section(data)
    debounce_ms = _coerce_debounce(viewer.get("debounce_ms", DEFAULT_DEBOUNCE_MS))
    regions = _parse_regions(data.get("regions"))

    default_region = viewer.get("region")
    if default_region is not None:
        if not isinstance(default_region, str) or not default_region.strip():
            raise ConfigError("viewer.region must be a region id")
        default_region = default_region.strip()
        if regions.get(default_region) is None:
            raise ConfigError(f"viewer.region {default_region!r} does not match a region")

    return ViewerConfig(
        debounce_ms=debounce_ms, regions=regions, default_region=default_region
    )


def _parse_viewer_section(data: Mapping[str, Any]) -> Mapping[str, Any]:
    viewer = data.get("viewer", {})
    if not isinstance(viewer, Mapping):
        raise ConfigError("[viewer] section must be a mapping")
    return viewer


def _coerce_debounce(raw_value: Any) -> int:
    if isinstance(raw_value, bool) or not isinstance(raw_value, int):
        raise ConfigError("viewer.debounce_ms must be an integer")
    if not 0 <= raw_value <= MAX_DEBOUNCE_MS:
        raise ConfigError(f"viewer.debounce_ms must be between 0 and {MAX_DEBOUNCE_MS}")
    return raw_value


def _parse_regions(entries: Any) -> RegionTable:
    if entries is None:
        return DEFAULT_REGIONS
    if not isinstance(entries, list):
        raise ConfigError("[[regions]] must be an array of tables")

    regions: List[MemoryRegion] = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, Mapping):
            raise ConfigError(f"region entry #{index} must be a mapping")
        region_id = entry.get("id")
        if not isinstance(region_id, str) or not region_id.strip():
            raise ConfigError(f"region entry #{index} requires an id")
        region_id = region_id.strip()
        label = entry.get("label", region_id)
        if not isinstance(label, str):
            raise ConfigError(f"region {region_id} label must be a string")
        start = _coerce_address(entry.get("start"), f"region {region_id} start")
        end = _coerce_address(entry.get("end"), f"region {region_id} end")
        regions.append(MemoryRegion(id=region_id, label=label, start=start, end=end))

    try:
        return RegionTable(regions)
    except RegionTableError as exc:
        raise ConfigError(str(exc)) from exc


def _coerce_address(raw_value: Any, field_name: str) -> int:
    if raw_value is None:
        raise ConfigError(f"{field_name} is required")
    if isinstance(raw_value, bool):
        raise ConfigError(f"{field_name} must be an integer")
    if isinstance(raw_value, int):
        value = raw_value
    elif isinstance(raw_value, str):
        text = raw_value.strip()
        base = 16 if text.lower().startswith("0x") else 10
        try:
            value = int(text, base=base)
        except ValueError as exc:
            raise ConfigError(f"{field_name} must be an integer") from exc
    else:
        raise ConfigError(f"{field_name} must be an integer")

    if not 0 <= value <= ADDRESS_MASK:
        raise ConfigError(f"{field_name} outside the 32-bit address space")
    return value


def describe_regions(table: Iterable[MemoryRegion]) -> List[str]:
    return [
        f"{region.id:<10} 0x{region.start:08X}-0x{region.end:08X}  {region.label}"
        for region in table
    ]


__all__ = [
    "ConfigError",
    "DEFAULT_DEBOUNCE_MS",
    "ViewerConfig",
    "describe_regions",
    "load_viewer_config",
]
