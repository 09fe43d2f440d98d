"""Named hardware memory regions used to label dump rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .memory_image import ADDRESS_MASK

UNCLASSIFIED = "unclassified"


class RegionTableError(ValueError):
    """Raised when a region table is malformed or overlapping."""


@dataclass(frozen=True)
class MemoryRegion:
    """Inclusive ``[start, end]`` address window with a display label."""

    id: str
    label: str
    start: int
    end: int

    def contains(self, address: int) -> bool:
        return self.start <= address <= self.end

    @property
    def address_range(self) -> Tuple[int, int]:
        return self.start, self.end


class RegionTable:
    """Immutable, non-overlapping set of :class:`MemoryRegion` entries."""

    def __init__(self, regions: Iterable[MemoryRegion]) -> None:
        self._regions: Tuple[MemoryRegion, ...] = tuple(regions)
        self._by_id: Dict[str, MemoryRegion] = {}
        for region in self._regions:
            if not region.id:
                raise RegionTableError("regions must have a non-empty id")
            if region.id in self._by_id:
                raise RegionTableError(f"region {region.id} defined multiple times")
            if not 0 <= region.start <= region.end <= ADDRESS_MASK:
                raise RegionTableError(
                    f"region {region.id} has an invalid range "
                    f"0x{region.start:X}-0x{region.end:X}"
                )
            self._by_id[region.id] = region
        ordered = sorted(self._regions, key=lambda region: region.start)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start <= previous.end:
                raise RegionTableError(f"region {current.id} overlaps {previous.id}")

    def __iter__(self) -> Iterator[MemoryRegion]:
        return iter(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    def find(self, address: int) -> Optional[MemoryRegion]:
        """Return the region containing ``address``, or ``None``."""

        for region in self._regions:
            if region.contains(address):
                return region
        return None

    def get(self, region_id: str) -> Optional[MemoryRegion]:
        return self._by_id.get(region_id)

    def require(self, region_id: str) -> MemoryRegion:
        region = self._by_id.get(region_id)
        if region is None:
            known = ", ".join(sorted(self._by_id)) or "<none>"
            raise KeyError(f"unknown region {region_id!r} (known: {known})")
        return region

    def classify(self, address: int) -> str:
        region = self.find(address)
        return UNCLASSIFIED if region is None else region.label


# AURIX TC3xx address map
DEFAULT_REGIONS = RegionTable(
    [
        MemoryRegion("DSPR0", "DSPR0 (CPU0)", 0x70000000, 0x7003BFFF),
        MemoryRegion("PSPR0", "PSPR0 (CPU0)", 0x70100000, 0x7010FFFF),
        MemoryRegion("DSPR1", "DSPR1 (CPU1)", 0x60000000, 0x6003BFFF),
        MemoryRegion("PSPR1", "PSPR1 (CPU1)", 0x60100000, 0x6010FFFF),
        MemoryRegion("DSPR2", "DSPR2 (CPU2)", 0x50000000, 0x50017FFF),
        MemoryRegion("PSPR2", "PSPR2 (CPU2)", 0x50100000, 0x5010FFFF),
        MemoryRegion("DSPR3", "DSPR3 (CPU3)", 0x40000000, 0x40017FFF),
        MemoryRegion("PSPR3", "PSPR3 (CPU3)", 0x40100000, 0x4010FFFF),
        MemoryRegion("DSPR4", "DSPR4 (CPU4)", 0x30000000, 0x30017FFF),
        MemoryRegion("PSPR4", "PSPR4 (CPU4)", 0x30100000, 0x3010FFFF),
        MemoryRegion("DSPR5", "DSPR5 (CPU5)", 0x10000000, 0x10017FFF),
        MemoryRegion("PSPR5", "PSPR5 (CPU5)", 0x10100000, 0x1010FFFF),
        MemoryRegion("PFLASH_C", "PFLASH (cached)", 0x80000000, 0x81FFFFFF),
        MemoryRegion("PFLASH_NC", "PFLASH (non-cached)", 0xA0000000, 0xA1FFFFFF),
        MemoryRegion("DFLASH", "DFLASH (DF0/DF1)", 0xAF000000, 0xAFC1FFFF),
        MemoryRegion("BROM_C", "BROM (cached)", 0x8FFF0000, 0x8FFFFFFF),
        MemoryRegion("BROM_NC", "BROM (non-cached)", 0xAFFF0000, 0xAFFFFFFF),
        MemoryRegion("LMU_C", "LMU (cached)", 0x90000000, 0x903FFFFF),
        MemoryRegion("LMU_NC", "LMU (non-cached)", 0xB0000000, 0xB03FFFFF),
    ]
)


def classify(address: int, table: RegionTable = DEFAULT_REGIONS) -> str:
    """Return the label of the region containing ``address``."""

    return table.classify(address)


__all__ = [
    "DEFAULT_REGIONS",
    "MemoryRegion",
    "RegionTable",
    "RegionTableError",
    "UNCLASSIFIED",
    "classify",
]
