"""Project a sparse memory image into fixed-width hex/ASCII dump rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .memory_image import SparseMemoryImage

ROW_BYTES = 16
WORDS_PER_ROW = 4
WORD_BYTES = 4
ROW_MASK = ~(ROW_BYTES - 1)
WORD_PLACEHOLDER = "." * (WORD_BYTES * 2)
ASCII_PLACEHOLDER = "."
PRINTABLE = range(0x20, 0x7F)

DUMP_HEADER = "ADDRESS         0        4        8        C        ASCII"

AddressRange = Tuple[int, int]


@dataclass(frozen=True)
class DumpRow:
    """Sixteen bytes of the image starting at a 16-byte aligned address."""

    address: int
    words: Tuple[str, ...]
    ascii: str

    def as_dict(self) -> dict[str, object]:
        """Return the JSON-serialisable form sent to the presentation surface."""

        return {"address": self.address, "words": list(self.words), "ascii": self.ascii}

    def format(self) -> str:
        # columns line up with DUMP_HEADER
        return f"{self.address:08X}        {' '.join(self.words)} {self.ascii}"


def _render_word(values: Sequence[Optional[int]]) -> str:
    if any(value is None for value in values):
        return WORD_PLACEHOLDER
    return "".join(f"{value:02X}" for value in values)


def _render_ascii(value: Optional[int]) -> str:
    if value is None or value not in PRINTABLE:
        return ASCII_PLACEHOLDER
    return chr(value)


def project(
    image: SparseMemoryImage, address_range: AddressRange | None = None
) -> List[DumpRow]:
    """Build one :class:`DumpRow` per aligned base holding a present byte.

    ``address_range`` is inclusive and limits which present addresses create
    rows; the bytes shown inside a row are never filtered.
    """

    addresses: Iterable[int] = image.addresses()
    if address_range is not None:
        low, high = address_range
        addresses = (address for address in addresses if low <= address <= high)

    bases = sorted({address & ROW_MASK for address in addresses})
    rows: List[DumpRow] = []
    for base in bases:
        values = image.read(base, ROW_BYTES)
        words = tuple(
            _render_word(values[index * WORD_BYTES : (index + 1) * WORD_BYTES])
            for index in range(WORDS_PER_ROW)
        )
        ascii_cell = "".join(_render_ascii(value) for value in values)
        rows.append(DumpRow(address=base, words=words, ascii=ascii_cell))
    return rows


def find_row(rows: Sequence[DumpRow], address: int) -> Optional[DumpRow]:
    """Return the row whose sixteen bytes contain ``address``."""

    base = address & ROW_MASK
    for row in rows:
        if row.address == base:
            return row
        if row.address > base:
            break
    return None


def format_rows(rows: Iterable[DumpRow], *, header: bool = True) -> str:
    lines: List[str] = [DUMP_HEADER] if header else []
    lines.extend(row.format() for row in rows)
    return "\n".join(lines)


__all__ = [
    "AddressRange",
    "DUMP_HEADER",
    "DumpRow",
    "ROW_BYTES",
    "WORD_PLACEHOLDER",
    "find_row",
    "format_rows",
    "project",
]
