"""Sparse address-to-byte mapping shared by the codec and the dump view."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

ADDRESS_MASK = 0xFFFFFFFF
WORD_BYTES = 4


class ImageError(ValueError):
    """Raised when an address or byte value cannot live in an image."""


def _check_address(address: int) -> int:
    if isinstance(address, bool) or not isinstance(address, int):
        raise ImageError(f"address must be an integer, received {address!r}")
    if not 0 <= address <= ADDRESS_MASK:
        raise ImageError(f"address 0x{address:X} outside the 32-bit address space")
    return address


def _check_byte(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ImageError(f"byte value must be an integer, received {value!r}")
    if not 0 <= value <= 0xFF:
        raise ImageError(f"byte value {value} outside 0..255")
    return value


class SparseMemoryImage(Mapping[int, int]):
    """Bytes keyed by absolute address.

    An address that is not in the image is *absent*, which is different from
    holding zero. Iteration always runs in ascending address order so callers
    never depend on insertion order.
    """

    def __init__(self, data: Mapping[int, int] | Iterable[Tuple[int, int]] | None = None) -> None:
        self._bytes: Dict[int, int] = {}
        if data is None:
            return
        items = data.items() if isinstance(data, Mapping) else data
        for address, value in items:
            self.set_byte(address, value)

    # Mapping API --------------------------------------------------------

    def __getitem__(self, address: int) -> int:
        return self._bytes[address]

    def __iter__(self) -> Iterator[int]:
        return iter(self.addresses())

    def __len__(self) -> int:
        return len(self._bytes)

    def __contains__(self, address: object) -> bool:
        return address in self._bytes

    def __repr__(self) -> str:
        span = self.span()
        if span is None:
            return "SparseMemoryImage(empty)"
        return f"SparseMemoryImage({len(self)} bytes, 0x{span[0]:08X}-0x{span[1]:08X})"

    # Mutation -----------------------------------------------------------

    def set_byte(self, address: int, value: int) -> None:
        """Store ``value`` at ``address``, replacing any previous byte."""

        self._bytes[_check_address(address)] = _check_byte(value)

    def set_word(self, address: int, word: bytes | Iterable[int]) -> None:
        """Overwrite the four bytes starting at ``address``.

        No alignment is required and no region bounds are enforced; absent
        addresses become present.
        """

        values = list(word)
        if len(values) != WORD_BYTES:
            raise ImageError(f"a word is {WORD_BYTES} bytes, received {len(values)}")
        _check_address(address)
        _check_address(address + WORD_BYTES - 1)
        checked = [_check_byte(value) for value in values]
        for offset, value in enumerate(checked):
            self._bytes[address + offset] = value

    # Queries ------------------------------------------------------------

    def addresses(self) -> List[int]:
        """Return every present address in ascending order."""

        return sorted(self._bytes)

    def span(self) -> Optional[Tuple[int, int]]:
        """Return the lowest and highest present address, or ``None``."""

        if not self._bytes:
            return None
        return min(self._bytes), max(self._bytes)

    def read(self, address: int, length: int) -> List[Optional[int]]:
        """Return ``length`` bytes from ``address``; absent bytes are ``None``."""

        return [self._bytes.get(address + offset) for offset in range(length)]

    def copy(self) -> "SparseMemoryImage":
        clone = SparseMemoryImage()
        clone._bytes = dict(self._bytes)
        return clone

    def as_dict(self) -> Dict[int, int]:
        return {address: self._bytes[address] for address in self.addresses()}


__all__ = ["ADDRESS_MASK", "ImageError", "SparseMemoryImage", "WORD_BYTES"]
