"""Line-level parsing and emission of Intel HEX records."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

RECORD_MARK = ":"
# marker + length + address + type + checksum
MIN_RECORD_LENGTH = 11
MAX_PAYLOAD_BYTES = 0xFF

_HEX_DIGITS = re.compile(r"[0-9A-Fa-f]+")


class RecordType(enum.IntEnum):
    """Record types understood by the document codec."""

    DATA = 0x00
    EOF = 0x01
    EXT_SEGMENT = 0x02
    EXT_LINEAR = 0x04


@dataclass(frozen=True)
class Record:
    """One decoded ``:LLAAAATT[DD...]CC`` line.

    ``payload`` always holds ``byte_count`` entries; an entry is ``None`` when
    the corresponding byte was missing or not valid hexadecimal.
    """

    byte_count: int
    address: int
    record_type: int
    payload: Tuple[Optional[int], ...]
    checksum: Optional[int] = None

    @property
    def known_type(self) -> Optional[RecordType]:
        try:
            return RecordType(self.record_type)
        except ValueError:
            return None

    @property
    def complete(self) -> bool:
        """Return ``True`` when every payload byte parsed."""

        return all(value is not None for value in self.payload)

    @property
    def data(self) -> bytes:
        """Return the payload bytes that parsed, in order."""

        return bytes(value for value in self.payload if value is not None)

    def payload_value(self) -> Optional[int]:
        """Return the payload as a big-endian integer, or ``None`` if incomplete."""

        if not self.payload or not self.complete:
            return None
        return int.from_bytes(self.data, "big")

    @property
    def checksum_valid(self) -> bool:
        if self.checksum is None or not self.complete:
            return False
        expected = record_checksum(self.address, self.record_type, self.data)
        return expected == self.checksum


def _parse_hex(text: str) -> Optional[int]:
    if not text or _HEX_DIGITS.fullmatch(text) is None:
        return None
    return int(text, 16)


def parse_line(line: str) -> Optional[Record]:
    """Parse ``line`` into a :class:`Record`, or return ``None`` to skip it.

    Blank lines, stray text and records whose length, address or type fields
    are not hexadecimal are skipped rather than reported. The checksum is
    captured but never enforced.
    """

    text = line.strip()
    if not text.startswith(RECORD_MARK) or len(text) < MIN_RECORD_LENGTH:
        return None

    byte_count = _parse_hex(text[1:3])
    address = _parse_hex(text[3:7])
    record_type = _parse_hex(text[7:9])
    if byte_count is None or address is None or record_type is None:
        return None

    data_end = 9 + byte_count * 2
    data = text[9:data_end]
    payload = tuple(
        _parse_hex(data[index * 2 : index * 2 + 2]) if len(data) >= index * 2 + 2 else None
        for index in range(byte_count)
    )
    checksum_text = text[data_end : data_end + 2]
    checksum = _parse_hex(checksum_text) if len(checksum_text) == 2 else None
    return Record(
        byte_count=byte_count,
        address=address,
        record_type=record_type,
        payload=payload,
        checksum=checksum,
    )


def record_checksum(address16: int, record_type: int, payload: Sequence[int]) -> int:
    """Return the two's-complement checksum of a record's fields."""

    address16 &= 0xFFFF
    total = len(payload) + (address16 >> 8) + (address16 & 0xFF) + record_type
    total += sum(payload)
    return (0x100 - (total & 0xFF)) & 0xFF


def emit_record(address16: int, record_type: int, payload: Sequence[int] = ()) -> str:
    """Build the canonical upper-case line for one record."""

    if len(payload) > MAX_PAYLOAD_BYTES:
        raise ValueError(f"record payload exceeds {MAX_PAYLOAD_BYTES} bytes")
    if any(not 0 <= value <= 0xFF for value in payload):
        raise ValueError("record payload values must be bytes")
    address16 &= 0xFFFF
    checksum = record_checksum(address16, record_type, payload)
    body = "".join(f"{value:02X}" for value in payload)
    return (
        f"{RECORD_MARK}{len(payload):02X}{address16:04X}{record_type:02X}"
        f"{body}{checksum:02X}"
    )


EOF_RECORD = emit_record(0x0000, RecordType.EOF)


__all__ = [
    "EOF_RECORD",
    "MIN_RECORD_LENGTH",
    "RECORD_MARK",
    "Record",
    "RecordType",
    "emit_record",
    "parse_line",
    "record_checksum",
]
