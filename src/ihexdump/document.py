"""Whole-document Intel HEX decode and canonical encode."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List

from .memory_image import ADDRESS_MASK, SparseMemoryImage
from .records import EOF_RECORD, RecordType, emit_record, parse_line

LOGGER = logging.getLogger(__name__)

MAX_DATA_RECORD_BYTES = 16
LINE_TERMINATOR = "\n"
_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class DecodeReport:
    """Decoded image plus the anomalies that were tolerated on the way."""

    image: SparseMemoryImage
    data_records: int = 0
    skipped_lines: int = 0
    unsupported_records: int = 0
    invalid_bytes: int = 0
    checksum_mismatches: int = 0
    eof_seen: bool = False
    data_after_eof: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "bytes": len(self.image),
            "data_records": self.data_records,
            "skipped_lines": self.skipped_lines,
            "unsupported_records": self.unsupported_records,
            "invalid_bytes": self.invalid_bytes,
            "checksum_mismatches": self.checksum_mismatches,
            "eof_seen": self.eof_seen,
            "data_after_eof": self.data_after_eof,
        }


def decode_report(text: str) -> DecodeReport:
    """Decode ``text`` and count the records that were skipped or suspect."""

    image = SparseMemoryImage()
    base = 0
    data_records = 0
    skipped_lines = 0
    unsupported = 0
    invalid_bytes = 0
    mismatches = 0
    eof_seen = False
    data_after_eof = False

    lines = _LINE_BREAK.split(text)
    for number, line in enumerate(lines, start=1):
        record = parse_line(line)
        if record is None:
            if line.strip():
                skipped_lines += 1
                LOGGER.debug("line %d: skipped malformed record %r", number, line.strip())
            continue
        if record.checksum is not None and record.complete and not record.checksum_valid:
            mismatches += 1

        record_type = record.known_type
        if record_type is RecordType.DATA:
            data_records += 1
            for offset, value in enumerate(record.payload):
                if value is None:
                    invalid_bytes += 1
                    continue
                image.set_byte((base + record.address + offset) & ADDRESS_MASK, value)
        elif record_type is RecordType.EXT_LINEAR and record.byte_count == 2:
            upper = record.payload_value()
            if upper is not None:
                base = upper << 16
        elif record_type is RecordType.EXT_SEGMENT and record.byte_count == 2:
            segment = record.payload_value()
            if segment is not None:
                base = segment << 4
        elif record_type is RecordType.EOF:
            eof_seen = True
            data_after_eof = any(rest.strip() for rest in lines[number:])
            if data_after_eof:
                LOGGER.debug("line %d: EOF record precedes further content", number)
            break
        else:
            unsupported += 1
            LOGGER.debug("line %d: skipped record type 0x%02X", number, record.record_type)

    return DecodeReport(
        image=image,
        data_records=data_records,
        skipped_lines=skipped_lines,
        unsupported_records=unsupported,
        invalid_bytes=invalid_bytes,
        checksum_mismatches=mismatches,
        eof_seen=eof_seen,
        data_after_eof=data_after_eof,
    )


def decode(text: str) -> SparseMemoryImage:
    """Decode an Intel HEX document into a :class:`SparseMemoryImage`."""

    return decode_report(text).image


def encode(image: SparseMemoryImage) -> str:
    """Serialise ``image`` to its single canonical Intel HEX form.

    Addresses are sorted explicitly; an extended linear address record
    precedes the first data record of every 64KB bank; data records hold at
    most sixteen contiguous bytes.
    """

    addresses = image.addresses()
    if not addresses:
        return EOF_RECORD

    lines: List[str] = []
    current_upper: int | None = None
    index = 0
    while index < len(addresses):
        start = addresses[index]
        upper = (start >> 16) & 0xFFFF
        if upper != current_upper:
            current_upper = upper
            lines.append(emit_record(0x0000, RecordType.EXT_LINEAR, upper.to_bytes(2, "big")))

        chunk: List[int] = []
        expected = start
        while (
            index < len(addresses)
            and addresses[index] == expected
            and len(chunk) < MAX_DATA_RECORD_BYTES
        ):
            chunk.append(image[expected])
            index += 1
            expected += 1
        lines.append(emit_record(start & 0xFFFF, RecordType.DATA, chunk))

    lines.append(EOF_RECORD)
    return LINE_TERMINATOR.join(lines)


__all__ = [
    "DecodeReport",
    "LINE_TERMINATOR",
    "MAX_DATA_RECORD_BYTES",
    "decode",
    "decode_report",
    "encode",
]
