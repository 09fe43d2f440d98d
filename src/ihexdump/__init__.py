"""Inspect and patch Intel HEX firmware images as hex/ASCII dumps."""
from __future__ import annotations

from .document import DecodeReport, decode, decode_report, encode
from .dump import DumpRow, find_row, format_rows, project
from .memory_image import ImageError, SparseMemoryImage
from .records import Record, RecordType, emit_record, parse_line
from .regions import DEFAULT_REGIONS, MemoryRegion, RegionTable, classify

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_REGIONS",
    "DecodeReport",
    "DumpRow",
    "ImageError",
    "MemoryRegion",
    "Record",
    "RecordType",
    "RegionTable",
    "SparseMemoryImage",
    "classify",
    "decode",
    "decode_report",
    "emit_record",
    "encode",
    "find_row",
    "format_rows",
    "parse_line",
    "project",
]
