"""Command-line front end for viewing and patching Intel HEX images."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Sequence

from .config import ConfigError, ViewerConfig, describe_regions, load_viewer_config
from .document import decode_report, encode
from .dump import DUMP_HEADER, find_row, format_rows, project
from .regions import UNCLASSIFIED
from .runtime.document_host import FileDocumentHost, is_hex_file_path
from .runtime.session import HexEditorSession

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CommandFunc = Callable[[Sequence[str] | None], int | None]


class _CollectingSurface:
    """Presentation surface that keeps every message it receives."""

    def __init__(self) -> None:
        self.messages: List[Mapping[str, object]] = []

    def post_message(self, message: Mapping[str, object]) -> None:
        self.messages.append(message)


def parse_address(value: str) -> int:
    """Accept ``0x``/``$`` prefixed hexadecimal or plain decimal addresses."""

    text = value.strip().lower()
    try:
        if text.startswith("$"):
            address = int(text[1:], base=16)
        elif text.startswith("0x"):
            address = int(text, base=16)
        else:
            address = int(text, base=10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid address {value!r}") from exc
    if not 0 <= address <= 0xFFFFFFFF:
        raise argparse.ArgumentTypeError(f"address {value!r} outside 32-bit range")
    return address


def _base_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=LOG_LEVELS,
        help="Logging verbosity",
    )
    return parser


def _add_config(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML file with viewer settings and regions",
    )


def _configure_logging(args: argparse.Namespace) -> None:
    logging.basicConfig(level=getattr(logging, args.log_level))


def _load_config(args: argparse.Namespace) -> ViewerConfig | None:
    try:
        return load_viewer_config(args.config)
    except (ConfigError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return None


def _read_hex(path: Path) -> str | None:
    if not path.is_file():
        print(f"error: {path} not found", file=sys.stderr)
        return None
    if not is_hex_file_path(path):
        LOGGER.warning("%s does not carry a HEX file extension", path)
    return FileDocumentHost(path).get_text()


# dump ---------------------------------------------------------------------


def dump_main(argv: Sequence[str] | None = None) -> int:
    parser = _base_parser("Print the hex/ASCII dump of an Intel HEX file")
    parser.add_argument("file", type=Path)
    _add_config(parser)
    parser.add_argument("--region", help="Only show rows within this region id")
    parser.add_argument("--start", type=parse_address, help="First address to show")
    parser.add_argument("--end", type=parse_address, help="Last address to show")
    parser.add_argument("--json", action="store_true", help="Emit rows as JSON")
    args = parser.parse_args(argv)
    _configure_logging(args)

    config = _load_config(args)
    if config is None:
        return 1
    text = _read_hex(args.file)
    if text is None:
        return 1

    if args.start is not None or args.end is not None:
        address_range = (
            args.start if args.start is not None else 0,
            args.end if args.end is not None else 0xFFFFFFFF,
        )
    else:
        try:
            address_range = config.region_range(args.region)
        except ConfigError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    rows = project(decode_report(text).image, address_range)
    if args.json:
        print(json.dumps([row.as_dict() for row in rows], indent=2))
        return 0

    lines: List[str] = []
    current_label: str | None = None
    for row in rows:
        label = config.regions.classify(row.address)
        if label != current_label:
            lines.append(f"-- {label} --")
            current_label = label
        lines.append(row.format())
    print(DUMP_HEADER)
    if lines:
        print("\n".join(lines))
    return 0


# edit ---------------------------------------------------------------------


def edit_main(argv: Sequence[str] | None = None) -> int:
    parser = _base_parser("Overwrite one 32-bit word and save the file canonically")
    parser.add_argument("file", type=Path)
    parser.add_argument("address", help="Word address (0x.., $.. or decimal)")
    parser.add_argument("value", help="Eight hexadecimal digits, e.g. DEADBEEF")
    _add_config(parser)
    args = parser.parse_args(argv)
    _configure_logging(args)

    config = _load_config(args)
    if config is None:
        return 1
    if not args.file.is_file():
        print(f"error: {args.file} not found", file=sys.stderr)
        return 1
    try:
        address = parse_address(args.address)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    host = FileDocumentHost(args.file)
    surface = _CollectingSurface()
    session = HexEditorSession(
        host,
        surface,
        regions=config.regions,
        debounce_delay=config.debounce_seconds,
    )

    async def _apply() -> bool:
        session.open()
        try:
            return await session.request_edit(address, args.value)
        finally:
            session.close()

    if not asyncio.run(_apply()):
        print(
            f"error: rejected edit {args.value!r} at 0x{address:08X}"
            " (expected eight hexadecimal digits)",
            file=sys.stderr,
        )
        return 1

    row = find_row(session.rows, address)
    if row is not None:
        print(format_rows([row]))
    return 0


# info ---------------------------------------------------------------------


def info_main(argv: Sequence[str] | None = None) -> int:
    parser = _base_parser("Summarise the contents of an Intel HEX file")
    parser.add_argument("file", type=Path)
    _add_config(parser)
    parser.add_argument("--json", action="store_true", help="Emit JSON")
    args = parser.parse_args(argv)
    _configure_logging(args)

    config = _load_config(args)
    if config is None:
        return 1
    text = _read_hex(args.file)
    if text is None:
        return 1

    report = decode_report(text)
    image = report.image
    span = image.span()
    regions: Dict[str, int] = {}
    for address in image:
        label = config.regions.classify(address)
        regions[label] = regions.get(label, 0) + 1

    summary: Dict[str, object] = dict(report.as_dict())
    summary["rows"] = len(project(image))
    summary["span"] = None if span is None else [f"0x{span[0]:08X}", f"0x{span[1]:08X}"]
    summary["regions"] = regions
    if args.json:
        print(json.dumps(summary, indent=2))
        return 0

    print(f"file: {args.file}")
    print(f"bytes: {len(image)} in {summary['rows']} rows")
    if span is not None:
        print(f"span: 0x{span[0]:08X}-0x{span[1]:08X}")
    for label in sorted(regions, key=lambda name: (name == UNCLASSIFIED, name)):
        print(f"  {label}: {regions[label]} bytes")
    print(
        f"records: {report.data_records} data, {report.skipped_lines} malformed,"
        f" {report.unsupported_records} unsupported"
    )
    if report.invalid_bytes:
        print(f"invalid payload bytes: {report.invalid_bytes}")
    if report.checksum_mismatches:
        print(f"checksum mismatches: {report.checksum_mismatches}")
    if not report.eof_seen:
        print("warning: no end-of-file record")
    if report.data_after_eof:
        print("warning: content after end-of-file record was ignored")
    return 0


# regions / classify -------------------------------------------------------


def regions_main(argv: Sequence[str] | None = None) -> int:
    parser = _base_parser("List the memory region table")
    _add_config(parser)
    args = parser.parse_args(argv)
    _configure_logging(args)

    config = _load_config(args)
    if config is None:
        return 1
    print("\n".join(describe_regions(config.regions)))
    return 0


def classify_main(argv: Sequence[str] | None = None) -> int:
    parser = _base_parser("Print the memory region containing an address")
    parser.add_argument("address", type=parse_address)
    _add_config(parser)
    args = parser.parse_args(argv)
    _configure_logging(args)

    config = _load_config(args)
    if config is None:
        return 1
    print(config.regions.classify(args.address))
    return 0


# normalize ----------------------------------------------------------------


def normalize_main(argv: Sequence[str] | None = None) -> int:
    parser = _base_parser("Rewrite an Intel HEX file in canonical form")
    parser.add_argument("file", type=Path)
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write here instead of replacing the input file",
    )
    args = parser.parse_args(argv)
    _configure_logging(args)

    if not args.file.is_file():
        print(f"error: {args.file} not found", file=sys.stderr)
        return 1
    source = FileDocumentHost(args.file)
    target = source if args.output is None else FileDocumentHost(args.output)

    async def _rewrite() -> None:
        await target.replace_text(encode(decode_report(source.get_text()).image))
        await target.save()

    asyncio.run(_rewrite())
    return 0


COMMANDS: Dict[str, CommandFunc] = {
    "dump": dump_main,
    "edit": edit_main,
    "info": info_main,
    "regions": regions_main,
    "classify": classify_main,
    "normalize": normalize_main,
}


def _print_usage() -> None:
    print("Usage: ihexdump <command> [args...]")
    print("Available commands:")
    for name in sorted(COMMANDS):
        print(f"  {name}")


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] in {"-h", "--help", "help"}:
        _print_usage()
        return 0

    command = args[0]
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        _print_usage()
        return 1

    result = handler(args[1:])
    return int(result) if isinstance(result, int) else 0


__all__ = ["COMMANDS", "main", "parse_address"]
