from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from ihexdump.runtime.document_host import (
    FileDocumentHost,
    MemoryDocumentHost,
    is_hex_file_path,
)


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("firmware.hex", True),
        ("FIRMWARE.HEX", True),
        ("build/app.ihex", True),
        ("boot.ihx", True),
        ("file:///tmp/app.hex", True),
        ("untitled:app.hex", True),
        (r"C:\work\app.hex", True),
        ("firmware.bin", False),
        ("hex", False),
        ("file:///tmp/app.hex.bak", False),
        (Path("out/app.hex"), True),
    ],
)
def test_is_hex_file_path(path: object, expected: bool) -> None:
    assert is_hex_file_path(path) is expected


def test_memory_host_notifies_until_unsubscribed() -> None:
    host = MemoryDocumentHost(":00000001FF")
    calls: list[str] = []

    unsubscribe = host.on_change(lambda: calls.append(host.get_text()))
    host.set_text(":01000000AA55")
    unsubscribe()
    unsubscribe()
    host.set_text(":01000000BB44")

    assert calls == [":01000000AA55"]
    assert host.dirty


def test_memory_host_save_records_text() -> None:
    async def _exercise() -> MemoryDocumentHost:
        host = MemoryDocumentHost()
        await host.replace_text(":00000001FF")
        await host.save()
        return host

    host = asyncio.run(_exercise())

    assert host.saved_texts == [":00000001FF"]
    assert not host.dirty


def test_file_host_reads_missing_file_as_empty(tmp_path: Path) -> None:
    host = FileDocumentHost(tmp_path / "absent.hex")

    assert host.get_text() == ""
    assert host.uri.startswith("file://")
    assert host.uri.endswith("/absent.hex")


def test_file_host_preserves_line_endings_on_read(tmp_path: Path) -> None:
    path = tmp_path / "crlf.hex"
    path.write_bytes(b":01000000AA55\r\n:00000001FF\r\n")

    host = FileDocumentHost(path)

    assert host.get_text() == ":01000000AA55\r\n:00000001FF\r\n"


def test_file_host_save_writes_exact_text_atomically(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "app.hex"
    host = FileDocumentHost(path)
    seen: list[str] = []
    host.on_change(lambda: seen.append(host.get_text()))

    async def _exercise() -> None:
        await host.replace_text(":01000000AA55\n:00000001FF")
        assert host.dirty
        await host.save()

    asyncio.run(_exercise())

    assert path.read_bytes() == b":01000000AA55\n:00000001FF"
    assert seen == [":01000000AA55\n:00000001FF"]
    assert not host.dirty
    assert sorted(entry.name for entry in path.parent.iterdir()) == ["app.hex"]


def test_file_host_reload_picks_up_external_writes(tmp_path: Path) -> None:
    path = tmp_path / "app.hex"
    path.write_text(":00000001FF", encoding="ascii")
    host = FileDocumentHost(path)
    notified: list[bool] = []
    host.on_change(lambda: notified.append(True))

    path.write_text(":01000000BB44\n:00000001FF", encoding="ascii")
    host.reload()

    assert host.get_text() == ":01000000BB44\n:00000001FF"
    assert notified == [True]
