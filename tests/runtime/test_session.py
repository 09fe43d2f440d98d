"""Behavioural tests for the per-document edit session."""

from __future__ import annotations

import asyncio
import math
from typing import Mapping

import pytest

from ihexdump.document import decode, encode
from ihexdump.memory_image import SparseMemoryImage
from ihexdump.runtime.document_host import MemoryDocumentHost
from ihexdump.runtime.session import EditState, HexEditorSession, validate_edit

SCENARIO_A = ":100000000102030405060708090A0B0C0D0E0F1068\n:00000001FF"


class RecordingSurface:
    def __init__(self) -> None:
        self.messages: list[Mapping[str, object]] = []

    def post_message(self, message: Mapping[str, object]) -> None:
        self.messages.append(message)

    @property
    def updates(self) -> list[Mapping[str, object]]:
        return [message for message in self.messages if message["type"] == "update"]


class FailingSaveHost(MemoryDocumentHost):
    async def save(self) -> None:
        raise OSError("disk full")


class ObservingHost(MemoryDocumentHost):
    """Record the session's self-edit flag while the host is writing."""

    def __init__(self, text: str) -> None:
        super().__init__(text)
        self.session: HexEditorSession | None = None
        self.flags: list[bool] = []

    async def replace_text(self, text: str) -> None:
        assert self.session is not None
        self.flags.append(self.session.applying)
        await super().replace_text(text)

    async def save(self) -> None:
        assert self.session is not None
        self.flags.append(self.session.applying)
        await super().save()


def _session(text: str = SCENARIO_A, **kwargs) -> tuple[HexEditorSession, MemoryDocumentHost, RecordingSurface]:
    host = MemoryDocumentHost(text)
    surface = RecordingSurface()
    session = HexEditorSession(host, surface, debounce_delay=0.0, **kwargs)
    return session, host, surface


def test_open_pushes_initial_rows() -> None:
    session, _, surface = _session()

    session.open()

    assert surface.messages == [
        {
            "type": "update",
            "rows": [
                {
                    "address": 0,
                    "words": ["01020304", "05060708", "090A0B0C", "0D0E0F10"],
                    "ascii": "." * 16,
                }
            ],
        }
    ]
    assert session.state is EditState.VIEWING


def test_valid_edit_persists_and_rerenders_from_committed_text() -> None:
    async def _exercise() -> None:
        session, host, surface = _session()
        session.open()

        applied = await session.request_edit(0x4, "cafef00d")

        assert applied is True
        expected = SparseMemoryImage(decode(SCENARIO_A))
        expected.set_word(0x4, b"\xca\xfe\xf0\x0d")
        assert host.get_text() == encode(expected)
        assert host.saved_texts == [encode(expected)]
        assert not host.dirty
        assert len(surface.updates) == 2
        assert surface.updates[-1]["rows"][0]["words"][1] == "CAFEF00D"
        assert session.state is EditState.VIEWING
        assert not session.applying
        # the host change notification raised by our own write was ignored
        assert not session.pending_update.pending

    asyncio.run(_exercise())


def test_self_edit_flag_spans_replacement_and_save() -> None:
    async def _exercise() -> list[bool]:
        host = ObservingHost(SCENARIO_A)
        session = HexEditorSession(host, RecordingSurface(), debounce_delay=0.0)
        host.session = session
        session.open()
        await session.request_edit(0, "00000000")
        return host.flags

    assert asyncio.run(_exercise()) == [True, True]


def test_edit_inserts_previously_absent_addresses() -> None:
    async def _exercise() -> None:
        session, host, surface = _session(":00000001FF")
        session.open()
        assert surface.updates[-1]["rows"] == []

        await session.request_edit(0x7001_0000, "DEADBEEF")

        assert decode(host.get_text()).as_dict() == {
            0x7001_0000: 0xDE,
            0x7001_0001: 0xAD,
            0x7001_0002: 0xBE,
            0x7001_0003: 0xEF,
        }
        row = surface.updates[-1]["rows"][0]
        assert row["address"] == 0x7001_0000
        assert row["words"] == ["DEADBEEF", "........", "........", "........"]
        assert session.region_label(0x7001_0000) == "DSPR0 (CPU0)"

    asyncio.run(_exercise())


@pytest.mark.parametrize(
    ("address", "value"),
    [
        (0, "12G45678"),
        (0, "1234567"),
        (0, None),
        (math.nan, "DEADBEEF"),
        (math.inf, "DEADBEEF"),
        (-4, "DEADBEEF"),
        ("zero", "DEADBEEF"),
        (0xFFFF_FFFE, "DEADBEEF"),
    ],
)
def test_invalid_edit_is_silently_rejected(address: object, value: object) -> None:
    async def _exercise() -> None:
        session, host, surface = _session()
        session.open()
        before = list(surface.messages)

        applied = await session.request_edit(address, value)

        assert applied is False
        assert session.state is EditState.EDIT_REJECTED
        assert host.get_text() == SCENARIO_A
        assert host.saved_texts == []
        assert surface.messages == before

    asyncio.run(_exercise())


def test_validate_edit_normalises_value() -> None:
    assert validate_edit("0x10", "deadbeef") == (0x10, b"\xde\xad\xbe\xef")
    assert validate_edit(0xFFFF_FFFC, "00000000") == (0xFFFF_FFFC, b"\x00" * 4)
    assert validate_edit(0xFFFF_FFFD, "00000000") is None


def test_failed_save_clears_self_edit_flag() -> None:
    async def _exercise() -> None:
        host = FailingSaveHost(SCENARIO_A)
        surface = RecordingSurface()
        session = HexEditorSession(host, surface, debounce_delay=0.0)
        session.open()

        with pytest.raises(OSError, match="disk full"):
            await session.request_edit(0, "DEADBEEF")

        assert not session.applying
        assert session.state is EditState.VIEWING

        host.set_text(":01000000AA55\n:00000001FF")
        await session.pending_update.wait()
        assert surface.updates[-1]["rows"][0]["words"][0] == "........"

    asyncio.run(_exercise())


def test_external_changes_are_debounced_to_latest() -> None:
    async def _exercise() -> None:
        session, host, surface = _session()
        session.open()

        host.set_text(":01000000AA55\n:00000001FF")
        host.set_text(":01000000BB44\n:00000001FF")
        host.set_text(":0401000041424344F1\n:00000001FF")
        assert len(surface.updates) == 1

        await session.pending_update.wait()

        assert len(surface.updates) == 2
        row = surface.updates[-1]["rows"][0]
        assert row["address"] == 0x100
        assert row["ascii"] == "ABCD" + "." * 12
        assert session.pending_update.superseded == 2

    asyncio.run(_exercise())


def test_edit_supersedes_pending_external_update() -> None:
    async def _exercise() -> None:
        session, host, surface = _session()
        session.open()
        host.set_text(":01000000AA55\n:00000001FF")
        assert session.pending_update.pending

        await session.request_edit(0x4, "11223344")

        assert not session.pending_update.pending
        assert len(surface.updates) == 2
        assert decode(host.get_text()).as_dict() == {
            0: 0xAA,
            4: 0x11,
            5: 0x22,
            6: 0x33,
            7: 0x44,
        }

    asyncio.run(_exercise())


def test_handle_message_routes_known_messages() -> None:
    async def _exercise() -> None:
        session, host, surface = _session()
        session.open()

        await session.handle_message({"type": "editWord", "address": 8, "value": "41424344"})
        await session.handle_message({"type": "goToAddress", "address": "0xC"})
        await session.handle_message({"type": "selfDestruct"})
        await session.handle_message({"type": "editWord", "address": 8, "value": "nope"})

        assert [message["type"] for message in surface.messages] == [
            "update",
            "update",
            "goToAddress",
        ]
        assert surface.messages[-1] == {
            "type": "goToAddress",
            "address": 0,
            "region": "unclassified",
        }
        assert surface.updates[-1]["rows"][0]["ascii"] == "........ABCD...."
        assert len(host.saved_texts) == 1

    asyncio.run(_exercise())


def test_go_to_address_without_matching_row() -> None:
    session, _, surface = _session()
    session.open()

    assert session.go_to_address(0x1000) is None
    assert session.go_to_address("bogus") is None
    assert session.go_to_address(0x0F) == 0
    assert surface.messages[-1]["address"] == 0


def test_region_filter_limits_rows() -> None:
    text = "\n".join(
        [
            ":02000004700189",
            ":0401000041424344F1",
            ":0200000480007A",
            ":01000000AA55",
            ":00000001FF",
        ]
    )
    session, _, surface = _session(text)
    session.open()
    assert [row["address"] for row in surface.updates[-1]["rows"]] == [
        0x7001_0100,
        0x8000_0000,
    ]

    session.show_region("PFLASH_C")
    assert [row["address"] for row in surface.updates[-1]["rows"]] == [0x8000_0000]
    assert session.address_range == (0x8000_0000, 0x81FF_FFFF)

    session.show_region(None)
    assert len(surface.updates[-1]["rows"]) == 2

    with pytest.raises(KeyError):
        session.show_region("NOPE")


def test_closed_session_ignores_everything() -> None:
    async def _exercise() -> None:
        session, host, surface = _session()
        session.open()
        host.set_text(":01000000AA55\n:00000001FF")
        session.close()
        count = len(surface.messages)

        host.set_text(":01000000BB44\n:00000001FF")
        await asyncio.sleep(0.01)
        await session.handle_message({"type": "editWord", "address": 0, "value": "00000000"})
        assert await session.request_edit(0, "00000000") is False
        assert session.go_to_address(0) is None
        session.refresh()

        assert len(surface.messages) == count
        assert host.saved_texts == []
        assert not session.pending_update.pending
        assert session.closed

    asyncio.run(_exercise())


class SlowHost(MemoryDocumentHost):
    """Host whose writes yield to the event loop before landing."""

    async def replace_text(self, text: str) -> None:
        await asyncio.sleep(0.01)
        await super().replace_text(text)


class FlagSamplingSurface(RecordingSurface):
    def __init__(self) -> None:
        super().__init__()
        self.session: HexEditorSession | None = None
        self.applying_samples: list[bool] = []

    def post_message(self, message: Mapping[str, object]) -> None:
        assert self.session is not None
        self.applying_samples.append(self.session.applying)
        super().post_message(message)


def test_pending_update_never_renders_during_self_edit() -> None:
    async def _exercise() -> tuple[FlagSamplingSurface, SlowHost]:
        host = SlowHost(SCENARIO_A)
        surface = FlagSamplingSurface()
        session = HexEditorSession(host, surface, debounce_delay=0.0)
        surface.session = session
        session.open()
        host.set_text(":01000000AA55\n:00000001FF")
        assert session.pending_update.pending

        await session.request_edit(0x4, "11223344")
        await asyncio.sleep(0.02)
        return surface, host

    surface, host = asyncio.run(_exercise())

    assert surface.applying_samples == [False, False]
    assert len(surface.updates) == 2
    assert surface.updates[-1]["rows"][0]["words"][1] == "11223344"
    assert host.saved_texts == [host.get_text()]
