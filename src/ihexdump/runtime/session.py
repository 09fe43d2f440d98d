"""Per-document session tying a document host to a presentation surface."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Callable, List, Mapping, Optional, Protocol, Tuple

from ..document import decode, encode
from ..dump import AddressRange, DumpRow, find_row, project
from ..regions import DEFAULT_REGIONS, RegionTable
from .debounce import PendingUpdate, SleepCallable
from .document_host import DocumentHost
from .messages import (
    EditWord,
    GoToAddress,
    coerce_address,
    parse_message,
    parse_word_value,
    update_for,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.15


class PresentationSurface(Protocol):
    """Receiver for one-shot messages produced by the session."""

    def post_message(self, message: Mapping[str, object]) -> None:
        """Deliver ``message`` to the surface."""


class EditState(enum.Enum):
    VIEWING = "viewing"
    EDIT_REQUESTED = "edit_requested"
    EDIT_REJECTED = "edit_rejected"
    RESERIALIZING = "reserializing"
    PERSISTED = "persisted"


def validate_edit(address: Any, value: Any) -> Optional[Tuple[int, bytes]]:
    """Return ``(address, word_bytes)`` for a valid edit request, else ``None``.

    A word edit touches four bytes, so the last byte must also fit in the
    32-bit address space.
    """

    resolved = coerce_address(address)
    word = parse_word_value(value)
    if resolved is None or word is None:
        return None
    if coerce_address(resolved + len(word) - 1) is None:
        return None
    return resolved, word


class HexEditorSession:
    """Owns the image, self-edit flag and pending update of one open document."""

    def __init__(
        self,
        host: DocumentHost,
        surface: PresentationSurface,
        *,
        regions: RegionTable = DEFAULT_REGIONS,
        address_range: AddressRange | None = None,
        debounce_delay: float = DEFAULT_DEBOUNCE_SECONDS,
        sleep: SleepCallable | None = None,
    ) -> None:
        self.host = host
        self.surface = surface
        self.regions = regions
        self._address_range = address_range
        self._pending = PendingUpdate(debounce_delay, sleep=sleep)
        self._applying = False
        self._state = EditState.VIEWING
        self._rows: List[DumpRow] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._opened = False
        self._closed = False

    # Lifecycle ----------------------------------------------------------

    @property
    def uri(self) -> str:
        return self.host.uri

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def applying(self) -> bool:
        """``True`` while the session is writing its own reserialised text."""

        return self._applying

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def rows(self) -> List[DumpRow]:
        return list(self._rows)

    @property
    def pending_update(self) -> PendingUpdate:
        return self._pending

    @property
    def address_range(self) -> AddressRange | None:
        return self._address_range

    def open(self) -> None:
        if self._opened or self._closed:
            return
        self._opened = True
        self._unsubscribe = self.host.on_change(self._on_content_changed)
        LOGGER.info("opened %s", self.uri)
        self.refresh()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        LOGGER.info("closed %s", self.uri)

    # Rendering ----------------------------------------------------------

    def refresh(self) -> List[DumpRow]:
        """Decode the host text, project rows and push them to the surface."""

        if self._closed:
            return self.rows
        image = decode(self.host.get_text())
        self._rows = project(image, self._address_range)
        self.surface.post_message(update_for(self._rows).as_dict())
        return self.rows

    def set_address_range(self, address_range: AddressRange | None) -> None:
        self._address_range = address_range
        self.refresh()

    def show_region(self, region_id: str | None) -> None:
        """Restrict the view to one region id, or show everything for ``None``."""

        if region_id is None:
            self.set_address_range(None)
            return
        self.set_address_range(self.regions.require(region_id).address_range)

    def region_label(self, address: int) -> str:
        return self.regions.classify(address)

    def go_to_address(self, address: Any) -> Optional[int]:
        """Post the row base holding ``address`` to the surface and return it."""

        if self._closed:
            return None
        resolved = coerce_address(address)
        if resolved is None:
            return None
        row = find_row(self._rows, resolved)
        if row is None:
            LOGGER.debug("no row holds 0x%08X", resolved)
            return None
        target = GoToAddress(address=row.address, region=self.region_label(row.address))
        self.surface.post_message(target.as_dict())
        return row.address

    # Inbound events -----------------------------------------------------

    def _on_content_changed(self) -> None:
        if self._closed or self._applying:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # no loop to debounce on; render synchronously
            self.refresh()
            return
        self._pending.schedule(self._refresh_unless_applying)

    def _refresh_unless_applying(self) -> None:
        if self._applying:
            LOGGER.debug("dropped pending update during self-edit of %s", self.uri)
            return
        self.refresh()

    async def handle_message(self, payload: Any) -> None:
        """Dispatch one raw surface message; unknown messages are ignored."""

        if self._closed:
            return
        message = parse_message(payload)
        if isinstance(message, EditWord):
            await self.request_edit(message.address, message.value)
        elif isinstance(message, GoToAddress):
            self.go_to_address(message.address)
        else:
            LOGGER.debug("ignored surface message %r", payload)

    async def request_edit(self, address: Any, value: Any) -> bool:
        """Apply a word edit and persist it; return ``False`` if rejected."""

        if self._closed:
            return False
        self._state = EditState.EDIT_REQUESTED
        validated = validate_edit(address, value)
        if validated is None:
            self._state = EditState.EDIT_REJECTED
            LOGGER.debug("rejected edit address=%r value=%r", address, value)
            return False
        resolved, word = validated

        image = decode(self.host.get_text())
        image.set_word(resolved, word)
        text = encode(image)

        # the committed text supersedes any queued external update
        self._pending.cancel()
        self._state = EditState.RESERIALIZING
        self._applying = True
        try:
            await self.host.replace_text(text)
            await self.host.save()
        except Exception:
            self._state = EditState.VIEWING
            raise
        finally:
            self._applying = False

        self._state = EditState.PERSISTED
        LOGGER.info("wrote %s at 0x%08X in %s", word.hex().upper(), resolved, self.uri)
        self.refresh()
        self._state = EditState.VIEWING
        return True


__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "EditState",
    "HexEditorSession",
    "PresentationSurface",
    "validate_edit",
]
