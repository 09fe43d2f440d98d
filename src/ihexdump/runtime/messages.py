"""Tagged messages exchanged with the presentation surface."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Optional, Sequence, Tuple, Union

from ..dump import DumpRow
from ..memory_image import ADDRESS_MASK

_WORD_VALUE = re.compile(r"[0-9A-F]{8}")


@dataclass(frozen=True)
class EditWord:
    """Surface request to overwrite the word at ``address``.

    Fields are kept as received; the session validates them.
    """

    TYPE: ClassVar[str] = "editWord"

    address: Any
    value: Any


@dataclass(frozen=True)
class GoToAddress:
    """Navigation target; the surface scrolls to the row holding ``address``."""

    TYPE: ClassVar[str] = "goToAddress"

    address: int
    region: str | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"type": self.TYPE, "address": self.address}
        if self.region is not None:
            payload["region"] = self.region
        return payload


@dataclass(frozen=True)
class Update:
    """Full replacement of the rows shown by the surface."""

    TYPE: ClassVar[str] = "update"

    rows: Tuple[DumpRow, ...]

    def as_dict(self) -> dict[str, object]:
        return {"type": self.TYPE, "rows": [row.as_dict() for row in self.rows]}


InboundMessage = Union[EditWord, GoToAddress]


def coerce_address(raw: Any) -> Optional[int]:
    """Return ``raw`` as a non-negative 32-bit address, or ``None``.

    Accepts integers, integral finite floats and numeric strings (decimal, or
    hexadecimal with a ``0x`` prefix).
    """

    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not math.isfinite(raw) or not raw.is_integer():
            return None
        value = int(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        base = 16 if text.lower().startswith("0x") else 10
        try:
            value = int(text, base=base)
        except ValueError:
            return None
    else:
        return None
    if not 0 <= value <= ADDRESS_MASK:
        return None
    return value


def parse_word_value(raw: Any) -> Optional[bytes]:
    """Return the four bytes named by an 8-digit hex string, or ``None``."""

    if not isinstance(raw, str):
        return None
    text = raw.upper()
    if _WORD_VALUE.fullmatch(text) is None:
        return None
    return bytes.fromhex(text)


def parse_message(payload: Any) -> Optional[InboundMessage]:
    """Map a raw surface payload to a known message, ignoring anything else."""

    if not isinstance(payload, Mapping):
        return None
    kind = payload.get("type")
    if kind == EditWord.TYPE:
        if "address" not in payload or "value" not in payload:
            return None
        return EditWord(address=payload["address"], value=payload["value"])
    if kind == GoToAddress.TYPE:
        address = coerce_address(payload.get("address"))
        if address is None:
            return None
        return GoToAddress(address=address)
    return None


def update_for(rows: Sequence[DumpRow]) -> Update:
    return Update(rows=tuple(rows))


__all__ = [
    "EditWord",
    "GoToAddress",
    "InboundMessage",
    "Update",
    "coerce_address",
    "parse_message",
    "parse_word_value",
    "update_for",
]
