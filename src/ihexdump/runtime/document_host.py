"""Document hosts that own the HEX text a session views and edits."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import Callable, List, Protocol
from urllib.parse import urlparse

LOGGER = logging.getLogger(__name__)

HEX_FILE_SUFFIXES = (".hex", ".ihex", ".ihx")

ChangeListener = Callable[[], None]


def is_hex_file_path(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` for paths or URIs ending in a HEX file extension."""

    text = os.fspath(path)
    if "://" in text:
        text = urlparse(text).path
    return PurePosixPath(text.replace("\\", "/")).suffix.lower() in HEX_FILE_SUFFIXES


class DocumentHost(Protocol):
    """Text document collaborator used by :class:`HexEditorSession`."""

    @property
    def uri(self) -> str:
        """Stable identifier for the document."""

    def get_text(self) -> str:
        """Return the current document text."""

    async def replace_text(self, text: str) -> None:
        """Replace the whole document text."""

    async def save(self) -> None:
        """Persist the current text."""

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""


class _ListenerMixin:
    def __init__(self) -> None:
        self._listeners: List[ChangeListener] = []

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()


class MemoryDocumentHost(_ListenerMixin):
    """In-memory document; ``saved_texts`` records every persisted version."""

    def __init__(self, text: str = "", *, uri: str = "memory:///untitled.hex") -> None:
        super().__init__()
        self._uri = uri
        self._text = text
        self.saved_texts: List[str] = []
        self.dirty = False

    @property
    def uri(self) -> str:
        return self._uri

    def get_text(self) -> str:
        return self._text

    def set_text(self, text: str) -> None:
        """Simulate an external edit of the document."""

        self._text = text
        self.dirty = True
        self._notify()

    async def replace_text(self, text: str) -> None:
        self.set_text(text)

    async def save(self) -> None:
        self.saved_texts.append(self._text)
        self.dirty = False


class FileDocumentHost(_ListenerMixin):
    """Document backed by a file on disk, saved atomically."""

    def __init__(self, path: Path, *, encoding: str = "ascii") -> None:
        super().__init__()
        self.path = Path(path)
        self.encoding = encoding
        self.dirty = False
        self._text = self._read()

    @property
    def uri(self) -> str:
        return self.path.resolve().as_uri()

    def get_text(self) -> str:
        return self._text

    def reload(self) -> None:
        """Reread the file and notify listeners as an external change."""

        self._text = self._read()
        self.dirty = False
        self._notify()

    async def replace_text(self, text: str) -> None:
        self._text = text
        self.dirty = True
        self._notify()

    async def save(self) -> None:
        self._write_atomic(self._text)
        self.dirty = False
        LOGGER.info("saved %s", self.path)

    def _read(self) -> str:
        if not self.path.exists():
            return ""
        with self.path.open("r", encoding=self.encoding, errors="replace", newline="") as stream:
            return stream.read()

    def _write_atomic(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=str(self.path.parent),
                prefix=self.path.name,
                suffix=".tmp",
                encoding=self.encoding,
                newline="",
                delete=False,
            ) as stream:
                temp_path = Path(stream.name)
                stream.write(text)
                stream.flush()
                os.fsync(stream.fileno())
            os.replace(temp_path, self.path)
        except Exception:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()
            raise


__all__ = [
    "ChangeListener",
    "DocumentHost",
    "FileDocumentHost",
    "HEX_FILE_SUFFIXES",
    "MemoryDocumentHost",
    "is_hex_file_path",
]
