"""Registry of open sessions, one per document URI."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from .document_host import DocumentHost, is_hex_file_path
from .session import HexEditorSession, PresentationSurface

LOGGER = logging.getLogger(__name__)


class SessionRegistry:
    """Create, look up and close :class:`HexEditorSession` instances."""

    def __init__(self, **session_options: Any) -> None:
        self._session_options = session_options
        self._sessions: Dict[str, HexEditorSession] = {}
        self._last: HexEditorSession | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[HexEditorSession]:
        return iter(list(self._sessions.values()))

    def __contains__(self, uri: object) -> bool:
        return uri in self._sessions

    def open(self, host: DocumentHost, surface: PresentationSurface) -> HexEditorSession:
        """Open ``host`` in a new session, replacing any session for its URI."""

        uri = host.uri
        if not is_hex_file_path(uri):
            raise ValueError(f"{uri} is not an Intel HEX document")
        previous = self._sessions.get(uri)
        if previous is not None:
            self.close(uri)
        session = HexEditorSession(host, surface, **self._session_options)
        self._sessions[uri] = session
        self._last = session
        session.open()
        return session

    def get(self, uri: str | None = None) -> Optional[HexEditorSession]:
        """Return the session for ``uri``, else the most recently opened one."""

        if uri is not None:
            session = self._sessions.get(uri)
            if session is not None:
                return session
        return self._last

    def close(self, uri: str) -> bool:
        session = self._sessions.pop(uri, None)
        if session is None:
            return False
        session.close()
        if self._last is session:
            self._last = None
        return True

    def close_all(self) -> None:
        for uri in list(self._sessions):
            self.close(uri)


__all__ = ["SessionRegistry"]
