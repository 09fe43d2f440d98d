"""Session runtime: document hosts, surface messages and edit handling."""

from .debounce import PendingUpdate
from .document_host import (
    DocumentHost,
    FileDocumentHost,
    MemoryDocumentHost,
    is_hex_file_path,
)
from .messages import EditWord, GoToAddress, Update, parse_message
from .registry import SessionRegistry
from .session import EditState, HexEditorSession, PresentationSurface, validate_edit

__all__ = [
    "DocumentHost",
    "EditState",
    "EditWord",
    "FileDocumentHost",
    "GoToAddress",
    "HexEditorSession",
    "MemoryDocumentHost",
    "PendingUpdate",
    "PresentationSurface",
    "SessionRegistry",
    "Update",
    "is_hex_file_path",
    "parse_message",
    "validate_edit",
]
