"""Remote store protocol and shared types."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

ROOT_ID = "root"
FOLDER_MIME = "application/vnd.google-apps.folder"
GOOGLE_DOC_MIME = "application/vnd.google-apps.document"

# Substrings of MIME types whose content can be extracted as plain text.
SUMMARIZABLE_MIME_MARKERS = (
    "text/",
    "application/pdf",
    GOOGLE_DOC_MIME,
    "application/vnd.openxmlformats-officedocument",
)


class EntryKind(enum.Enum):
    FILE = "file"
    FOLDER = "folder"


class TransportError(RuntimeError):
    """The remote store or summary service was unreachable or rejected the call."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class StoreEntry:
    """A file or folder as reported by the remote store."""

    id: str
    name: str
    kind: EntryKind
    mime_type: str = ""
    size_bytes: int | None = None
    modified_at: datetime | None = None
    parent_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_folder(self) -> bool:
        return self.kind is EntryKind.FOLDER

    @property
    def is_summarizable(self) -> bool:
        return is_summarizable(self.mime_type)


ROOT_ENTRY = StoreEntry(id=ROOT_ID, name="/", kind=EntryKind.FOLDER, mime_type=FOLDER_MIME)


def is_summarizable(mime_type: str) -> bool:
    return bool(mime_type) and any(m in mime_type for m in SUMMARIZABLE_MIME_MARKERS)


@runtime_checkable
class RemoteStore(Protocol):
    """Capability surface of the remote file store.

    "Not found" is always an empty list. Network or auth problems raise
    TransportError.
    """

    async def list_children(
        self, parent_id: str, kind: EntryKind | None = None
    ) -> list[StoreEntry]:
        """Non-trashed children of `parent_id`, ordered by name."""
        ...

    async def find_by_name(
        self,
        name: str,
        kind: EntryKind | None = None,
        *,
        exact: bool = True,
        parent_id: str | None = None,
    ) -> list[StoreEntry]:
        """Non-trashed entries named `name`.

        exact=True matches the name byte for byte. exact=False returns a
        broader candidate set that includes every case variant of `name`;
        callers filter it themselves.
        """
        ...

    async def fetch_content(self, entry: StoreEntry) -> str:
        """Plain-text content of a file."""
        ...

    async def delete(self, entry_id: str) -> None: ...

    async def reparent(
        self, entry_id: str, add_parent: str, remove_parents: list[str]
    ) -> StoreEntry: ...
