"""Shared fixtures: an in-memory Drive and a scripted summarizer."""

from __future__ import annotations

from pathlib import Path

import pytest

from drivedesk.audit.log import AuditLog
from drivedesk.drive.base import FOLDER_MIME, ROOT_ID, EntryKind, StoreEntry, TransportError


class FakeDriveStore:
    """RemoteStore double. Listing order is insertion order, like an unsorted API page."""

    def __init__(self) -> None:
        self.entries: dict[str, StoreEntry] = {}
        self.contents: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.fail_methods: set[str] = set()
        self.fail_fetch_ids: set[str] = set()

    def add(
        self,
        entry_id: str,
        name: str,
        kind: EntryKind = EntryKind.FILE,
        parents: tuple[str, ...] = (ROOT_ID,),
        mime_type: str | None = None,
        size: int | None = None,
        content: str = "",
    ) -> StoreEntry:
        if mime_type is None:
            mime_type = FOLDER_MIME if kind is EntryKind.FOLDER else "text/plain"
        entry = StoreEntry(
            id=entry_id,
            name=name,
            kind=kind,
            mime_type=mime_type,
            size_bytes=size,
            parent_ids=frozenset(parents),
        )
        self.entries[entry_id] = entry
        self.contents[entry_id] = content
        return entry

    def folder(self, entry_id: str, name: str, parents: tuple[str, ...] = (ROOT_ID,)) -> StoreEntry:
        return self.add(entry_id, name, EntryKind.FOLDER, parents)

    def _check(self, method: str) -> None:
        if method in self.fail_methods:
            raise TransportError(f"{method} unavailable", 503)

    @staticmethod
    def _kind_ok(entry: StoreEntry, kind: EntryKind | None) -> bool:
        return kind is None or entry.kind is kind

    async def list_children(self, parent_id, kind=None):
        self.calls.append(("list_children", parent_id, kind))
        self._check("list_children")
        children = [
            e for e in self.entries.values() if parent_id in e.parent_ids and self._kind_ok(e, kind)
        ]
        return sorted(children, key=lambda e: e.name)

    async def find_by_name(self, name, kind=None, *, exact=True, parent_id=None):
        self.calls.append(("find_by_name", name, kind, exact, parent_id))
        self._check("find_by_name")
        found = []
        for e in self.entries.values():
            if not self._kind_ok(e, kind):
                continue
            if parent_id is not None and parent_id not in e.parent_ids:
                continue
            if exact and e.name != name:
                continue
            found.append(e)
        return found

    async def fetch_content(self, entry):
        self.calls.append(("fetch_content", entry.id))
        self._check("fetch_content")
        if entry.id in self.fail_fetch_ids:
            raise TransportError(f"download of {entry.name} failed", 500)
        return self.contents.get(entry.id, "")

    async def delete(self, entry_id):
        self.calls.append(("delete", entry_id))
        self._check("delete")
        self.entries.pop(entry_id)

    async def reparent(self, entry_id, add_parent, remove_parents):
        self.calls.append(("reparent", entry_id, add_parent, tuple(remove_parents)))
        self._check("reparent")
        entry = self.entries[entry_id]
        parents = (set(entry.parent_ids) - set(remove_parents)) | {add_parent}
        moved = StoreEntry(
            id=entry.id,
            name=entry.name,
            kind=entry.kind,
            mime_type=entry.mime_type,
            size_bytes=entry.size_bytes,
            parent_ids=frozenset(parents),
        )
        self.entries[entry_id] = moved
        return moved

    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in ("delete", "reparent")]


class FakeSummarizer:
    def __init__(self, reply: str = "A short summary.", fail: bool = False) -> None:
        self.reply = reply
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def summarize(self, text: str, display_name: str) -> str:
        self.calls.append((text, display_name))
        if self.fail:
            return "Error generating summary: quota exceeded"
        return self.reply

    async def health_check(self) -> bool:
        return not self.fail


@pytest.fixture
def store() -> FakeDriveStore:
    return FakeDriveStore()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def audit(tmp_path: Path) -> AuditLog:
    return AuditLog(tmp_path / "logs")


@pytest.fixture
def make_summarizer():
    return FakeSummarizer
