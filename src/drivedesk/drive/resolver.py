"""Name → entry resolution for a store that allows duplicate names.

The store only supports exact-name queries, so resolution runs in two
read-only phases:

1. exact, case-sensitive name (+ kind, + parent scope) query
2. broader query for the same kind/scope, scanned for a case-insensitive match

When several entries share a name the tie-break strategy picks one. The
default, ``first_returned``, takes whatever the store listed first. That is
not "most recent" or "canonical"; it is only the store's order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from drivedesk.drive.base import ROOT_ENTRY, EntryKind, RemoteStore, StoreEntry

logger = logging.getLogger(__name__)

ROOT_ALIASES = frozenset({"", "root"})

TieBreak = Callable[[Sequence[StoreEntry]], StoreEntry]


def first_returned(entries: Sequence[StoreEntry]) -> StoreEntry:
    """Tie-break: the first entry in the store's listing order."""
    return entries[0]


@dataclass(frozen=True)
class Resolved:
    entry: StoreEntry
    query: str
    match_count: int = 1

    @property
    def ambiguous(self) -> bool:
        return self.match_count > 1


@dataclass(frozen=True)
class NotFound:
    query: str


ResolutionResult = Resolved | NotFound


def is_root(path: str) -> bool:
    return path.strip().strip("/").strip().lower() in ROOT_ALIASES


def split_path(path: str) -> list[str]:
    """'/a/b/' → ['a', 'b']. Empty segments are dropped."""
    return [seg.strip() for seg in path.strip().split("/") if seg.strip()]


class Resolver:
    """Resolves user-supplied names and paths to store entries."""

    def __init__(self, store: RemoteStore, tie_break: TieBreak = first_returned) -> None:
        self._store = store
        self._tie_break = tie_break

    async def resolve(
        self,
        query: str,
        kind: EntryKind | None = None,
        scope_parent_id: str | None = None,
    ) -> ResolutionResult:
        """Resolve a single name. Only transport failures raise."""
        name = query.strip()
        if not name:
            return NotFound(query)

        matches = await self._store.find_by_name(
            name, kind, exact=True, parent_id=scope_parent_id
        )
        if not matches:
            folded = name.casefold()
            candidates = await self._store.find_by_name(
                name, kind, exact=False, parent_id=scope_parent_id
            )
            matches = [e for e in candidates if e.name.casefold() == folded]

        if not matches:
            return NotFound(query)

        if len(matches) > 1:
            logger.debug(
                "Ambiguous name %r: %d matches, taking %s", name, len(matches), matches[0].id
            )
        return Resolved(entry=self._tie_break(matches), query=query, match_count=len(matches))

    async def resolve_folder(self, path: str) -> ResolutionResult:
        """Resolve a folder path. Root aliases short-circuit to the root sentinel."""
        if is_root(path):
            return Resolved(entry=ROOT_ENTRY, query=path)
        return await self.resolve_path(path, EntryKind.FOLDER)

    async def resolve_path(self, path: str, kind: EntryKind | None = None) -> ResolutionResult:
        """Resolve a '/'-separated path.

        A single segment is looked up drive-wide. With several segments each
        intermediate one is a folder scoped to its predecessor, and the leaf
        is looked up under the last folder.
        """
        segments = split_path(path)
        if not segments:
            if kind is EntryKind.FOLDER:
                return Resolved(entry=ROOT_ENTRY, query=path)
            return NotFound(path)

        parent_id = None
        for segment in segments[:-1]:
            result = await self.resolve(segment, EntryKind.FOLDER, parent_id)
            if isinstance(result, NotFound):
                return NotFound(path)
            parent_id = result.entry.id

        result = await self.resolve(segments[-1], kind, parent_id)
        if isinstance(result, NotFound):
            return NotFound(path)
        return Resolved(entry=result.entry, query=path, match_count=result.match_count)
