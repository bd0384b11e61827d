"""Operation orchestrator — runs one CommandIntent against the remote store.

Every remote-facing branch writes exactly one ``drive_operation`` audit
event per attempt. A TransportError is caught here, recorded once as an
ERROR event and turned into a result with ``error`` set; nothing from the
remote collaborators propagates past this module.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from drivedesk.commands.confirmation import ConfirmationGate
from drivedesk.commands.grammar import (
    CommandIntent,
    DeleteConfirm,
    DeleteRequest,
    Help,
    ListFolder,
    Move,
    Summary,
    Unknown,
)
from drivedesk.drive.base import EntryKind, RemoteStore, StoreEntry, TransportError
from drivedesk.drive.resolver import NotFound, Resolver
from drivedesk.engines.base import summary_error

if TYPE_CHECKING:
    from drivedesk.audit.log import AuditLog
    from drivedesk.engines.base import Summarizer

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
TRANSPORT_ERROR_TEXT = "Google Drive is unavailable right now. Please try again later."
FETCH_ERROR_PREFIX = "Unable to process file"


# ── Result types ──────────────────────────────────────────────


@dataclass
class ListResult:
    folder_path: str
    page: int
    files: list[StoreEntry] = field(default_factory=list)
    total_files: int = 0
    total_pages: int = 0
    page_size: int = PAGE_SIZE
    error: str | None = None


@dataclass
class DeletePrompt:
    file_path: str
    confirmation_text: str
    error: str | None = None


@dataclass
class DeleteResult:
    file_path: str
    file_name: str = ""
    error: str | None = None


@dataclass
class MoveResult:
    source_path: str
    destination_path: str
    file_name: str = ""
    parent_ids: frozenset[str] = frozenset()
    error: str | None = None


@dataclass
class SummaryItem:
    file_name: str
    summary: str


@dataclass
class SummaryResult:
    path: str
    summaries: list[SummaryItem] = field(default_factory=list)
    error: str | None = None


@dataclass
class HelpResult:
    error: str | None = None


@dataclass
class UnknownResult:
    raw_text: str
    error: str | None = None


OperationResult = (
    ListResult | DeletePrompt | DeleteResult | MoveResult | SummaryResult | HelpResult | UnknownResult
)

R = TypeVar("R", ListResult, DeleteResult, MoveResult, SummaryResult)


def paginate(entries: list[StoreEntry], page: int, page_size: int = PAGE_SIZE) -> list[StoreEntry]:
    """Slice for 1-based `page`. Out-of-range pages give an empty list."""
    start = (page - 1) * page_size
    if start < 0:
        return []
    return entries[start : start + page_size]


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def is_file_reference(path: str) -> bool:
    """'report.pdf' names a file; 'Documents' or 'notes.d/' name folders."""
    return "." in path and not path.endswith("/")


class Orchestrator:
    """Executes intents using the resolver, remote store and summarizer."""

    def __init__(
        self,
        store: RemoteStore,
        summarizer: Summarizer,
        audit: AuditLog,
        gate: ConfirmationGate | None = None,
        resolver: Resolver | None = None,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self.store = store
        self.summarizer = summarizer
        self.audit = audit
        self.gate = gate or ConfirmationGate()
        self.resolver = resolver or Resolver(store)
        self.page_size = page_size

    async def execute(self, intent: CommandIntent, session_id: str) -> OperationResult:
        if isinstance(intent, ListFolder):
            return await self._guarded(
                "list",
                {"folderPath": intent.folder_path, "page": intent.page},
                session_id,
                lambda: self.list_folder(intent.folder_path, intent.page),
                lambda err: ListResult(intent.folder_path, intent.page, error=err),
            )
        if isinstance(intent, DeleteRequest):
            return self.request_delete(intent.file_path, session_id)
        if isinstance(intent, DeleteConfirm):
            return await self.confirm_delete(intent.file_path, session_id)
        if isinstance(intent, Move):
            return await self._guarded(
                "move",
                {"sourcePath": intent.source_path, "destinationPath": intent.destination_path},
                session_id,
                lambda: self.move(intent.source_path, intent.destination_path),
                lambda err: MoveResult(intent.source_path, intent.destination_path, error=err),
            )
        if isinstance(intent, Summary):
            return await self._guarded(
                "summary",
                {"path": intent.path},
                session_id,
                lambda: self.summarize(intent.path, session_id),
                lambda err: SummaryResult(intent.path, error=err),
            )
        if isinstance(intent, Help):
            return HelpResult()
        if isinstance(intent, Unknown):
            return UnknownResult(intent.raw_text)
        raise TypeError(f"Unhandled intent: {intent!r}")

    async def _guarded(
        self,
        operation: str,
        details: dict[str, Any],
        session_id: str,
        action: Callable[[], Awaitable[R]],
        on_error: Callable[[str], R],
    ) -> R:
        try:
            result = await action()
        except TransportError as e:
            logger.error("Drive %s failed: %s", operation, e)
            self.audit.log_error(e, operation, session_id)
            result = on_error(TRANSPORT_ERROR_TEXT)
        self.audit.log_drive_operation(
            operation, {**details, "success": result.error is None}, session_id
        )
        return result

    # ── LIST ──────────────────────────────────────────────────

    async def list_folder(self, folder_path: str, page: int = 1) -> ListResult:
        resolved = await self.resolver.resolve_folder(folder_path)
        if isinstance(resolved, NotFound):
            return ListResult(folder_path, page, error=f"Folder '{folder_path}' not found")

        children = await self.store.list_children(resolved.entry.id)
        return ListResult(
            folder_path=folder_path,
            page=page,
            files=paginate(children, page, self.page_size),
            total_files=len(children),
            total_pages=total_pages(len(children), self.page_size),
            page_size=self.page_size,
        )

    # ── DELETE ────────────────────────────────────────────────

    def request_delete(self, file_path: str, session_id: str) -> DeletePrompt:
        pending = self.gate.request(file_path)
        self.audit.log_security_event("delete_request", {"filePath": file_path}, session_id)
        return DeletePrompt(file_path=file_path, confirmation_text=pending.confirmation_text)

    async def confirm_delete(self, file_path: str, session_id: str) -> DeleteResult:
        if not self.gate.allow(file_path):
            self.audit.log_security_event(
                "delete_confirm_rejected", {"filePath": file_path}, session_id
            )
            return DeleteResult(
                file_path,
                error=(
                    f"No pending delete request for '{file_path}'. "
                    f"Send DELETE {file_path} first."
                ),
            )
        return await self._guarded(
            "delete",
            {"filePath": file_path},
            session_id,
            lambda: self.delete(file_path),
            lambda err: DeleteResult(file_path, error=err),
        )

    async def delete(self, file_path: str) -> DeleteResult:
        resolved = await self.resolver.resolve_path(file_path)
        if isinstance(resolved, NotFound):
            return DeleteResult(file_path, error=f"File '{file_path}' not found")

        await self.store.delete(resolved.entry.id)
        logger.info("Deleted %s (%s)", resolved.entry.name, resolved.entry.id)
        return DeleteResult(file_path, file_name=resolved.entry.name)

    # ── MOVE ──────────────────────────────────────────────────

    async def move(self, source_path: str, destination_path: str) -> MoveResult:
        source = await self.resolver.resolve_path(source_path)
        if isinstance(source, NotFound):
            return MoveResult(
                source_path, destination_path, error=f"Source file '{source_path}' not found"
            )

        destination = await self.resolver.resolve_folder(destination_path)
        if isinstance(destination, NotFound):
            return MoveResult(
                source_path,
                destination_path,
                error=f"Destination folder '{destination_path}' not found",
            )

        dest_id = destination.entry.id
        if source.entry.parent_ids == {dest_id}:
            return MoveResult(
                source_path,
                destination_path,
                file_name=source.entry.name,
                parent_ids=source.entry.parent_ids,
            )

        # Every current parent goes: a multi-parent entry ends up single-homed.
        remove = sorted(p for p in source.entry.parent_ids if p != dest_id)
        moved = await self.store.reparent(source.entry.id, dest_id, remove)
        logger.info("Moved %s into %s", source.entry.id, dest_id)
        return MoveResult(
            source_path,
            destination_path,
            file_name=source.entry.name,
            parent_ids=moved.parent_ids,
        )

    # ── SUMMARY ───────────────────────────────────────────────

    async def summarize(self, path: str, session_id: str) -> SummaryResult:
        if is_file_reference(path):
            return await self._summarize_file(path, session_id)
        return await self._summarize_folder(path, session_id)

    async def _summarize_file(self, path: str, session_id: str) -> SummaryResult:
        resolved = await self.resolver.resolve_path(path, EntryKind.FILE)
        if isinstance(resolved, NotFound):
            return SummaryResult(path, error=f"File '{path}' not found")
        if not resolved.entry.is_summarizable:
            return SummaryResult(
                path, error=f"File type '{resolved.entry.mime_type}' cannot be summarized"
            )
        item = await self._summarize_entry(resolved.entry, session_id)
        return SummaryResult(path, summaries=[item])

    async def _summarize_folder(self, path: str, session_id: str) -> SummaryResult:
        listing = await self.list_folder(path.rstrip("/") or "/", 1)
        if listing.error:
            return SummaryResult(path, error=listing.error)

        summaries = []
        for entry in listing.files:
            if entry.is_folder or not entry.is_summarizable:
                continue
            summaries.append(await self._summarize_entry(entry, session_id))
        return SummaryResult(path, summaries=summaries)

    async def _summarize_entry(self, entry: StoreEntry, session_id: str) -> SummaryItem:
        """Fetch and summarize one file. Failures become the item's summary text."""
        try:
            content = await self.store.fetch_content(entry)
        except TransportError as e:
            logger.error("Failed to fetch %s: %s", entry.name, e)
            self.audit.log_error(e, f"fetch:{entry.name}", session_id)
            return SummaryItem(entry.name, f"{FETCH_ERROR_PREFIX}: {e}")

        try:
            summary = await self.summarizer.summarize(content, entry.name)
        except Exception as e:
            logger.error("Summarizer %s failed on %s: %s", self.summarizer.name, entry.name, e)
            self.audit.log_error(e, f"summarize:{entry.name}", session_id)
            summary = summary_error(e)
        self.audit.log_summarization(entry.name, entry.mime_type, summary, session_id)
        return SummaryItem(entry.name, summary)

