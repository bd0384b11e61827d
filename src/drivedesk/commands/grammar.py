"""Command grammar — raw message text → typed CommandIntent (no I/O).

Rules are tried in order, first match wins. Keywords are case-insensitive;
paths keep the casing the user typed.

    LIST <path> PAGE <n>      ListFolder(path, n)  n must be a positive integer
    LIST <path>               ListFolder(path, 1)
    DELETE <path> CONFIRM     DeleteConfirm(path)
    DELETE <path>             DeleteRequest(path)
    MOVE <source> <dest>      Move(source, dest)   dest = last word, source = the rest
    SUMMARY <path>            Summary(path)
    HELP                      Help()
    anything else             Unknown(raw_text)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# ── Intent types ──────────────────────────────────────────────


@dataclass(frozen=True)
class ListFolder:
    folder_path: str
    page: int = 1


@dataclass(frozen=True)
class DeleteRequest:
    file_path: str


@dataclass(frozen=True)
class DeleteConfirm:
    file_path: str


@dataclass(frozen=True)
class Move:
    source_path: str
    destination_path: str


@dataclass(frozen=True)
class Summary:
    path: str


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Unknown:
    raw_text: str


CommandIntent = ListFolder | DeleteRequest | DeleteConfirm | Move | Summary | Help | Unknown

# Wire names used in audit records and replies.
COMMAND_NAMES: dict[type, str] = {
    ListFolder: "LIST",
    DeleteRequest: "DELETE_REQUEST",
    DeleteConfirm: "DELETE_CONFIRM",
    Move: "MOVE",
    Summary: "SUMMARY",
    Help: "HELP",
    Unknown: "UNKNOWN",
}


def command_name(intent: CommandIntent) -> str:
    return COMMAND_NAMES[type(intent)]


# ── Parsing ───────────────────────────────────────────────────

_FLAGS = re.IGNORECASE | re.DOTALL

_LIST_PAGE = re.compile(r"^LIST\s+(.+?)\s+PAGE\s+(\S+)$", _FLAGS)
_LIST = re.compile(r"^LIST\s+(.+)$", _FLAGS)
_DELETE_CONFIRM = re.compile(r"^DELETE\s+(.+?)\s+CONFIRM$", _FLAGS)
_DELETE = re.compile(r"^DELETE\s+(.+)$", _FLAGS)
_MOVE = re.compile(r"^MOVE\s+(.+)\s+(\S+)$", _FLAGS)
_SUMMARY = re.compile(r"^SUMMARY\s+(.+)$", _FLAGS)
_HELP = re.compile(r"^HELP$", re.IGNORECASE)


def _positive_int(text: str) -> int | None:
    if not text.isascii() or not text.isdigit():
        return None
    value = int(text)
    return value if value >= 1 else None


def normalize_summary_path(path: str) -> str:
    """'/resume.pdf' → 'resume.pdf'. A leading slash on a dotted name marks a file, not the root."""
    path = path.strip()
    if path.startswith("/") and "." in path:
        path = path[1:].strip()
    return path


def parse_command(text: str) -> CommandIntent:
    """Classify a message. Total: every input yields exactly one intent."""
    raw = text or ""
    body = raw.strip()

    if m := _LIST_PAGE.match(body):
        page = _positive_int(m.group(2))
        if page is None:
            return Unknown(raw)
        return ListFolder(folder_path=m.group(1).strip(), page=page)

    if m := _LIST.match(body):
        return ListFolder(folder_path=m.group(1).strip())

    if m := _DELETE_CONFIRM.match(body):
        return DeleteConfirm(file_path=m.group(1).strip())

    if m := _DELETE.match(body):
        return DeleteRequest(file_path=m.group(1).strip())

    if m := _MOVE.match(body):
        # Greedy first group: the destination is the final word.
        return Move(source_path=m.group(1).strip(), destination_path=m.group(2).strip())

    if m := _SUMMARY.match(body):
        path = normalize_summary_path(m.group(1))
        if path:
            return Summary(path=path)
        return Unknown(raw)

    if _HELP.match(body):
        return Help()

    return Unknown(raw)
