"""Response formatter — operation result → chat reply text (no I/O)."""

from __future__ import annotations

from drivedesk.operations import (
    DeletePrompt,
    DeleteResult,
    HelpResult,
    ListResult,
    MoveResult,
    OperationResult,
    SummaryResult,
    UnknownResult,
)

ERROR_PREFIX = "❌ Error:"
MAX_NAME_CHARS = 25

HELP_TEXT = """\
🤖 Drivedesk — Google Drive over chat

Available commands:

📋 LIST /folder/path - List files in folder
📋 LIST /folder/path PAGE 2 - See page 2 of files
🗑️ DELETE filename.pdf - Delete a file (requires confirmation)
📁 MOVE source destination - Move a file (the last word is the destination folder)
📄 SUMMARY /folder/path - Summarize documents in folder
📄 SUMMARY filename.pdf - Summarize specific file
❓ HELP - Show this help

Examples:
• LIST /ProjectX
• LIST / PAGE 2
• DELETE report.pdf
• MOVE quarterly report.pdf Archive
• SUMMARY Documents
• SUMMARY resume.pdf

🔒 Safety: DELETE requires confirmation with 'CONFIRM' keyword"""

UNKNOWN_TEXT = "❓ Unknown command. Send HELP to see available commands."
GENERIC_FAILURE_TEXT = f"{ERROR_PREFIX} Something went wrong while processing your command."


def format_error(message: str) -> str:
    return f"{ERROR_PREFIX} {message}"


def _short_name(name: str) -> str:
    if len(name) > MAX_NAME_CHARS:
        return name[: MAX_NAME_CHARS - 3] + "..."
    return name


def _format_size(size: int | None) -> str:
    if not size:
        return ""
    return f"{round(size / 1024)}KB"


def format_list(result: ListResult) -> str:
    if not result.files:
        if result.total_files and result.page > result.total_pages:
            return (
                f"📁 Page {result.page} is empty - "
                f"{result.total_files} files span {result.total_pages} page(s)."
            )
        return "📁 No files found in the specified folder."

    lines = [
        f"📁 Files ({result.total_files} total) - Page {result.page}/{result.total_pages}:",
        "",
    ]
    for index, entry in enumerate(result.files):
        number = (result.page - 1) * result.page_size + index + 1
        icon = "📁" if entry.is_folder else "📄"
        line = f"{number}. {icon} {_short_name(entry.name)}"
        size = _format_size(entry.size_bytes)
        if size:
            line += f" ({size})"
        lines.append(line)

    if result.total_pages > 1:
        lines.append("")
        lines.append("📖 Navigation:")
        if result.page < result.total_pages:
            lines.append(f"• Next: LIST {result.folder_path} PAGE {result.page + 1}")
        if result.page > 1:
            lines.append(f"• Previous: LIST {result.folder_path} PAGE {result.page - 1}")
    return "\n".join(lines)


def format_delete_prompt(result: DeletePrompt) -> str:
    return (
        "⚠️ DELETE CONFIRMATION REQUIRED\n\n"
        f"File: {result.file_path}\n\n"
        "🚨 This action cannot be undone!\n\n"
        "To confirm deletion, send:\n"
        f"{result.confirmation_text}\n\n"
        "💡 Or send any other message to cancel."
    )


def format_summaries(result: SummaryResult) -> str:
    if not result.summaries:
        return "❌ No summarizable documents found in the folder."
    parts = ["📄 Document Summaries:", ""]
    for index, item in enumerate(result.summaries, start=1):
        parts.append(f"{index}. **{item.file_name}**")
        parts.append(item.summary)
        parts.append("")
    return "\n".join(parts).rstrip()


def format_reply(result: OperationResult) -> str:
    """Render any operation result. Every error field becomes one prefixed line."""
    if result.error:
        return format_error(result.error)

    if isinstance(result, ListResult):
        return format_list(result)
    if isinstance(result, DeletePrompt):
        return format_delete_prompt(result)
    if isinstance(result, DeleteResult):
        return f"🗑️ File '{result.file_name or result.file_path}' deleted successfully!"
    if isinstance(result, MoveResult):
        return (
            f"📁 File '{result.file_name or result.source_path}' moved to "
            f"'{result.destination_path}' successfully!"
        )
    if isinstance(result, SummaryResult):
        return format_summaries(result)
    if isinstance(result, HelpResult):
        return HELP_TEXT
    if isinstance(result, UnknownResult):
        return UNKNOWN_TEXT
    raise TypeError(f"Unhandled result: {result!r}")
