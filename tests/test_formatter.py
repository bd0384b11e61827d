"""Tests for reply formatting."""

from drivedesk.commands.formatter import (
    HELP_TEXT,
    UNKNOWN_TEXT,
    format_error,
    format_list,
    format_reply,
)
from drivedesk.drive.base import EntryKind, StoreEntry
from drivedesk.operations import (
    DeletePrompt,
    DeleteResult,
    HelpResult,
    ListResult,
    MoveResult,
    SummaryItem,
    SummaryResult,
    UnknownResult,
)


def entry(name: str, kind=EntryKind.FILE, size=None) -> StoreEntry:
    return StoreEntry(id=name, name=name, kind=kind, size_bytes=size)


class TestFormatList:
    def test_numbering_continues_across_pages(self):
        result = ListResult(
            "/Docs", 2, files=[entry("k.txt"), entry("l.txt")], total_files=12, total_pages=2
        )
        text = format_list(result)
        assert "📁 Files (12 total) - Page 2/2:" in text
        assert "11. 📄 k.txt" in text
        assert "12. 📄 l.txt" in text
        assert "• Previous: LIST /Docs PAGE 1" in text
        assert "Next:" not in text

    def test_folder_icon_size_and_truncation(self):
        long_name = "a" * 30 + ".txt"
        result = ListResult(
            "/",
            1,
            files=[entry("Sub", EntryKind.FOLDER), entry(long_name, size=4096)],
            total_files=2,
            total_pages=1,
        )
        text = format_list(result)
        assert "1. 📁 Sub" in text
        assert "2. 📄 " + "a" * 22 + "... (4KB)" in text
        assert "Navigation" not in text

    def test_next_link(self):
        result = ListResult("/", 1, files=[entry("a")], total_files=11, total_pages=2)
        assert "• Next: LIST / PAGE 2" in format_list(result)

    def test_empty_folder(self):
        assert format_list(ListResult("/", 1)) == "📁 No files found in the specified folder."

    def test_page_past_end(self):
        text = format_list(ListResult("/", 5, total_files=3, total_pages=1))
        assert "Page 5 is empty" in text


class TestFormatReply:
    def test_error_takes_precedence(self):
        result = ListResult("/Nope", 1, error="Folder '/Nope' not found")
        assert format_reply(result) == "❌ Error: Folder '/Nope' not found"

    def test_format_error(self):
        assert format_error("x") == "❌ Error: x"

    def test_delete_prompt(self):
        text = format_reply(DeletePrompt("a.pdf", "DELETE a.pdf CONFIRM"))
        assert "DELETE CONFIRMATION REQUIRED" in text
        assert "DELETE a.pdf CONFIRM" in text

    def test_delete_done(self):
        assert "'a.pdf' deleted successfully" in format_reply(DeleteResult("a.pdf", "a.pdf"))

    def test_move_done(self):
        text = format_reply(MoveResult("a.pdf", "Archive", file_name="a.pdf"))
        assert text == "📁 File 'a.pdf' moved to 'Archive' successfully!"

    def test_summaries(self):
        result = SummaryResult(
            "Docs",
            summaries=[SummaryItem("a.txt", "First."), SummaryItem("b.pdf", "Second.")],
        )
        text = format_reply(result)
        assert text.startswith("📄 Document Summaries:")
        assert "1. **a.txt**\nFirst." in text
        assert "2. **b.pdf**\nSecond." in text

    def test_no_summaries(self):
        assert "No summarizable documents" in format_reply(SummaryResult("Docs"))

    def test_help_and_unknown(self):
        assert format_reply(HelpResult()) == HELP_TEXT
        assert format_reply(UnknownResult("hi")) == UNKNOWN_TEXT
        for keyword in ("LIST", "DELETE", "MOVE", "SUMMARY", "HELP", "CONFIRM"):
            assert keyword in HELP_TEXT
