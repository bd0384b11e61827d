"""Summary engine protocol and shared prompt."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

SUMMARY_ERROR_PREFIX = "Error generating summary"
DEFAULT_MAX_CHARS = 4000

SUMMARY_PROMPT = """\
Please provide a concise summary of the following document content. \
Focus on key points, main topics, and important information. \
Keep the summary under 200 words.

Document Name: {name}

Content:
{content}"""


def build_summary_prompt(text: str, display_name: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    return SUMMARY_PROMPT.format(name=display_name, content=text[:max_chars])


def summary_error(reason: object) -> str:
    """Degraded result returned in place of a summary."""
    return f"{SUMMARY_ERROR_PREFIX}: {reason}"


@runtime_checkable
class Summarizer(Protocol):
    """Protocol that all summary backends must implement.

    summarize() never raises: failures come back as a string starting with
    SUMMARY_ERROR_PREFIX.
    """

    @property
    def name(self) -> str: ...

    async def summarize(self, text: str, display_name: str) -> str:
        """Summarize `text`, labelled with the document's display name."""
        ...

    async def health_check(self) -> bool:
        """Check if the engine is available. Returns True if healthy."""
        ...
