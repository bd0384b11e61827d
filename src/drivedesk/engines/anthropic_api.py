"""Anthropic API summary engine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from drivedesk.engines.base import DEFAULT_MAX_CHARS, build_summary_prompt, summary_error

logger = logging.getLogger(__name__)


@dataclass
class AnthropicSummarizer:
    """Direct Anthropic API via the `anthropic` SDK."""

    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 1024
    timeout: int = 120
    max_chars: int = DEFAULT_MAX_CHARS

    def __post_init__(self) -> None:
        try:
            import anthropic

            self._client = anthropic.Anthropic(timeout=self.timeout)
        except ImportError:
            raise ImportError(
                "anthropic package required. Install with: uv pip install anthropic"
            )

    @property
    def name(self) -> str:
        return "anthropic_api"

    async def summarize(self, text: str, display_name: str) -> str:
        prompt = build_summary_prompt(text, display_name, self.max_chars)
        try:
            response = await asyncio.to_thread(
                self._client.messages.create,
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.error("Anthropic API error: %s", e)
            return summary_error(e)

        parts = [block.text for block in response.content or [] if getattr(block, "text", None)]
        if not parts:
            return "Unable to generate summary"
        return "".join(parts).strip()

    async def health_check(self) -> bool:
        try:
            response = await asyncio.to_thread(
                self._client.messages.create,
                model=self.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "ping"}],
            )
            return bool(response.content)
        except Exception:
            return False
