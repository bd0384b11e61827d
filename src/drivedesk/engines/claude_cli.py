"""Claude CLI summary engine — wraps `claude -p` using a Claude Code subscription."""

from __future__ import annotations

import asyncio
import json
import logging
import subprocess
from dataclasses import dataclass

from drivedesk.engines.base import DEFAULT_MAX_CHARS, build_summary_prompt, summary_error

logger = logging.getLogger(__name__)


@dataclass
class ClaudeCLISummarizer:
    """Subprocess wrapper around `claude -p --output-format json`. No API key needed."""

    model: str | None = None
    timeout: int = 300
    max_chars: int = DEFAULT_MAX_CHARS

    @property
    def name(self) -> str:
        return "claude_cli"

    async def summarize(self, text: str, display_name: str) -> str:
        cmd = ["claude", "-p", "--output-format", "json"]
        if self.model:
            cmd.extend(["--model", self.model])
        cmd.append(build_summary_prompt(text, display_name, self.max_chars))

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return summary_error("Claude CLI did not respond in time")
        except FileNotFoundError:
            return summary_error("`claude` CLI not found")

        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.error("claude CLI error (rc=%d): %s", result.returncode, stderr)
            return summary_error(stderr or "unknown error")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return result.stdout.strip() or "Unable to generate summary"

        if data.get("is_error"):
            return summary_error(data.get("result") or "unknown error")
        return (data.get("result") or result.stdout).strip() or "Unable to generate summary"

    async def health_check(self) -> bool:
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                ["claude", "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            return result.returncode == 0
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return False
