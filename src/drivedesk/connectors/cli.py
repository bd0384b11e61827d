"""Local CLI REPL connector for development and testing."""

from __future__ import annotations

import asyncio
import logging
import sys
import uuid
from typing import TYPE_CHECKING

from drivedesk.connectors.base import IncomingMessage

if TYPE_CHECKING:
    from drivedesk.connectors.base import MessageHandler, Reply

logger = logging.getLogger(__name__)

_CLI_CHAT_ID = "cli"
_CLI_SENDER = "user"


class CLIConnector:
    """Interactive REPL connector — reads commands from stdin, writes replies to stdout."""

    def __init__(self) -> None:
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    async def start(self, handler: MessageHandler) -> None:
        self._running = True
        loop = asyncio.get_running_loop()

        print("Drivedesk (send HELP for commands, 'exit' or Ctrl+C to quit)")
        print("-" * 48)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            text = line.strip()
            if not text:
                continue

            msg = IncomingMessage(
                text=text,
                chat_id=_CLI_CHAT_ID,
                sender=_CLI_SENDER,
                message_id=uuid.uuid4().hex,
                connector_name=self.name,
            )

            reply = await handler(msg)
            await self.reply(_CLI_CHAT_ID, reply)

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\n> ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    async def stop(self) -> None:
        self._running = False

    async def reply(self, chat_id: str, reply: Reply) -> None:
        print(f"\n{reply.text}")
        if reply.session_id:
            print(f"  [session: {reply.session_id}]", file=sys.stderr)
