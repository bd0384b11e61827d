"""Drivedesk hub — routes chat messages to Drive operations and back.

Responsibilities:
1. Receive messages from any connector (IncomingMessage)
2. Lane Queue — serialize per chat_id
3. Session id — one per message, shared by every audit event it causes
4. Parse → orchestrate → format
5. Defect guard — nothing escapes to the transport without a reply
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING

from drivedesk.audit.log import AuditLog, new_session_id
from drivedesk.commands.confirmation import ConfirmationGate
from drivedesk.commands.formatter import GENERIC_FAILURE_TEXT, format_reply
from drivedesk.commands.grammar import command_name, parse_command
from drivedesk.connectors.base import IncomingMessage, Reply
from drivedesk.operations import Orchestrator

if TYPE_CHECKING:
    from drivedesk.config import DrivedeskConfig
    from drivedesk.connectors.base import Connector
    from drivedesk.drive.base import RemoteStore
    from drivedesk.engines.base import Summarizer

logger = logging.getLogger(__name__)


def build_audit_log(config: DrivedeskConfig) -> AuditLog:
    return AuditLog(
        config.audit.log_dir,
        log_file=config.audit.log_file,
        max_bytes=config.audit.max_bytes,
        max_files=config.audit.max_files,
    )


class Drivedesk:
    """Core hub — connects chat connectors to the operation orchestrator."""

    def __init__(
        self,
        config: DrivedeskConfig,
        store: RemoteStore,
        summarizer: Summarizer,
        audit: AuditLog | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.summarizer = summarizer
        self.audit = audit or build_audit_log(config)
        self.orchestrator = Orchestrator(
            store,
            summarizer,
            self.audit,
            gate=ConfirmationGate(window=config.confirm_window),
        )
        self._connectors: list[Connector] = []
        self._lane_locks: dict[str, asyncio.Lock] = {}  # per-chat serialization

    # ── Connector management ─────────────────────────────────

    def add_connector(self, connector: Connector) -> None:
        self._connectors.append(connector)
        logger.info("Registered connector: %s", connector.name)

    # ── Lane Queue (per-chat serialization) ──────────────────

    def _get_lane_lock(self, chat_id: str) -> asyncio.Lock:
        if chat_id not in self._lane_locks:
            self._lane_locks[chat_id] = asyncio.Lock()
        return self._lane_locks[chat_id]

    # ── Message handling (the core loop) ─────────────────────

    async def handle_message(self, msg: IncomingMessage) -> Reply:
        """Process an incoming message — the main entry point for all connectors."""
        lock = self._get_lane_lock(msg.chat_id)
        async with lock:
            return await self._process(msg)

    async def _process(self, msg: IncomingMessage) -> Reply:
        session_id = new_session_id()
        intent = parse_command(msg.text)
        command = command_name(intent)

        self.audit.log_command(
            message_id=msg.message_id,
            sender=msg.sender,
            command=command,
            params=asdict(intent),
            session_id=session_id,
        )

        try:
            result = await self.orchestrator.execute(intent, session_id)
            text = format_reply(result)
        except Exception as e:
            logger.exception("Unexpected failure handling %s from %s", command, msg.sender)
            self.audit.log_error(e, "message_processing", session_id)
            text = GENERIC_FAILURE_TEXT

        return Reply(text=text, session_id=session_id, command=command)

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start all connectors (each listens for messages)."""
        if not self._connectors:
            raise RuntimeError("No connectors registered. Call add_connector() first.")

        await asyncio.gather(*(connector.start(self.handle_message) for connector in self._connectors))

    async def stop(self) -> None:
        """Gracefully stop all connectors and close remote clients."""
        for connector in self._connectors:
            await connector.stop()

        # Close collaborators that hold sessions (e.g. the aiohttp client)
        for resource in (self.store, self.summarizer):
            close = getattr(resource, "close", None)
            if close and callable(close):
                await close()
