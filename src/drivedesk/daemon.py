"""Daemon process — always-on mode for production.

Usage: python -m drivedesk serve

Manages:
- Connector lifecycle (Feishu webhook, etc.)
- Scheduler (heartbeat, audit retention sweep)
- PID file (prevent duplicate instances)
- Graceful shutdown (SIGTERM/SIGINT)
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from drivedesk.config import DrivedeskConfig, load_config
from drivedesk.core import Drivedesk
from drivedesk.drive.client import GoogleDriveClient
from drivedesk.scheduler.jobs import Scheduler

logger = logging.getLogger(__name__)


def build_summarizer(config: DrivedeskConfig):
    """Instantiate the configured summary engine."""
    engine = config.engine
    if engine.name == "anthropic_api":
        from drivedesk.engines.anthropic_api import AnthropicSummarizer

        kwargs = {"timeout": engine.timeout, "max_chars": engine.max_chars}
        if engine.model:
            kwargs["model"] = engine.model
        return AnthropicSummarizer(**kwargs)
    if engine.name == "claude_cli":
        from drivedesk.engines.claude_cli import ClaudeCLISummarizer

        return ClaudeCLISummarizer(
            model=engine.model, timeout=engine.timeout, max_chars=engine.max_chars
        )
    raise ValueError(f"Unknown engine: {engine.name}")


class DrivedeskDaemon:
    """Always-on daemon process."""

    def __init__(self, config: DrivedeskConfig | None = None) -> None:
        self.config = config or load_config()
        self._shutdown_event = asyncio.Event()

    # ── PID file management ──────────────────────────────────

    def _write_pid(self) -> None:
        self.config.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.config.pid_file.write_text(str(os.getpid()))
        logger.info("PID file written: %s (pid=%d)", self.config.pid_file, os.getpid())

    def _remove_pid(self) -> None:
        if self.config.pid_file.exists():
            self.config.pid_file.unlink()

    def _check_existing(self) -> None:
        if not self.config.pid_file.exists():
            return
        try:
            pid = int(self.config.pid_file.read_text().strip())
            os.kill(pid, 0)  # Check if process exists
            print(f"Drivedesk daemon already running (pid={pid}). Exiting.", file=sys.stderr)
            sys.exit(1)
        except (ProcessLookupError, ValueError):
            # Stale PID file
            self._remove_pid()

    # ── Signal handling ──────────────────────────────────────

    def _setup_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down...", sig.name)
        self._shutdown_event.set()

    # ── Build components ─────────────────────────────────────

    def build_desk(self) -> Drivedesk:
        if not (self.config.drive.access_token or self.config.drive.refresh_token):
            logger.warning("Google OAuth credentials not found; Drive calls will fail")
        store = GoogleDriveClient(self.config.drive)
        return Drivedesk(self.config, store, build_summarizer(self.config))

    def _build_connectors(self, desk: Drivedesk) -> None:
        if self.config.feishu.app_id:
            try:
                from drivedesk.connectors.feishu import FeishuConnector

                desk.add_connector(FeishuConnector(self.config.feishu))
            except ImportError:
                logger.warning("Feishu connector unavailable (install 'drivedesk[feishu]')")

    # ── Main run loop ────────────────────────────────────────

    async def run(self) -> None:
        self._check_existing()
        self._write_pid()
        self._setup_signals()

        desk = self.build_desk()
        self._build_connectors(desk)

        scheduler = Scheduler(desk, self.config)
        scheduler.sweep_audit()

        logger.info("Drivedesk daemon starting (engine=%s)", self.config.engine.name)

        try:
            await asyncio.gather(
                desk.start(),
                scheduler.start(self._shutdown_event),
            )
        except asyncio.CancelledError:
            pass
        finally:
            await desk.stop()
            self._remove_pid()
            logger.info("Drivedesk daemon stopped.")
