"""Scheduler for periodic tasks using pure asyncio.

Jobs:
- Heartbeat: check Drive and summary engine health
- Audit sweep: remove audit segments older than the retention window (daily)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from drivedesk.config import DrivedeskConfig
    from drivedesk.core import Drivedesk

logger = logging.getLogger(__name__)


def _parse_cron_hour(cron_expr: str) -> int:
    """Extract hour from simple cron expression like '0 3 * * *'."""
    parts = cron_expr.split()
    if len(parts) >= 2:
        try:
            return int(parts[1])
        except ValueError:
            pass
    return 3  # default: 3 AM


class Scheduler:
    """Simple asyncio-based scheduler for periodic tasks."""

    def __init__(self, desk: Drivedesk, config: DrivedeskConfig) -> None:
        self._desk = desk
        self._config = config
        self._sweep_hour = _parse_cron_hour(config.scheduler.audit_sweep_cron)
        self._heartbeat_interval = config.scheduler.heartbeat_interval

    async def start(self, shutdown_event: asyncio.Event) -> None:
        """Run scheduled jobs until shutdown_event is set."""
        logger.info(
            "Scheduler started (heartbeat=%ds, audit sweep@%02d:00)",
            self._heartbeat_interval,
            self._sweep_hour,
        )

        last_sweep_date: str | None = None

        while not shutdown_event.is_set():
            try:
                await asyncio.wait_for(
                    shutdown_event.wait(),
                    timeout=self._heartbeat_interval,
                )
                break  # shutdown requested
            except asyncio.TimeoutError:
                pass  # interval elapsed, run jobs

            await self._heartbeat()

            now = datetime.now()
            today = now.strftime("%Y-%m-%d")
            if now.hour == self._sweep_hour and last_sweep_date != today:
                self.sweep_audit()
                last_sweep_date = today

        logger.info("Scheduler stopped.")

    async def _heartbeat(self) -> None:
        """Check remote collaborator health."""
        for name, resource in (
            ("drive", self._desk.store),
            ("summarizer", self._desk.summarizer),
        ):
            check = getattr(resource, "health_check", None)
            if check is None:
                continue
            try:
                if not await check():
                    logger.warning("%s health check failed", name)
            except Exception as e:
                logger.error("%s health check error: %s", name, e)

    def sweep_audit(self) -> int:
        """Apply the audit retention window. Returns segments removed."""
        removed = self._desk.audit.clean_old_logs(self._config.audit.retention_days)
        logger.info("Audit sweep: removed %d segments", removed)
        return removed
