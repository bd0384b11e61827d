"""Tests for scheduled jobs."""

import asyncio
import os
import time
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from drivedesk.config import AuditConfig, DrivedeskConfig, SchedulerConfig
from drivedesk.core import Drivedesk
from drivedesk.scheduler.jobs import Scheduler, _parse_cron_hour


@pytest.fixture
def config(tmp_path: Path) -> DrivedeskConfig:
    return DrivedeskConfig(
        audit=AuditConfig(log_dir=tmp_path / "logs", max_bytes=1, retention_days=7),
        scheduler=SchedulerConfig(heartbeat_interval=0),
    )


class TestScheduler:
    def test_parse_cron_hour(self):
        assert _parse_cron_hour("0 4 * * *") == 4
        assert _parse_cron_hour("garbage") == 3
        assert _parse_cron_hour("0 x * * *") == 3

    def test_sweep_audit(self, config, store, summarizer):
        desk = Drivedesk(config, store, summarizer)
        desk.audit.record("INFO", "old")
        desk.audit.record("INFO", "new")
        old = time.time() - 8 * 86400
        os.utime(desk.audit.segment(1), (old, old))

        assert Scheduler(desk, config).sweep_audit() == 1
        assert desk.audit.path.exists()

    @pytest.mark.asyncio
    async def test_heartbeat_checks_collaborators(self, config):
        store = MagicMock()
        store.health_check = AsyncMock(return_value=True)
        summarizer = MagicMock()
        summarizer.health_check = AsyncMock(side_effect=RuntimeError("down"))
        desk = Drivedesk(config, store, summarizer)

        await Scheduler(desk, config)._heartbeat()
        store.health_check.assert_awaited_once()
        summarizer.health_check.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_stops_on_shutdown(self, config, store, summarizer):
        desk = Drivedesk(config, store, summarizer)
        shutdown = asyncio.Event()
        shutdown.set()
        await asyncio.wait_for(Scheduler(desk, config).start(shutdown), timeout=1)
