"""Entry point: python -m drivedesk [chat|serve|audit]

- No args / "chat": Interactive CLI REPL (development/testing)
- "serve":          Daemon mode (production, with connectors + scheduler)
- "audit [N]":      Print the last N audit events and a 7-day report
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import datetime, timedelta, timezone

from drivedesk.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_cli() -> None:
    """Interactive CLI REPL mode."""
    config = load_config()
    _setup_logging(config.log_level)

    from drivedesk.connectors.cli import CLIConnector
    from drivedesk.daemon import DrivedeskDaemon

    desk = DrivedeskDaemon(config).build_desk()
    desk.add_connector(CLIConnector())

    async def _main() -> None:
        try:
            await desk.start()
        finally:
            await desk.stop()

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass


def _run_serve() -> None:
    """Daemon mode — connectors + scheduler."""
    config = load_config()
    _setup_logging(config.log_level)

    from drivedesk.daemon import DrivedeskDaemon

    daemon = DrivedeskDaemon(config)
    asyncio.run(daemon.run())


def _run_audit(args: list[str]) -> None:
    """Dump recent audit events and a weekly report."""
    config = load_config()
    _setup_logging(config.log_level)

    from drivedesk.core import build_audit_log

    count = int(args[0]) if args else 20
    audit = build_audit_log(config)
    for event in audit.recent_events(count):
        print(event.to_json())

    end = datetime.now(timezone.utc)
    report = audit.generate_report(end - timedelta(days=7), end)
    print(json.dumps(report, indent=2, ensure_ascii=False))


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"

    if cmd in ("chat", "repl"):
        _run_cli()
    elif cmd == "serve":
        _run_serve()
    elif cmd == "audit":
        _run_audit(sys.argv[2:])
    else:
        print("Usage: python -m drivedesk [chat|serve|audit [N]]")
        print("  chat   — Interactive CLI REPL (default)")
        print("  serve  — Daemon mode with connectors + scheduler")
        print("  audit  — Print recent audit events and a 7-day report")
        sys.exit(1)


if __name__ == "__main__":
    main()
