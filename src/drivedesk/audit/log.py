"""Append-only JSONL audit trail with size rotation and age-based retention.

Layout (defaults):
    ~/.drivedesk/logs/
    ├── audit.log          # active segment, one JSON object per line
    ├── audit.log.1        # most recently rotated
    └── audit.log.N        # oldest kept segment

Writes never raise into the caller. A failed write is reported through the
process logger instead.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import traceback
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

Level = Literal["INFO", "WARN", "ERROR"]

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_FILES = 5


def new_session_id() -> str:
    """One id per incoming message, shared by every event it causes."""
    return uuid.uuid4().hex


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AuditEvent:
    """A single audit line."""

    timestamp: str
    level: Level
    message: str
    session_id: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(
            {
                "timestamp": self.timestamp,
                "level": self.level,
                "message": self.message,
                "metadata": self.metadata,
                "sessionId": self.session_id,
            },
            ensure_ascii=False,
            default=str,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEvent:
        return cls(
            timestamp=data.get("timestamp", ""),
            level=data.get("level", "INFO"),
            message=data.get("message", ""),
            session_id=data.get("sessionId", ""),
            metadata=data.get("metadata") or {},
        )


class AuditLog:
    """Durable audit trail. One writer lock guards check-size → rotate → append."""

    def __init__(
        self,
        log_dir: Path,
        log_file: str = "audit.log",
        max_bytes: int = DEFAULT_MAX_BYTES,
        max_files: int = DEFAULT_MAX_FILES,
    ) -> None:
        self.log_dir = log_dir
        self.log_file = log_file
        self.max_bytes = max_bytes
        self.max_files = max_files
        self._lock = threading.Lock()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.log_dir / self.log_file

    def segment(self, n: int) -> Path:
        """Path of rotated segment `n` (1 is the newest)."""
        return self.log_dir / f"{self.log_file}.{n}"

    def segments(self) -> list[Path]:
        """Existing segment files, active first, then .1 … .N."""
        paths = [self.path] + [self.segment(i) for i in range(1, self.max_files + 1)]
        return [p for p in paths if p.exists()]

    # ── Writing ───────────────────────────────────────────────

    def record(
        self,
        level: Level,
        message: str,
        metadata: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> AuditEvent:
        """Append one event. Returns after the line is written or the failure is logged."""
        event = AuditEvent(
            timestamp=_now_iso(),
            level=level,
            message=message,
            session_id=session_id or new_session_id(),
            metadata=dict(metadata or {}),
        )
        try:
            line = event.to_json() + "\n"
            with self._lock:
                if self.path.exists() and self.path.stat().st_size > self.max_bytes:
                    self._rotate()
                # Lone surrogates from chat payloads are written as \uXXXX escapes.
                with self.path.open("a", encoding="utf-8", errors="backslashreplace") as f:
                    f.write(line)
                    f.flush()
        except (OSError, ValueError, TypeError) as e:
            logger.error("Failed to write audit log %s: %s", self.path, e)
        return event

    def _rotate(self) -> None:
        """Shift .1..N-1 → .2..N, drop .N, active → .1. Caller holds the lock."""
        if self.max_files < 1:
            self.path.unlink(missing_ok=True)
            return
        self.segment(self.max_files).unlink(missing_ok=True)
        for i in range(self.max_files - 1, 0, -1):
            src = self.segment(i)
            if src.exists():
                src.rename(self.segment(i + 1))
        self.path.rename(self.segment(1))
        logger.info("Rotated audit log %s", self.path)

    # ── Typed helpers ─────────────────────────────────────────

    def log_command(
        self,
        *,
        message_id: str,
        sender: str,
        command: str,
        params: dict[str, Any],
        session_id: str,
    ) -> AuditEvent:
        return self.record(
            "INFO",
            "Chat command received",
            {
                "type": "command_execution",
                "messageId": message_id,
                "sender": sender,
                "command": command,
                "params": params,
            },
            session_id,
        )

    def log_drive_operation(
        self, operation: str, details: dict[str, Any], session_id: str
    ) -> AuditEvent:
        return self.record(
            "INFO",
            f"Google Drive {operation} operation",
            {"type": "drive_operation", "operation": operation, "details": details},
            session_id,
        )

    def log_summarization(
        self, file_name: str, mime_type: str, summary: str, session_id: str
    ) -> AuditEvent:
        return self.record(
            "INFO",
            "AI summarization completed",
            {
                "type": "ai_summarization",
                "fileName": file_name,
                "fileType": mime_type,
                "summaryLength": len(summary or ""),
            },
            session_id,
        )

    def log_security_event(
        self, event: str, details: dict[str, Any], session_id: str
    ) -> AuditEvent:
        return self.record(
            "WARN",
            f"Security event: {event}",
            {"type": "security_event", "event": event, "details": details},
            session_id,
        )

    def log_error(self, error: BaseException, context: str, session_id: str) -> AuditEvent:
        return self.record(
            "ERROR",
            "Operation failed",
            {
                "type": "error",
                "error": {
                    "name": type(error).__name__,
                    "message": str(error),
                    "stack": "".join(
                        traceback.format_exception(type(error), error, error.__traceback__)
                    ),
                },
                "context": context,
            },
            session_id,
        )

    # ── Reading ───────────────────────────────────────────────

    def recent_events(self, count: int = 100) -> list[AuditEvent]:
        """Last `count` events of the active segment. Rotated segments are not read."""
        if count <= 0 or not self.path.exists():
            return []
        try:
            with self.path.open(encoding="utf-8") as f:
                lines = deque((line for line in f if line.strip()), maxlen=count)
        except OSError as e:
            logger.error("Failed to read audit log %s: %s", self.path, e)
            return []

        events = []
        for line in lines:
            try:
                events.append(AuditEvent.from_dict(json.loads(line)))
            except (json.JSONDecodeError, AttributeError):
                continue
        return events

    def generate_report(self, start: datetime, end: datetime) -> dict[str, Any]:
        """Aggregate recent events whose timestamp falls in [start, end]."""
        report: dict[str, Any] = {
            "period": {"from": start.isoformat(), "to": end.isoformat()},
            "totalOperations": 0,
            "commandsSummary": {},
            "errorCount": 0,
            "securityEvents": 0,
            "mostActiveUsers": {},
            "operationBreakdown": {},
        }
        for event in self.recent_events(10_000):
            try:
                ts = datetime.fromisoformat(event.timestamp.replace("Z", "+00:00"))
            except ValueError:
                continue
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            if not (_aware(start) <= ts <= _aware(end)):
                continue

            report["totalOperations"] += 1
            meta = event.metadata
            kind = meta.get("type")
            if kind == "command_execution":
                _bump(report["commandsSummary"], meta.get("command", "UNKNOWN"))
                _bump(report["mostActiveUsers"], meta.get("sender", ""))
            elif kind == "drive_operation":
                _bump(report["operationBreakdown"], meta.get("operation", ""))
            elif kind == "security_event":
                report["securityEvents"] += 1
            if event.level == "ERROR":
                report["errorCount"] += 1
        return report

    # ── Retention ─────────────────────────────────────────────

    def clean_old_logs(self, days_to_keep: int = 30) -> int:
        """Remove segments last modified more than `days_to_keep` days ago."""
        cutoff = time.time() - timedelta(days=days_to_keep).total_seconds()
        removed = 0
        with self._lock:
            for path in self.log_dir.glob(f"{self.log_file}*"):
                try:
                    if path.stat().st_mtime < cutoff:
                        path.unlink()
                        removed += 1
                except OSError as e:
                    logger.error("Failed to remove old audit segment %s: %s", path, e)
        if removed:
            logger.info("Cleaned %d old audit segments", removed)
        return removed


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _bump(counter: dict[str, int], key: str) -> None:
    counter[key] = counter.get(key, 0) + 1
