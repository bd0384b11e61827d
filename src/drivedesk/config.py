"""Configuration loading from environment variables and drivedesk.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_HOME_DIR = Path.home() / ".drivedesk"
_DEFAULT_AUDIT_DIR = _HOME_DIR / "logs"
_CONFIG_FILENAME = "drivedesk.toml"


@dataclass
class DriveConfig:
    """Google Drive credentials. Obtained out of band via the OAuth consent flow."""

    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    refresh_token: str = ""
    timeout: int = 30


@dataclass
class EngineConfig:
    """Configuration for the summary engine."""

    name: str = "anthropic_api"
    model: str | None = None
    timeout: int = 120
    max_chars: int = 4000


@dataclass
class FeishuConfig:
    """Feishu connector configuration."""

    app_id: str = ""
    app_secret: str = ""
    verification_token: str = ""
    encrypt_key: str = ""
    port: int = 9000


@dataclass
class AuditConfig:
    """Audit trail location, rotation and retention."""

    log_dir: Path = _DEFAULT_AUDIT_DIR
    log_file: str = "audit.log"
    max_bytes: int = 10 * 1024 * 1024
    max_files: int = 5
    retention_days: int = 30


@dataclass
class SchedulerConfig:
    """Scheduler configuration."""

    audit_sweep_cron: str = "0 3 * * *"
    heartbeat_interval: int = 300


@dataclass
class DrivedeskConfig:
    """Top-level Drivedesk configuration."""

    drive: DriveConfig = field(default_factory=DriveConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    feishu: FeishuConfig = field(default_factory=FeishuConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    confirm_window: float = 0.0
    pid_file: Path = _HOME_DIR / "drivedesk.pid"
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> DrivedeskConfig:
    """Load configuration from environment variables and optional drivedesk.toml.

    Priority: environment variables > drivedesk.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.drivedesk/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _HOME_DIR / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    drive_data = file_data.get("drive", {})
    engine_data = file_data.get("engine", {})
    feishu_data = file_data.get("feishu", {})
    audit_data = file_data.get("audit", {})
    confirm_data = file_data.get("confirm", {})
    scheduler_data = file_data.get("scheduler", {})

    config = DrivedeskConfig(
        drive=DriveConfig(
            client_id=os.getenv("GOOGLE_OAUTH_CLIENT_ID", drive_data.get("client_id", "")),
            client_secret=os.getenv(
                "GOOGLE_OAUTH_CLIENT_SECRET", drive_data.get("client_secret", "")
            ),
            access_token=os.getenv(
                "GOOGLE_OAUTH_ACCESS_TOKEN", drive_data.get("access_token", "")
            ),
            refresh_token=os.getenv(
                "GOOGLE_OAUTH_REFRESH_TOKEN", drive_data.get("refresh_token", "")
            ),
            timeout=int(os.getenv("DRIVEDESK_DRIVE_TIMEOUT", drive_data.get("timeout", 30))),
        ),
        engine=EngineConfig(
            name=os.getenv("DRIVEDESK_ENGINE", engine_data.get("name", "anthropic_api")),
            model=os.getenv("DRIVEDESK_MODEL", engine_data.get("model")),
            timeout=int(os.getenv("DRIVEDESK_TIMEOUT", engine_data.get("timeout", 120))),
            max_chars=int(engine_data.get("max_chars", 4000)),
        ),
        feishu=FeishuConfig(
            app_id=os.getenv("FEISHU_APP_ID", feishu_data.get("app_id", "")),
            app_secret=os.getenv("FEISHU_APP_SECRET", feishu_data.get("app_secret", "")),
            verification_token=os.getenv(
                "FEISHU_VERIFICATION_TOKEN", feishu_data.get("verification_token", "")
            ),
            encrypt_key=os.getenv("FEISHU_ENCRYPT_KEY", feishu_data.get("encrypt_key", "")),
            port=int(os.getenv("FEISHU_PORT", feishu_data.get("port", 9000))),
        ),
        audit=AuditConfig(
            log_dir=Path(
                os.getenv("DRIVEDESK_AUDIT_DIR", audit_data.get("log_dir", str(_DEFAULT_AUDIT_DIR)))
            ).expanduser(),
            log_file=audit_data.get("log_file", "audit.log"),
            max_bytes=int(
                os.getenv("DRIVEDESK_AUDIT_MAX_BYTES", audit_data.get("max_bytes", 10 * 1024 * 1024))
            ),
            max_files=int(os.getenv("DRIVEDESK_AUDIT_MAX_FILES", audit_data.get("max_files", 5))),
            retention_days=int(
                os.getenv("DRIVEDESK_AUDIT_RETENTION_DAYS", audit_data.get("retention_days", 30))
            ),
        ),
        scheduler=SchedulerConfig(
            audit_sweep_cron=scheduler_data.get("audit_sweep_cron", "0 3 * * *"),
            heartbeat_interval=int(
                os.getenv("DRIVEDESK_HEARTBEAT", scheduler_data.get("heartbeat_interval", 300))
            ),
        ),
        confirm_window=float(
            os.getenv("DRIVEDESK_CONFIRM_WINDOW", confirm_data.get("window", 0))
        ),
        pid_file=Path(file_data.get("pid_file", str(_HOME_DIR / "drivedesk.pid"))).expanduser(),
        log_level=os.getenv("DRIVEDESK_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
