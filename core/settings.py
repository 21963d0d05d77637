"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``.

    ``TRALOK_DATA_DIR`` in the environment wins over the platform default.
    """

    platform_id = (platform or sys.platform).lower()
    environ = dict(os.environ if env is None else env)
    override = environ.get("TRALOK_DATA_DIR")
    if override:
        return Path(override).expanduser()

    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "TralokSync"


DATA_DIR = get_default_data_dir(APP_NAME)
LOG_DIR = DATA_DIR / "logs"

for _dir in (DATA_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


DB_PATH = DATA_DIR / "offline_queue.db"
SESSION_PATH = DATA_DIR / "session.json"


@dataclass(frozen=True)
class SyncSettings:
    api_base_url: str = os.environ.get("TRALOK_API_URL", "http://localhost:3001")
    health_url: str = "/api/health"
    # seconds; None waits forever
    request_timeout: Optional[float] = 30.0
    max_retries: int = 8
    backoff_base_sec: int = 2
    backoff_cap_sec: int = 900
    probe_interval_sec: float = 15.0
    auto_flush_on_reconnect: bool = True
    dead_letter_client_errors: bool = True


SYNC = SyncSettings()


@dataclass(frozen=True)
class LoggingSettings:
    path: Path = LOG_DIR / "sync.log"
    max_bytes: int = 1_000_000
    backup_count: int = 3
    level: str = "INFO"
    fmt: str = "%(asctime)s [%(levelname)s] %(message)s"


LOGGING = LoggingSettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "LOG_DIR",
    "DB_PATH",
    "SESSION_PATH",
    "SYNC",
    "LOGGING",
    "get_default_data_dir",
]
