from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from core.settings import SESSION_PATH
from datetime_utils import ensure_utc, parse_rfc3339, to_rfc3339_utc, utc_now


class SessionStore:
    """Current bearer token plus the outcome of the last sync pass."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path or SESSION_PATH)

    # ------------------------------------------------------------------
    # generic helpers
    def _load(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            return {}
        if isinstance(data, dict):
            return data
        return {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    # ------------------------------------------------------------------
    # Token helpers
    def get_token(self) -> Optional[str]:
        token = self._load().get("token")
        return str(token) if token else None

    def set_token(self, token: str) -> None:
        data = self._load()
        data["token"] = token
        self._save(data)

    def clear_token(self) -> None:
        data = self._load()
        if data.pop("token", None) is not None:
            self._save(data)

    # ------------------------------------------------------------------
    # Flush diagnostics
    def set_last_flush(self, summary: Dict[str, Any], moment=None) -> None:
        data = self._load()
        data["lastFlush"] = dict(summary)
        data["lastFlushAt"] = to_rfc3339_utc(ensure_utc(moment) if moment else utc_now())
        self._save(data)

    def get_last_flush(self) -> Optional[Dict[str, Any]]:
        summary = self._load().get("lastFlush")
        return summary if isinstance(summary, dict) else None

    def get_last_flush_timestamp(self):
        return parse_rfc3339(self._load().get("lastFlushAt"))

    # ------------------------------------------------------------------
    def clear_all(self) -> None:
        if self.path.exists():
            self.path.unlink()


__all__ = ["SessionStore"]
