from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import requests

from core.logging_setup import get_logger
from core.settings import SYNC
from datetime_utils import now_ms
from services.api_client import ApiClient, is_retryable_status, is_success
from services.offline_queue import OfflineQueue, QueuedRequest


@dataclass
class FlushResult:
    ok: int = 0
    failed: int = 0
    deferred: int = 0
    dead: int = 0
    busy: bool = False

    def as_dict(self) -> Dict[str, int]:
        return {"ok": self.ok, "failed": self.failed}

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _describe(response: requests.Response) -> str:
    text = (getattr(response, "text", "") or "").strip()
    if text:
        return f"HTTP {response.status_code}: {text[:200]}"
    return f"HTTP {response.status_code}"


class Synchronizer:
    """Replays the offline queue against the API, one request at a time."""

    def __init__(
        self,
        queue: Optional[OfflineQueue] = None,
        client: Optional[ApiClient] = None,
    ) -> None:
        self.queue = queue or OfflineQueue()
        self.client = client or ApiClient()
        self.logger = get_logger()
        self._lock = threading.Lock()

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def flush(self, token: Optional[str], *, force: bool = False) -> FlushResult:
        """Run one sync pass with ``token`` as the bearer credential.

        A second call while a pass is running returns ``FlushResult(busy=True)``
        without touching the queue. Entries still in backoff are skipped
        unless ``force`` is set; dead entries are never replayed. Without a
        token nothing is sent and the queue is left as it is.
        """

        if not token:
            self.logger.info("No session token; flush skipped")
            return FlushResult()
        if not self._lock.acquire(blocking=False):
            self.logger.info("Flush already in progress; skipping")
            return FlushResult(busy=True)
        try:
            result = FlushResult()
            entries = [entry for entry in self.queue.get_all() if not entry.is_dead]
            moment = now_ms()
            for entry in entries:
                if not force and entry.next_try_at > moment:
                    result.deferred += 1
                    continue
                self._replay(entry, token, result)
            if entries:
                self.logger.info(
                    "Flush finished: %d ok, %d failed, %d deferred, %d dead",
                    result.ok,
                    result.failed,
                    result.deferred,
                    result.dead,
                )
            return result
        finally:
            self._lock.release()

    def _replay(self, entry: QueuedRequest, token: Optional[str], result: FlushResult) -> None:
        if entry.corrupt_body:
            self.logger.warning("Operation %s has an unreadable body; not replayed", entry.id)
            self._fail(entry, "corrupt body", None, result, permanent=True)
            return
        try:
            response = self.client.send(entry.method, entry.url, entry.body, token)
        except requests.RequestException as exc:
            self.logger.warning("Replay %s %s failed: %s", entry.method, entry.url, exc)
            self._fail(entry, str(exc), None, result)
            return
        except Exception as exc:  # pragma: no cover
            self.logger.error("Replay %s %s crashed: %s", entry.method, entry.url, exc)
            self._fail(entry, repr(exc), None, result)
            return

        status = response.status_code
        if is_success(status):
            self.queue.dequeue(entry.id)
            result.ok += 1
            return

        self.logger.warning("Replay %s %s returned %s", entry.method, entry.url, status)
        permanent = SYNC.dead_letter_client_errors and not is_retryable_status(status)
        # 401 reschedules without using up an attempt
        counted = status != 401
        self._fail(
            entry, _describe(response), status, result, permanent=permanent, counted=counted
        )

    def _fail(
        self,
        entry: QueuedRequest,
        error: str,
        status: Optional[int],
        result: FlushResult,
        *,
        permanent: bool = False,
        counted: bool = True,
    ) -> None:
        result.failed += 1
        updated = self.queue.record_failure(
            entry.id, error, status, permanent=permanent, counted=counted
        )
        if updated is not None and updated.is_dead:
            result.dead += 1


__all__ = ["FlushResult", "Synchronizer"]
