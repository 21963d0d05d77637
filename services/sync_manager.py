from __future__ import annotations

from typing import Optional

from core.logging_setup import get_logger
from core.settings import SYNC
from services.connectivity import ConnectivityMonitor
from services.session_store import SessionStore
from services.sync_service import FlushResult, Synchronizer


class SyncManager:
    """Flushes the offline queue whenever connectivity comes back.

    Nothing happens until :meth:`start`; :meth:`stop` detaches from the
    monitor again. A monitor or synchronizer passed in by the caller is used
    but never started, stopped or closed here.
    """

    def __init__(
        self,
        synchronizer: Optional[Synchronizer] = None,
        sessions: Optional[SessionStore] = None,
        monitor: Optional[ConnectivityMonitor] = None,
    ) -> None:
        self._owns_client = synchronizer is None
        self.synchronizer = synchronizer or Synchronizer()
        self.sessions = sessions or SessionStore()
        self._owns_monitor = monitor is None
        self.monitor = monitor or ConnectivityMonitor(probe=self.synchronizer.client.ping)
        self.logger = get_logger()
        self.last_result: Optional[FlushResult] = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self.monitor.subscribe("online", self._on_online)
        if self._owns_monitor:
            self.monitor.start()
        self._started = True
        self.logger.debug("Sync manager started")

    def stop(self) -> None:
        if self._started:
            self.monitor.unsubscribe("online", self._on_online)
            if self._owns_monitor:
                self.monitor.stop()
            self._started = False
            self.logger.debug("Sync manager stopped")
        if self._owns_client:
            self.synchronizer.client.close()

    def __enter__(self) -> "SyncManager":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # ------------------------------------------------------------------
    def _on_online(self) -> None:
        if not SYNC.auto_flush_on_reconnect:
            return
        self.flush_now()

    def flush_now(self, token: Optional[str] = None, *, force: bool = False) -> FlushResult:
        token = token or self.sessions.get_token()
        if not token:
            self.logger.info("No session token; sync postponed")
            return FlushResult()
        result = self.synchronizer.flush(token, force=force)
        if result.busy:
            return result
        self.last_result = result
        self.sessions.set_last_flush(result.to_dict())
        if result.ok:
            self.logger.info("%d operation(s) synchronized", result.ok)
        return result

    def pending_count(self) -> int:
        return self.synchronizer.queue.pending_count()


__all__ = ["SyncManager"]
