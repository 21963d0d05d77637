# tralok_sync/services/connectivity.py
from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

from core.logging_setup import get_logger
from core.settings import SYNC
from services.api_client import ApiClient


EVENTS = ("online", "offline")


class ConnectivityMonitor:
    """Watches the API for reachability and reports online/offline transitions.

    ``probe`` returns True when the server answers. Hosts that already get
    connectivity events from the OS can skip ``start()`` and call
    :meth:`set_online` themselves.
    """

    def __init__(
        self,
        probe: Optional[Callable[[], bool]] = None,
        interval: Optional[float] = None,
    ) -> None:
        self._client: Optional[ApiClient] = None
        if probe is None:
            self._client = ApiClient()
            probe = self._client.ping
        self.probe = probe
        self.interval = SYNC.probe_interval_sec if interval is None else interval
        self.logger = get_logger()
        self._listeners: Dict[str, List[Callable[[], None]]] = {event: [] for event in EVENTS}
        self._online: Optional[bool] = None
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, event: str, callback: Callable[[], None]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unsupported event: {event}")
        if callback not in self._listeners[event]:
            self._listeners[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable[[], None]) -> None:
        listeners = self._listeners.get(event)
        if listeners and callback in listeners:
            listeners.remove(callback)

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener()
            except Exception:
                self.logger.exception("Connectivity listener failed on %s", event)

    @property
    def is_online(self) -> Optional[bool]:
        return self._online

    def set_online(self, online: bool) -> bool:
        """Record the current state; listeners only hear about transitions."""

        with self._state_lock:
            previous = self._online
            self._online = online
        if previous == online:
            return False
        self.logger.info("Connectivity changed: %s", "online" if online else "offline")
        self._emit("online" if online else "offline")
        return True

    def check(self) -> bool:
        try:
            online = bool(self.probe())
        except Exception as exc:
            self.logger.debug("Connectivity probe raised: %s", exc)
            online = False
        self.set_online(online)
        return online

    # ------------------------------------------------------------------
    # Background polling
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="connectivity-monitor", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        if self._client is not None:
            self._client.close()

    def _run(self) -> None:
        while not self._stop.is_set():
            self.check()
            self._stop.wait(self.interval)


__all__ = ["ConnectivityMonitor", "EVENTS"]
