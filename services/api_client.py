# tralok_sync/services/api_client.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests

from core.logging_setup import get_logger
from core.settings import APP_NAME, SYNC

if TYPE_CHECKING:
    from services.offline_queue import OfflineQueue


# 401 is retried: the next reconnect usually comes with a refreshed token
RETRYABLE_STATUS = {401, 408, 425, 429}


def is_success(status: int) -> bool:
    return 200 <= status < 300


def is_retryable_status(status: int) -> bool:
    return status >= 500 or status in RETRYABLE_STATUS


@dataclass
class WriteOutcome:
    response: Optional[requests.Response] = None
    queued_id: Optional[str] = None

    @property
    def queued(self) -> bool:
        return self.queued_id is not None


class ApiClient:
    """Thin JSON client for the Tralok REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = SYNC.request_timeout,
    ) -> None:
        self.base_url = (base_url or SYNC.api_base_url).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = get_logger()

    def resolve(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    def _headers(self, token: Optional[str]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"{APP_NAME}/1.0",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def send(
        self,
        method: str,
        url: str,
        body: Any = None,
        token: Optional[str] = None,
    ) -> requests.Response:
        """Issue one request; network failures raise ``requests.RequestException``."""

        data = None if body is None else json.dumps(body, ensure_ascii=False)
        return self.session.request(
            method.upper(),
            self.resolve(url),
            data=data,
            headers=self._headers(token),
            timeout=self.timeout,
        )

    def close(self) -> None:
        self.session.close()

    def ping(self, path: Optional[str] = None) -> bool:
        try:
            self.session.get(self.resolve(path or SYNC.health_url), timeout=self.timeout)
        except requests.RequestException:
            return False
        return True

    def write_or_enqueue(
        self,
        queue: "OfflineQueue",
        method: str,
        url: str,
        body: Any = None,
        token: Optional[str] = None,
        *,
        offline: bool = False,
    ) -> WriteOutcome:
        """Try the write directly and fall back to the offline queue.

        Client errors other than the retryable ones are returned to the caller
        instead of being queued, since replaying them cannot succeed.
        """

        if offline:
            return WriteOutcome(queued_id=queue.enqueue(url, method, body))
        try:
            response = self.send(method, url, body, token)
        except requests.RequestException as exc:
            self.logger.info("Direct %s %s failed (%s); queued for sync", method, url, exc)
            return WriteOutcome(queued_id=queue.enqueue(url, method, body))
        if is_success(response.status_code) or not is_retryable_status(response.status_code):
            return WriteOutcome(response=response)
        self.logger.info(
            "Direct %s %s returned %s; queued for sync", method, url, response.status_code
        )
        return WriteOutcome(response=response, queued_id=queue.enqueue(url, method, body))


__all__ = [
    "ApiClient",
    "RETRYABLE_STATUS",
    "WriteOutcome",
    "is_retryable_status",
    "is_success",
]
