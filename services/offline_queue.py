from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.logging_setup import get_logger
from core.settings import SYNC
from datetime_utils import now_ms
from models.queued_operation import OperationState, QueuedOperation
from storage.operation_log import OperationLog


_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_operation_id() -> str:
    return f"{now_ms()}-{_random_suffix()}"


def _backoff_ms(retries: int) -> int:
    delay = min(SYNC.backoff_cap_sec, SYNC.backoff_base_sec * 2 ** max(retries - 1, 0))
    return int(delay * 1000)


@dataclass
class QueuedRequest:
    id: str
    seq: int
    url: str
    method: str
    body: Any
    created_at: int
    retries: int
    state: str
    last_error: Optional[str]
    last_status: Optional[int]
    next_try_at: int
    corrupt_body: bool = False

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def is_dead(self) -> bool:
        return self.state == OperationState.DEAD.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "seq": self.seq,
            "url": self.url,
            "method": self.method,
            "body": self.body,
            "createdAt": self.created_at,
            "retries": self.retries,
            "state": self.state,
            "lastError": self.last_error,
            "lastStatus": self.last_status,
            "nextTryAt": self.next_try_at,
            "corruptBody": self.corrupt_body,
        }


def _to_request(row: QueuedOperation) -> QueuedRequest:
    body = None
    corrupt = False
    if row.body is not None:
        try:
            body = json.loads(row.body)
        except json.JSONDecodeError:
            # keep the stored text so the entry can be inspected, never replayed
            body = row.body
            corrupt = True
    return QueuedRequest(
        id=row.id,
        seq=row.seq,
        url=row.url,
        method=row.method,
        body=body,
        created_at=row.created_at,
        retries=row.retries,
        state=row.state,
        last_error=row.last_error,
        last_status=row.last_status,
        next_try_at=row.next_try_at,
        corrupt_body=corrupt,
    )


class OfflineQueue:
    """Writes that could not reach the server, kept until it confirms them."""

    def __init__(self, log: Optional[OperationLog] = None) -> None:
        self.log = log or OperationLog()
        self.logger = get_logger()

    def enqueue(self, url: str, method: str, body: Any = None) -> str:
        try:
            payload = None if body is None else json.dumps(body, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Body for {method} {url} is not JSON serializable: {exc}") from exc
        created = now_ms()
        record = QueuedOperation(
            id=new_operation_id(),
            url=url,
            method=method.upper(),
            body=payload,
            created_at=created,
            retries=0,
            state=OperationState.PENDING.value,
            next_try_at=created,
        )
        self.log.add(record)
        self.logger.debug("Queued %s %s as %s", record.method, url, record.id)
        return record.id

    def dequeue(self, op_id: str) -> None:
        self.log.remove(op_id)

    def get(self, op_id: str) -> Optional[QueuedRequest]:
        row = self.log.get(op_id)
        return _to_request(row) if row else None

    def get_all(self) -> List[QueuedRequest]:
        return [_to_request(row) for row in self.log.get_all()]

    def due(self, now: Optional[int] = None) -> List[QueuedRequest]:
        moment = now_ms() if now is None else now
        return [
            entry
            for entry in self.get_all()
            if not entry.is_dead and entry.next_try_at <= moment
        ]

    def pending_count(self) -> int:
        return self.log.count() - self.log.count(OperationState.DEAD.value)

    def record_failure(
        self,
        op_id: str,
        error: str,
        status: Optional[int] = None,
        *,
        permanent: bool = False,
        counted: bool = True,
    ) -> Optional[QueuedRequest]:
        """Bump the retry counter of ``op_id`` and schedule its next attempt.

        The entry moves to the dead-letter state when ``permanent`` is set or
        when it has used up ``SYNC.max_retries`` attempts. Failures recorded
        with ``counted=False`` are rescheduled without using up an attempt.
        """

        row = self.log.get(op_id)
        if row is None:
            return None
        retries = row.retries + 1 if counted else row.retries
        dead = permanent or (counted and retries >= SYNC.max_retries)
        state = OperationState.DEAD if dead else OperationState.RETRYING
        updated = self.log.update(
            op_id,
            retries=retries,
            state=state.value,
            last_error=error[:1000],
            last_status=status,
            next_try_at=now_ms() + _backoff_ms(max(retries, 1)),
        )
        if updated is None:
            return None
        if dead:
            self.logger.warning(
                "Operation %s (%s %s) moved to dead letters after %d attempt(s): %s",
                op_id,
                row.method,
                row.url,
                retries,
                error,
            )
        return _to_request(updated)

    def dead_letters(self) -> List[QueuedRequest]:
        return [entry for entry in self.get_all() if entry.is_dead]

    def revive(self, op_id: str) -> Optional[QueuedRequest]:
        updated = self.log.update(
            op_id,
            retries=0,
            state=OperationState.PENDING.value,
            last_error=None,
            last_status=None,
            next_try_at=now_ms(),
        )
        if updated is None:
            return None
        self.logger.info("Operation %s revived", op_id)
        return _to_request(updated)

    def discard(self, op_id: str) -> bool:
        removed = self.log.remove(op_id)
        if removed:
            self.logger.info("Operation %s discarded", op_id)
        return removed

    def status(self) -> Dict[str, int]:
        return {
            "total": self.log.count(),
            OperationState.PENDING.value: self.log.count(OperationState.PENDING.value),
            OperationState.RETRYING.value: self.log.count(OperationState.RETRYING.value),
            OperationState.DEAD.value: self.log.count(OperationState.DEAD.value),
        }


__all__ = ["OfflineQueue", "QueuedRequest", "new_operation_id"]
