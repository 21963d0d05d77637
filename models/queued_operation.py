"""SQLModel table for writes waiting to be replayed against the API."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from datetime_utils import now_ms


class OperationState(str, Enum):
    PENDING = "pending"
    RETRYING = "retrying"
    DEAD = "dead"


class QueuedOperation(SQLModel, table=True):
    id: str = Field(primary_key=True)
    seq: int = Field(default=0, index=True)
    url: str
    method: str
    body: Optional[str] = None
    created_at: int = Field(default_factory=now_ms)
    retries: int = Field(default=0)
    state: str = Field(default=OperationState.PENDING.value, index=True)
    last_error: Optional[str] = None
    last_status: Optional[int] = None
    next_try_at: int = Field(default_factory=now_ms)


__all__ = ["OperationState", "QueuedOperation"]
