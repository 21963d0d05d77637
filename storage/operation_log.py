"""Durable storage for operations waiting to reach the server."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.queued_operation import QueuedOperation
from storage.db import get_engine, get_session


class OperationLogError(RuntimeError):
    """The queue database could not be opened or a transaction failed."""


class OperationLog:
    """Wrapper around a SQLModel session for the ``queuedoperation`` table.

    Every call opens the database first, so the log can be used straight
    after construction or after the engine was disposed.
    """

    _write_lock = threading.Lock()

    def __init__(self, path: Optional[Path | str] = None) -> None:
        self.path = path

    def open(self) -> Engine:
        try:
            return get_engine(self.path)
        except (SQLAlchemyError, OSError) as exc:
            raise OperationLogError(f"Cannot open queue database: {exc}") from exc

    def _session(self) -> Session:
        return get_session(self.open())

    def add(self, entry: QueuedOperation) -> QueuedOperation:
        try:
            with self._write_lock, self._session() as session:
                current = session.exec(select(func.max(QueuedOperation.seq))).one()
                entry.seq = int(current or 0) + 1
                session.add(entry)
                session.commit()
                session.refresh(entry)
                return entry
        except SQLAlchemyError as exc:
            raise OperationLogError(f"Failed to store operation {entry.id}: {exc}") from exc

    def remove(self, op_id: str) -> bool:
        try:
            with self._session() as session:
                record = session.get(QueuedOperation, op_id)
                if not record:
                    return False
                session.delete(record)
                session.commit()
                return True
        except SQLAlchemyError as exc:
            raise OperationLogError(f"Failed to remove operation {op_id}: {exc}") from exc

    def get(self, op_id: str) -> Optional[QueuedOperation]:
        try:
            with self._session() as session:
                return session.get(QueuedOperation, op_id)
        except SQLAlchemyError as exc:
            raise OperationLogError(f"Failed to read operation {op_id}: {exc}") from exc

    def get_all(self) -> List[QueuedOperation]:
        try:
            with self._session() as session:
                stmt = select(QueuedOperation).order_by(QueuedOperation.seq.asc())
                return list(session.exec(stmt))
        except SQLAlchemyError as exc:
            raise OperationLogError(f"Failed to list operations: {exc}") from exc

    def update(self, op_id: str, **fields) -> Optional[QueuedOperation]:
        """Apply ``fields`` to a stored record; a removed record stays removed."""

        try:
            with self._session() as session:
                record = session.get(QueuedOperation, op_id)
                if record is None:
                    return None
                for key, value in fields.items():
                    setattr(record, key, value)
                session.add(record)
                session.commit()
                session.refresh(record)
                return record
        except SQLAlchemyError as exc:
            raise OperationLogError(f"Failed to update operation {op_id}: {exc}") from exc

    def count(self, state: Optional[str] = None) -> int:
        try:
            with self._session() as session:
                stmt = select(func.count()).select_from(QueuedOperation)
                if state is not None:
                    stmt = stmt.where(QueuedOperation.state == state)
                return int(session.exec(stmt).one())
        except SQLAlchemyError as exc:
            raise OperationLogError(f"Failed to count operations: {exc}") from exc


__all__ = ["OperationLog", "OperationLogError"]
