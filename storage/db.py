# tralok_sync/storage/db.py
from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from core.settings import DB_PATH

# Ensure SQLModel metadata is populated
import models.queued_operation  # noqa: F401
from storage import migrations


_engines: Dict[str, Engine] = {}
_lock = threading.Lock()


def _key(path: Optional[Path | str]) -> str:
    return Path(path or DB_PATH).expanduser().resolve().as_posix()


def get_engine(path: Optional[Path | str] = None) -> Engine:
    """Open (creating if necessary) the queue database at ``path``.

    Safe to call before every operation: the engine is built once per path.
    """

    key = _key(path)
    with _lock:
        engine = _engines.get(key)
        if engine is None:
            Path(key).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                f"sqlite:///{key}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
            SQLModel.metadata.create_all(engine)
            migrations.run_all(engine)
            _engines[key] = engine
        return engine


def init_db(path: Optional[Path | str] = None) -> Engine:
    return get_engine(path)


def dispose_engine(path: Optional[Path | str] = None) -> None:
    with _lock:
        engine = _engines.pop(_key(path), None)
    if engine is not None:
        engine.dispose()


def get_session(engine: Optional[Engine] = None) -> Session:
    return Session(engine or get_engine())


__all__ = ["dispose_engine", "get_engine", "get_session", "init_db"]
