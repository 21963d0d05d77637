"""Ad-hoc database migrations for the offline queue."""

from __future__ import annotations

from sqlalchemy import text


TABLE = "queuedoperation"


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_queue_columns(conn) -> None:
    # Queues written by older clients only carry the id/url/method/body/created_at/retries shape
    columns = {
        "seq": "INTEGER NOT NULL DEFAULT 0",
        "state": "TEXT NOT NULL DEFAULT 'pending'",
        "last_error": "TEXT",
        "last_status": "INTEGER",
        "next_try_at": "INTEGER NOT NULL DEFAULT 0",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, TABLE, name):
            conn.execute(text(f"ALTER TABLE {TABLE} ADD COLUMN {name} {ddl_type}"))


def backfill_sequence(conn) -> None:
    current = conn.execute(text(f"SELECT COALESCE(MAX(seq), 0) FROM {TABLE}")).scalar() or 0
    rows = conn.execute(
        text(
            f"""
            SELECT id FROM {TABLE}
            WHERE seq IS NULL OR seq = 0
            ORDER BY created_at ASC, rowid ASC
            """
        )
    ).fetchall()
    for offset, row in enumerate(rows, start=1):
        conn.execute(
            text(f"UPDATE {TABLE} SET seq = :seq WHERE id = :id"),
            {"seq": current + offset, "id": row[0]},
        )


def ensure_queue_indexes(conn) -> None:
    conn.execute(text(f"CREATE INDEX IF NOT EXISTS ix_{TABLE}_seq ON {TABLE} (seq)"))
    conn.execute(text(f"CREATE INDEX IF NOT EXISTS ix_{TABLE}_state ON {TABLE} (state)"))


def run_all(engine) -> None:
    with engine.begin() as conn:
        # SQLModel creates the table, but legacy databases need the newer columns
        ensure_queue_columns(conn)
        backfill_sequence(conn)
        ensure_queue_indexes(conn)


__all__ = ["run_all"]
