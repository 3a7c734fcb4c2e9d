from __future__ import annotations

import sqlite3

from remotetree.config import db_path


def connect() -> sqlite3.Connection:
    p = db_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(p, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Good defaults for a local single-user app.
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


def init_db() -> None:
    conn = connect()
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
              id TEXT PRIMARY KEY,
              applied_at TEXT NOT NULL
            );
            """
        )
        _apply_migrations(conn)
        conn.commit()
    finally:
        conn.close()


def _apply_migrations(conn: sqlite3.Connection) -> None:
    migrations: list[tuple[str, str]] = [
        ("001_state", _MIG_001_STATE),
        ("002_settings", _MIG_002_SETTINGS),
    ]
    applied = {row["id"] for row in conn.execute("SELECT id FROM schema_migrations")}
    for mid, sql in migrations:
        if mid in applied:
            continue
        conn.executescript(sql)
        conn.execute(
            "INSERT INTO schema_migrations(id, applied_at) VALUES(?, datetime('now'))",
            (mid,),
        )


# Explorer-managed key/value state (persisted profile lists live here).
_MIG_001_STATE = r"""
CREATE TABLE IF NOT EXISTS state (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
"""

# User-editable settings; writes fire configuration change notifications.
_MIG_002_SETTINGS = r"""
CREATE TABLE IF NOT EXISTS settings (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
"""
