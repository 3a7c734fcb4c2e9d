from __future__ import annotations

from remotetree.db import connect


def list_settings(prefix: str = "") -> dict[str, str]:
    conn = connect()
    try:
        rows = conn.execute(
            "SELECT key, value FROM settings WHERE key LIKE ? ORDER BY key",
            (prefix + "%",),
        ).fetchall()
        return {str(r["key"]): str(r["value"]) for r in rows}
    finally:
        conn.close()


def set_settings(values: dict[str, str]) -> None:
    """Write every key of one update in a single transaction."""
    if not values:
        return
    conn = connect()
    try:
        with conn:
            conn.executemany(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                list(values.items()),
            )
    finally:
        conn.close()
