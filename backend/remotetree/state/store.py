from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, DefaultDict, Optional, Protocol

from remotetree.db import connect
from remotetree.logging.ndjson import log_event


class StateStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class SqliteStateStore:
    """
    Key/value state backed by the `state` table.
    """

    def get(self, key: str) -> Optional[str]:
        conn = connect()
        try:
            row = conn.execute("SELECT value FROM state WHERE key=?", (key,)).fetchone()
            return str(row["value"]) if row else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = connect()
        try:
            conn.execute(
                "INSERT INTO state(key, value, updated_at) VALUES(?, ?, datetime('now')) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()


class ProfileStore:
    """
    JSON-array profile lists stored under one state key per backend.

    Read-modify-write sequences should run under `locked(key)`; that only
    serializes writers inside this process, a second process writing the same
    key still wins if it writes last.
    """

    def __init__(self, state: StateStore) -> None:
        self.state = state
        self._locks: DefaultDict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def raw(self, key: str) -> Optional[str]:
        return self.state.get(key)

    def load(self, key: str) -> list[dict[str, Any]]:
        raw = self.state.get(key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            log_event(level="warning", event="state.profiles.invalid", data={"key": key, "error": str(e)})
            return []
        if not isinstance(data, list):
            log_event(level="warning", event="state.profiles.invalid", data={"key": key, "error": "not a list"})
            return []
        return [p for p in data if isinstance(p, dict)]

    def save(self, key: str, profiles: list[dict[str, Any]]) -> None:
        self.state.set(key, json.dumps(profiles, ensure_ascii=False))

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        async with self._locks[key]:
            yield
