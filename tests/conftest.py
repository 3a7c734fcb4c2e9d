from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from remotetree.db import init_db
from remotetree.events.bus import ConfigurationEmitter
from remotetree.state.store import ProfileStore
from remotetree.tree.interaction import ScriptedInteraction


class MemoryState:
    """In-memory StateStore that counts writes."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.values: dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.writes += 1
        self.values[key] = value


def run(coro: Any) -> Any:
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("REMOTETREE_DB_PATH", str(tmp_path / "state.db"))
    monkeypatch.setenv("REMOTETREE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("REMOTETREE_HOME_DIR", str(tmp_path / "home"))
    (tmp_path / "home").mkdir()
    init_db()
    yield


@pytest.fixture
def state() -> MemoryState:
    return MemoryState()


@pytest.fixture
def profiles(state: MemoryState) -> ProfileStore:
    return ProfileStore(state)


@pytest.fixture
def configuration() -> ConfigurationEmitter:
    return ConfigurationEmitter()


@pytest.fixture
def ui() -> ScriptedInteraction:
    return ScriptedInteraction()
