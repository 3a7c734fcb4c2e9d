from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Generic, TypeVar
from uuid import uuid4


T = TypeVar("T")


class EventEmitter(Generic[T]):
    """
    Synchronous in-process emitter: `fire(value)` calls every listener in
    subscription order. Listener errors propagate to the caller of `fire`.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def fire(self, value: T) -> None:
        for listener in list(self._listeners):
            listener(value)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


@dataclass(frozen=True)
class ConfigurationChange:
    keys: tuple[str, ...]

    def affects(self, section: str) -> bool:
        return any(k == section or k.startswith(section + ".") for k in self.keys)


class ConfigurationEmitter(EventEmitter[ConfigurationChange]):
    def changed(self, *keys: str) -> None:
        self.fire(ConfigurationChange(keys=tuple(keys)))


@dataclass
class Event:
    type: str
    payload: dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class EventBus:
    """
    Fan-out of presentation events (tree invalidation, notifications) to live
    SSE subscribers. Slow subscribers drop events instead of blocking.
    """

    def __init__(self, *, maxsize: int = 100) -> None:
        self._maxsize = maxsize
        self._subscribers: set[asyncio.Queue[Event]] = set()

    def publish(self, type_: str, payload: dict[str, Any]) -> Event:
        ev = Event(type=type_, payload=payload)
        for q in list(self._subscribers):
            try:
                q.put_nowait(ev)
            except asyncio.QueueFull:
                pass
        return ev

    async def subscribe(self) -> AsyncIterator[Event]:
        q: asyncio.Queue[Event] = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers.add(q)
        try:
            while True:
                yield await q.get()
        finally:
            self._subscribers.discard(q)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
