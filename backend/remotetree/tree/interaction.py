from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Optional, Protocol, Sequence, Union

from remotetree.events.bus import EventBus
from remotetree.logging.ndjson import log_event


Level = Literal["info", "warning", "error"]


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "message": self.message}


class Notifier(Protocol):
    def notify(self, level: Level, message: str) -> None: ...


class Interaction(Notifier, Protocol):
    async def input_box(self, prompt: str, *, placeholder: str = "") -> Optional[str]: ...

    async def pick_one(self, options: Sequence[str], *, title: str = "") -> Optional[str]: ...

    async def pick_many(self, options: Sequence[str], *, title: str = "") -> Optional[list[str]]: ...

    async def confirm(self, prompt: str) -> bool: ...


class Clipboard(Protocol):
    async def write(self, text: str) -> None: ...


class MemoryClipboard:
    def __init__(self) -> None:
        self.text: Optional[str] = None

    async def write(self, text: str) -> None:
        self.text = text


class BusNotifier:
    """
    Long-lived notifier: every toast is logged and published to the event bus
    so a connected presentation layer can show it.
    """

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus

    def notify(self, level: Level, message: str) -> None:
        log_event(level=level, event="notification", data={"message": message})
        self.bus.publish("notification", {"level": level, "message": message})


Pick = Union[str, list[str], None]


@dataclass
class ScriptedInteraction:
    """
    Answers prompts from pre-supplied values, in order. An exhausted queue
    answers like a user dismissing the prompt (None / declined).

    Used by the HTTP surface, where each request carries the user's answers.
    """

    inputs: deque[Optional[str]] = field(default_factory=deque)
    picks: deque[Pick] = field(default_factory=deque)
    confirmations: deque[bool] = field(default_factory=deque)
    notifications: list[Notification] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)

    @classmethod
    def answering(
        cls,
        *,
        inputs: Iterable[Optional[str]] = (),
        picks: Iterable[Pick] = (),
        confirmations: Iterable[bool] = (),
    ) -> "ScriptedInteraction":
        return cls(inputs=deque(inputs), picks=deque(picks), confirmations=deque(confirmations))

    def notify(self, level: Level, message: str) -> None:
        self.notifications.append(Notification(level=level, message=message))

    async def input_box(self, prompt: str, *, placeholder: str = "") -> Optional[str]:
        self.prompts.append(prompt)
        return self.inputs.popleft() if self.inputs else None

    async def pick_one(self, options: Sequence[str], *, title: str = "") -> Optional[str]:
        self.prompts.append(title)
        if not self.picks:
            return None
        answer = self.picks.popleft()
        if isinstance(answer, list):
            answer = answer[0] if answer else None
        return answer if answer in options else None

    async def pick_many(self, options: Sequence[str], *, title: str = "") -> Optional[list[str]]:
        self.prompts.append(title)
        if not self.picks:
            return None
        answer = self.picks.popleft()
        if answer is None:
            return None
        chosen = [answer] if isinstance(answer, str) else list(answer)
        return [c for c in chosen if c in options]

    async def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return bool(self.confirmations.popleft()) if self.confirmations else False
