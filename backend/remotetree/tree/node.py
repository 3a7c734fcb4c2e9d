from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from remotetree.logging.ndjson import log_event
from remotetree.tree.errors import BackendUnavailable, InvariantViolation
from remotetree.tree.interaction import Notifier


H = TypeVar("H")
N = TypeVar("N", bound="TreeNode[Any]")


class CollapsibleState(str, enum.Enum):
    NONE = "none"
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


@dataclass(frozen=True)
class Command:
    command: str
    title: str
    node_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command, "title": self.title, "nodeId": self.node_id}


@dataclass(frozen=True)
class TreeItem:
    label: str
    collapsible_state: CollapsibleState
    command: Optional[Command] = None
    context_value: Optional[str] = None
    tooltip: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "collapsibleState": self.collapsible_state.value,
            "command": self.command.to_dict() if self.command else None,
            "contextValue": self.context_value,
            "tooltip": self.tooltip,
        }


@dataclass(frozen=True)
class Document:
    language: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"language": self.language, "content": self.content}


@dataclass(frozen=True)
class Unconfigured:
    """Serialized backend options; the node builds its own client from them."""

    options: str


@dataclass(frozen=True)
class Bound(Generic[H]):
    """An already-live client shared with the parent node."""

    handle: H


Connection = Union[Unconfigured, Bound[H]]


class TreeNode(ABC, Generic[H]):
    """
    One entry in a remote tree.

    The backend handle is resolved once, at construction, from either
    serialized options or a live handle. Children are listed lazily with a
    single backend call and share the parent's handle.
    """

    def __init__(
        self,
        name: str,
        path: str,
        *,
        leaf: bool,
        connection: Optional[Connection[H]],
        notifier: Notifier,
    ) -> None:
        self.name = name
        self.path = path
        self.leaf = leaf
        self.notifier = notifier
        self.handle: H = self._resolve(connection)

    def _resolve(self, connection: Optional[Connection[H]]) -> H:
        if isinstance(connection, Bound):
            if connection.handle is None:
                raise InvariantViolation(f"{type(self).__name__} {self.name!r}: bound handle is None")
            return connection.handle
        if isinstance(connection, Unconfigured) and connection.options:
            return self.open_handle(connection.options)
        raise InvariantViolation(
            f"{type(self).__name__} {self.name!r}: options or a live client should be provided"
        )

    @classmethod
    @abstractmethod
    def open_handle(cls, options: str) -> H:
        """Build a backend client from serialized (JSON) options."""

    @property
    @abstractmethod
    def node_id(self) -> str: ...

    @abstractmethod
    async def list_children(self) -> list["TreeNode[H]"]:
        """One backend listing call, mapped to child nodes."""

    @abstractmethod
    def get_tree_item(self) -> TreeItem: ...

    async def get_children(self) -> list["TreeNode[H]"]:
        if self.leaf:
            return []
        try:
            children = await self.list_children()
        except BackendUnavailable as e:
            self.notifier.notify("warning", f"Unexpected error on talking to {self.name}: {e}")
            log_event(
                level="warning",
                event="tree.children.error",
                data={"node": self.node_id, "error": str(e)},
            )
            return []
        log_event(level="info", event="tree.children", data={"node": self.node_id, "count": len(children)})
        return children

    def collapsible_state(self) -> CollapsibleState:
        return CollapsibleState.NONE if self.leaf else CollapsibleState.COLLAPSED

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, path={self.path!r}, leaf={self.leaf})"
