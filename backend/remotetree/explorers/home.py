from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from remotetree.config import home_dir
from remotetree.logging.ndjson import log_event
from remotetree.tree.errors import BackendUnavailable, ConfigParseError
from remotetree.tree.explorer import ClusterExplorer
from remotetree.tree.interaction import Clipboard, Notifier
from remotetree.tree.language import infer_language
from remotetree.tree.node import Bound, Command, Connection, Document, TreeItem, TreeNode


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: Path
    is_dir: bool


class LocalFilesystem:
    """
    Read-only view of a directory tree. Paths outside `root` are refused.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def _safe(self, path: Path) -> Path:
        candidate = path.resolve()
        try:
            common = os.path.commonpath([str(self.root), str(candidate)])
        except ValueError as e:
            raise BackendUnavailable(f"Invalid path: {e}") from e
        if Path(common) != self.root:
            raise BackendUnavailable("Path escapes the explorer root")
        return candidate

    def _list(self, path: Path) -> list[FileEntry]:
        p = self._safe(path)
        entries = [FileEntry(name=c.name, path=c, is_dir=c.is_dir()) for c in p.iterdir()]
        return sorted(entries, key=lambda e: (not e.is_dir, e.name.lower()))

    async def list(self, path: Path) -> list[FileEntry]:
        try:
            return await asyncio.to_thread(self._list, path)
        except OSError as e:
            raise BackendUnavailable(str(e)) from e

    def _read(self, path: Path, max_bytes: int) -> str:
        p = self._safe(path)
        size = p.stat().st_size
        if size > max_bytes:
            raise BackendUnavailable(f"File too large ({size} bytes > {max_bytes})")
        return p.read_bytes().decode("utf-8", errors="replace")

    async def read(self, path: Path, *, max_bytes: int = 512_000) -> str:
        try:
            return await asyncio.to_thread(self._read, path, max_bytes)
        except OSError as e:
            raise BackendUnavailable(str(e)) from e


class FileNode(TreeNode[LocalFilesystem]):
    def __init__(
        self,
        name: str,
        path: Path,
        *,
        leaf: bool,
        connection: Optional[Connection[LocalFilesystem]],
        notifier: Notifier,
    ) -> None:
        self.file_path = path
        super().__init__(name, path.as_posix(), leaf=leaf, connection=connection, notifier=notifier)

    @classmethod
    def open_handle(cls, options: str) -> LocalFilesystem:
        try:
            root = json.loads(options).get("root")
        except (ValueError, AttributeError) as e:
            raise ConfigParseError(f"Invalid filesystem options: {e}") from e
        if not root:
            raise ConfigParseError("Filesystem options need a root")
        return LocalFilesystem(Path(str(root)).expanduser())

    @property
    def node_id(self) -> str:
        return self.path

    async def list_children(self) -> list[TreeNode[LocalFilesystem]]:
        entries = await self.handle.list(self.file_path)
        return [
            FileNode(e.name, e.path, leaf=not e.is_dir, connection=Bound(self.handle), notifier=self.notifier)
            for e in entries
        ]

    def get_tree_item(self) -> TreeItem:
        command = Command("remotetree.open", "Open file", self.node_id) if self.leaf else None
        return TreeItem(
            label=self.name,
            collapsible_state=self.collapsible_state(),
            command=command,
            context_value="file" if self.leaf else "folder",
            tooltip=self.path,
        )


class HomeExplorer(ClusterExplorer[FileNode]):
    """
    The user's home directory; its entries are the roots. Nothing is persisted.
    """

    kind = "home"
    storage_key = "remotetree.home-explorer"

    def root(self) -> Path:
        return home_dir()

    async def get_clusters(self) -> list[FileNode]:
        fs = LocalFilesystem(self.root())
        try:
            entries = await fs.list(fs.root)
        except BackendUnavailable as e:
            self.notifier.notify("warning", f"Unable to list {fs.root}: {e}")
            log_event(level="warning", event="tree.children.error", explorer=self.kind, data={"error": str(e)})
            return []
        return [
            FileNode(e.name, e.path, leaf=not e.is_dir, connection=Bound(fs), notifier=self.notifier)
            for e in entries
        ]


async def open_file(node: FileNode) -> Optional[Document]:
    if not node.leaf:
        return None
    try:
        text = await node.handle.read(node.file_path)
    except BackendUnavailable as e:
        node.notifier.notify("warning", f"Unable to open {node.path}: {e}")
        log_event(level="warning", event="content.error", explorer="home", data={"node": node.path, "error": str(e)})
        return None
    log_event(level="info", event="content.fetch", explorer="home", data={"node": node.path, "contentLen": len(text)})
    return Document(language=infer_language(node.path), content=text)


async def copy_path(node: FileNode, clipboard: Clipboard) -> str:
    await clipboard.write(node.path)
    node.notifier.notify("info", f"copied file path {node.path}")
    return node.path
