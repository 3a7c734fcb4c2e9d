from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from remotetree.events.bus import ConfigurationEmitter, EventBus
from remotetree.explorers import etcd, git, home, minio
from remotetree.logging.ndjson import log_event
from remotetree.state.store import ProfileStore, SqliteStateStore, StateStore
from remotetree.tree.explorer import ClusterExplorer, Profile
from remotetree.tree.interaction import BusNotifier, Clipboard, Interaction, MemoryClipboard, Notifier
from remotetree.tree.node import Document, TreeNode
from remotetree.tree.providerresult import transform


class ExplorerError(RuntimeError):
    pass


AddCommand = Callable[[Any, Interaction], Awaitable[Optional[Profile]]]
ContentCommand = Callable[[Any], Awaitable[Optional[Document]]]

_ADD_COMMANDS: dict[str, AddCommand] = {
    "etcd": etcd.add_existing_etcd_cluster,
    "git": git.add_existing_git_repository,
    "minio": minio.add_existing_minio_cluster,
}

_CONTENT_COMMANDS: dict[str, ContentCommand] = {
    "etcd": etcd.get_key_value,
    "git": git.get_content,
    "minio": minio.get_content,
    "home": home.open_file,
}


class Workbench:
    """
    Everything one running session needs: the explorers, the collaborators they
    report to, and the index of nodes handed out to the presentation layer.
    Built once per app by `create_workbench`; `close()` releases subscriptions.
    """

    def __init__(
        self,
        *,
        state: Optional[StateStore] = None,
        bus: Optional[EventBus] = None,
        configuration: Optional[ConfigurationEmitter] = None,
        notifier: Optional[Notifier] = None,
        clipboard: Optional[Clipboard] = None,
    ) -> None:
        self.bus = bus or EventBus()
        self.configuration = configuration or ConfigurationEmitter()
        self.notifier = notifier or BusNotifier(self.bus)
        self.clipboard = clipboard or MemoryClipboard()
        self.profiles = ProfileStore(state or SqliteStateStore())
        self.explorers: dict[str, ClusterExplorer[Any]] = {}
        self._nodes: dict[str, dict[str, TreeNode[Any]]] = {}
        self._unsubscribe: list[Callable[[], None]] = []

    def register(self, explorer: ClusterExplorer[Any]) -> None:
        name = explorer.kind
        self.explorers[name] = explorer
        self._nodes[name] = {}

        def on_change(node: Optional[TreeNode[Any]]) -> None:
            if node is None:
                # whole tree invalidated: ids must be listed again
                self._nodes[name].clear()
            self.bus.publish("tree.changed", {"explorer": name, "nodeId": node.node_id if node else None})

        self._unsubscribe.append(explorer.on_did_change_tree_data.subscribe(on_change))

    def close(self) -> None:
        for dispose in self._unsubscribe:
            dispose()
        self._unsubscribe.clear()
        for explorer in self.explorers.values():
            explorer.dispose()

    def explorer(self, name: str) -> ClusterExplorer[Any]:
        explorer = self.explorers.get(name)
        if explorer is None:
            raise ExplorerError(f"Unknown explorer: {name}")
        return explorer

    def node(self, name: str, node_id: str) -> TreeNode[Any]:
        self.explorer(name)
        node = self._nodes[name].get(node_id)
        if node is None:
            raise ExplorerError(f"Unknown node: {node_id!r} (list its parent first)")
        return node

    def _remember(self, name: str, nodes: list[TreeNode[Any]]) -> None:
        index = self._nodes[name]
        for n in nodes:
            index[n.node_id] = n

    async def children(self, name: str, node_id: Optional[str] = None) -> list[TreeNode[Any]]:
        explorer = self.explorer(name)
        parent = self.node(name, node_id) if node_id else None
        return await transform(explorer.get_children(parent), lambda nodes: self._remember(name, nodes))

    def refresh(self, name: str, node_id: Optional[str] = None) -> None:
        explorer = self.explorer(name)
        explorer.refresh(self.node(name, node_id) if node_id else None)

    async def add_profile(self, name: str, ui: Interaction) -> Optional[Profile]:
        command = _ADD_COMMANDS.get(name)
        if command is None:
            raise ExplorerError(f"Explorer {name} has no profiles to add")
        return await command(self.explorer(name), ui)

    async def remove_profiles(self, name: str, ui: Interaction) -> list[str]:
        return await self.explorer(name).remove_clusters(ui)

    async def content(self, name: str, node_id: str) -> Optional[Document]:
        command = _CONTENT_COMMANDS.get(name)
        if command is None:
            raise ExplorerError(f"Explorer {name} has no content")
        node = self.node(name, node_id)
        log_event(level="info", event="content.request", explorer=name, data={"node": node_id})
        return await command(node)


def create_workbench(**kwargs: Any) -> Workbench:
    wb = Workbench(**kwargs)
    for cls in (etcd.EtcdExplorer, git.GitExplorer, minio.MinioExplorer, home.HomeExplorer):
        wb.register(cls(wb.profiles, wb.configuration, wb.notifier))
    return wb
