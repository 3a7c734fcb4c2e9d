from __future__ import annotations

import base64
import json
from typing import Any, Optional

from remotetree.etcd.client import EtcdClient, parse_hosts
from remotetree.logging.ndjson import log_event
from remotetree.tree.errors import BackendUnavailable, ConfigParseError
from remotetree.tree.explorer import ClusterExplorer, Profile
from remotetree.tree.interaction import Interaction, Notifier
from remotetree.tree.node import Bound, Command, Connection, Document, TreeItem, TreeNode


STATE = "remotetree.etcd-explorer"
ROOT_KEY = "/"


class EtcdNode(TreeNode[EtcdClient]):
    def __init__(
        self,
        name: str,
        key: str,
        *,
        leaf: bool,
        cluster: str,
        connection: Optional[Connection[EtcdClient]],
        notifier: Notifier,
    ) -> None:
        self.cluster = cluster
        super().__init__(name, key, leaf=leaf, connection=connection, notifier=notifier)

    @property
    def key(self) -> str:
        return self.path

    @classmethod
    def open_handle(cls, options: str) -> EtcdClient:
        try:
            return EtcdClient.from_options(json.loads(options))
        except ValueError as e:
            raise ConfigParseError(f"Invalid etcd options: {e}") from e

    @property
    def node_id(self) -> str:
        return f"{self.cluster}\n{self.key}"

    async def list_children(self) -> list[TreeNode[EtcdClient]]:
        keys = await self.handle.keys(self.key)
        return [
            EtcdNode(
                key,
                key,
                leaf=True,
                cluster=self.cluster,
                connection=Bound(self.handle),
                notifier=self.notifier,
            )
            for key in keys
        ]

    def get_tree_item(self) -> TreeItem:
        return TreeItem(
            label=self.name,
            collapsible_state=self.collapsible_state(),
            command=Command("remotetree.etcdExplorer.getKeyValue", "Get value", self.node_id),
        )


class EtcdExplorer(ClusterExplorer[EtcdNode]):
    kind = "etcd"
    storage_key = STATE

    def name(self, profile: Profile) -> str:
        return str(profile.get("name") or "") or json.dumps(profile)

    def is_valid(self, profile: Profile) -> bool:
        return bool(profile.get("name")) and bool(profile.get("options"))

    async def get_clusters(self) -> list[EtcdNode]:
        roots: list[EtcdNode] = []
        for profile in self.load_profiles():
            try:
                client = EtcdClient.from_options(profile.get("options") or {})
            except ConfigParseError as e:
                self.skip_profile(profile, e)
                continue
            name = self.name(profile)
            roots.append(
                EtcdNode(
                    name,
                    ROOT_KEY,
                    leaf=False,
                    cluster=name,
                    connection=Bound(client),
                    notifier=self.notifier,
                )
            )
        return roots


async def add_existing_etcd_cluster(explorer: EtcdExplorer, ui: Interaction) -> Optional[Profile]:
    hosts = await ui.input_box("Please specify hosts of the existing cluster:", placeholder="127.0.0.1:2379")
    if not hosts:
        ui.notify("error", "Cluster hosts is required.")
        return None
    try:
        parse_hosts(hosts)
    except ConfigParseError as e:
        ui.notify("error", str(e))
        return None
    name = await ui.input_box("Please specify the cluster name:", placeholder=hosts)
    name = name or hosts
    options: dict[str, Any] = {"hosts": hosts}
    await explorer.upsert_profile(name, {"options": options}, {"name": name, "options": options})
    return {"name": name, "options": options}


def _as_document(value: bytes) -> Document:
    try:
        text = value.decode("utf-8")
        json.loads(text)
    except ValueError:
        return Document(language="plaintext", content=base64.b64encode(value).decode("ascii"))
    return Document(language="json", content=text)


async def get_key_value(node: EtcdNode) -> Optional[Document]:
    if not node.key:
        node.notifier.notify("warning", f"Unable to get value of {node.name} for cluster or key is invalid.")
        return None
    try:
        value = await node.handle.get(node.key)
    except BackendUnavailable as e:
        node.notifier.notify("warning", f"Unexpected error on talking to {node.name}: {e}")
        log_event(level="warning", event="content.error", explorer="etcd", data={"node": node.name, "error": str(e)})
        return None
    if value is None:
        node.notifier.notify("warning", f"Got null value of {node.name}.")
        return None
    doc = _as_document(value)
    log_event(
        level="info",
        event="content.fetch",
        explorer="etcd",
        data={"node": node.name, "language": doc.language, "bytes": len(value)},
    )
    return doc
