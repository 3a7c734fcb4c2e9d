from __future__ import annotations

import json
from typing import Optional

from remotetree.logging.ndjson import log_event
from remotetree.minio.client import Endpoint, MinioStore
from remotetree.tree.errors import BackendUnavailable, ConfigParseError
from remotetree.tree.explorer import ClusterExplorer, Profile
from remotetree.tree.interaction import Interaction, Notifier
from remotetree.tree.node import Bound, Command, Connection, Document, TreeItem, TreeNode


MINIO_STATE = "remotetree.minio-explorer"


class MinioNode(TreeNode[MinioStore]):
    """
    Store root (lists buckets), bucket or prefix (lists one level of objects),
    or object (leaf).
    """

    def __init__(
        self,
        name: str,
        path: str,
        *,
        leaf: bool,
        bucket: Optional[str],
        endpoint: str,
        connection: Optional[Connection[MinioStore]],
        notifier: Notifier,
    ) -> None:
        self.bucket = bucket
        self.endpoint = endpoint
        super().__init__(name, path, leaf=leaf, connection=connection, notifier=notifier)

    @classmethod
    def open_handle(cls, options: str) -> MinioStore:
        try:
            return MinioStore.from_profile(json.loads(options))
        except ValueError as e:
            raise ConfigParseError(f"Invalid MinIO options: {e}") from e

    @property
    def node_id(self) -> str:
        return f"{self.endpoint}\n{self.bucket or ''}\n{self.path}"

    def _child(self, name: str, path: str, *, leaf: bool, bucket: str) -> "MinioNode":
        return MinioNode(
            name,
            path,
            leaf=leaf,
            bucket=bucket,
            endpoint=self.endpoint,
            connection=Bound(self.handle),
            notifier=self.notifier,
        )

    async def list_children(self) -> list[TreeNode[MinioStore]]:
        if not self.bucket:
            buckets = await self.handle.buckets()
            return [self._child(b, "", leaf=False, bucket=b) for b in buckets]
        bucket = self.bucket
        objects = await self.handle.objects(bucket, self.path)
        return [self._child(o.name[len(self.path):], o.name, leaf=not o.is_dir, bucket=bucket) for o in objects]

    def get_tree_item(self) -> TreeItem:
        command = None
        if self.leaf:
            command = Command("remotetree.minioExplorer.getContent", "Get file content", self.node_id)
        return TreeItem(label=self.name, collapsible_state=self.collapsible_state(), command=command)


class MinioExplorer(ClusterExplorer[MinioNode]):
    kind = "minio"
    storage_key = MINIO_STATE

    def name(self, profile: Profile) -> str:
        return str(profile.get("endPoint") or "")

    def is_valid(self, profile: Profile) -> bool:
        return bool(profile.get("endPoint"))

    async def get_clusters(self) -> list[MinioNode]:
        roots: list[MinioNode] = []
        for profile in self.load_profiles():
            try:
                store = MinioStore.from_profile(profile)
            except ConfigParseError as e:
                self.skip_profile(profile, e)
                continue
            name = self.name(profile)
            roots.append(
                MinioNode(
                    name,
                    "",
                    leaf=False,
                    bucket=None,
                    endpoint=name,
                    connection=Bound(store),
                    notifier=self.notifier,
                )
            )
        return roots


async def add_existing_minio_cluster(explorer: MinioExplorer, ui: Interaction) -> Optional[Profile]:
    endpoint = await ui.input_box("Please specify endpoint of the existing cluster:", placeholder="127.0.0.1:9000")
    if not endpoint:
        ui.notify("error", "Cluster endpoint is required.")
        return None
    try:
        Endpoint.parse(endpoint)
    except ConfigParseError as e:
        ui.notify("error", str(e))
        return None
    credential = await ui.input_box("Please specify the accesskey/secretkey:", placeholder="accessKey:secretKey")
    access_key, _, secret_key = (credential or "").partition(":")
    secret = {"accessKey": access_key, "secretKey": secret_key}
    await explorer.upsert_profile(endpoint, secret, {"endPoint": endpoint, **secret})
    return {"endPoint": endpoint, **secret}


async def get_content(node: MinioNode) -> Optional[Document]:
    if not node.bucket or not node.leaf:
        node.notifier.notify("warning", f"Unable to get value of {node.name} for cluster or key is invalid.")
        return None
    try:
        value = await node.handle.read(node.bucket, node.path)
    except BackendUnavailable as e:
        node.notifier.notify("warning", f"Unexpected error on talking to {node.name}: {e}")
        log_event(level="warning", event="content.error", explorer="minio", data={"node": node.path, "error": str(e)})
        return None
    log_event(
        level="info",
        event="content.fetch",
        explorer="minio",
        data={"bucket": node.bucket, "node": node.path, "bytes": len(value)},
    )
    return Document(language="plaintext", content=value.decode("utf-8", errors="replace"))
