from __future__ import annotations

import json
from typing import Optional

from remotetree.git.hosting import GitRepository, MergeRequest, RepositoryLocation, open_repository
from remotetree.logging.ndjson import log_event
from remotetree.tree.errors import BackendUnavailable, ConfigParseError, UserCancelled
from remotetree.tree.explorer import ClusterExplorer, Profile
from remotetree.tree.interaction import Interaction, Notifier
from remotetree.tree.language import infer_language
from remotetree.tree.node import Bound, Command, Connection, Document, TreeItem, TreeNode


STATE = "remotetree.gitlab-explorer"


class GitNode(TreeNode[GitRepository]):
    def __init__(
        self,
        name: str,
        path: str,
        *,
        leaf: bool,
        repository: str,
        connection: Optional[Connection[GitRepository]],
        notifier: Notifier,
    ) -> None:
        self.repository = repository
        super().__init__(name, path, leaf=leaf, connection=connection, notifier=notifier)

    @classmethod
    def open_handle(cls, options: str) -> GitRepository:
        try:
            return open_repository(json.loads(options))
        except ValueError as e:
            raise ConfigParseError(f"Invalid repository options: {e}") from e

    @property
    def node_id(self) -> str:
        return f"{self.repository}\n{self.path}"

    async def list_children(self) -> list[TreeNode[GitRepository]]:
        entries = await self.handle.tree(self.path)
        return [
            GitNode(
                e.name,
                e.path,
                leaf=e.is_file,
                repository=self.repository,
                connection=Bound(self.handle),
                notifier=self.notifier,
            )
            for e in entries
        ]

    def get_tree_item(self) -> TreeItem:
        command = None
        if self.leaf:
            command = Command("remotetree.gitExplorer.getContent", "Get file content", self.node_id)
        return TreeItem(
            label=self.name,
            collapsible_state=self.collapsible_state(),
            command=command,
            context_value="gitfile" if self.leaf else "gitfolder",
            tooltip=self.path or self.repository,
        )


class GitExplorer(ClusterExplorer[GitNode]):
    kind = "git"
    storage_key = STATE

    def name(self, profile: Profile) -> str:
        return str(profile.get("host") or "")

    def is_valid(self, profile: Profile) -> bool:
        return bool(profile.get("host"))

    async def get_clusters(self) -> list[GitNode]:
        roots: list[GitNode] = []
        for profile in self.load_profiles():
            try:
                repo = open_repository(profile)
            except ConfigParseError as e:
                self.skip_profile(profile, e)
                continue
            name = self.name(profile)
            roots.append(
                GitNode(
                    name,
                    "",
                    leaf=False,
                    repository=name,
                    connection=Bound(repo),
                    notifier=self.notifier,
                )
            )
        return roots


async def add_existing_git_repository(explorer: GitExplorer, ui: Interaction) -> Optional[Profile]:
    endpoint = await ui.input_box(
        "Please specify the URL of GitLab repository:",
        placeholder="https://gitlab.com/group/repository",
    )
    if not endpoint:
        ui.notify("error", "Repository URL is required.")
        return None
    try:
        RepositoryLocation.parse(endpoint)
    except ConfigParseError as e:
        ui.notify("error", str(e))
        return None
    token = await ui.input_box("Please specify the token:")
    await explorer.upsert_profile(endpoint, {"token": token}, {"host": endpoint, "token": token})
    return {"host": endpoint, "token": token}


async def get_content(node: GitNode) -> Optional[Document]:
    if not node.leaf:
        node.notifier.notify("warning", f"Unable to get value of {node.name} for cluster or key is invalid.")
        return None
    try:
        text = await node.handle.raw(node.path)
    except BackendUnavailable as e:
        node.notifier.notify("warning", f"Unexpected error on talking to {node.name}: {e}")
        log_event(level="warning", event="content.error", explorer="git", data={"node": node.path, "error": str(e)})
        return None
    doc = Document(language=infer_language(node.path), content=text)
    log_event(
        level="info",
        event="content.fetch",
        explorer="git",
        data={"node": node.path, "language": doc.language, "contentLen": len(text)},
    )
    return doc


def _answered(answer: Optional[str]) -> str:
    if not answer:
        raise UserCancelled("no answer")
    return answer


async def create_merge_request(node: GitNode, ui: Interaction) -> Optional[MergeRequest]:
    """
    Prompt for source/target branches, title, description and an optional
    assignee, then open a merge (pull) request on the node's repository.
    """
    repo = node.handle
    try:
        branches = await repo.branches()
        source = _answered(await ui.pick_one(branches, title="Select the source branch:"))
        target = _answered(
            await ui.pick_one([b for b in branches if b != source], title="Select the target branch:")
        )
        title = await ui.input_box("Please specify the title of merge request:", placeholder=f"Merge {source} into {target}")
        if not title:
            ui.notify("error", "Merge request title is required.")
            return None
        description = await ui.input_box("Please specify the description:") or ""
        collaborators = await repo.collaborators()
        by_username = {c.username: c for c in collaborators}
        picked = await ui.pick_one(sorted(by_username), title="Select the assignee (optional):")
        mr = await repo.create_merge_request(
            source=source,
            target=target,
            title=title,
            description=description,
            assignee=by_username.get(picked) if picked else None,
        )
    except UserCancelled:
        ui.notify("info", "User cancelled creating merge request ... ")
        return None
    except BackendUnavailable as e:
        ui.notify("warning", f"Unexpected error on talking to {node.repository}: {e}")
        log_event(level="warning", event="git.merge_request.error", explorer="git", data={"error": str(e)})
        return None
    ui.notify("info", f"Created merge request {mr.url}")
    log_event(
        level="info",
        event="git.merge_request.created",
        explorer="git",
        data={"repository": node.repository, "source": source, "target": target, "url": mr.url},
    )
    return mr
