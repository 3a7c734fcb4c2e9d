from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, TypeVar

import gitlab
import requests
from gitlab.exceptions import GitlabError

from remotetree.git.hosting import Collaborator, MergeRequest, RepositoryLocation, TreeEntry
from remotetree.tree.errors import BackendUnavailable


R = TypeVar("R")

PER_PAGE = 100


class GitLabRepository:
    """
    GitLab project through python-gitlab (API v4, `PRIVATE-TOKEN` auth).
    The library is synchronous; every call runs in a worker thread.
    """

    def __init__(
        self,
        location: RepositoryLocation,
        *,
        token: Optional[str] = None,
        ref: Optional[str] = None,
        gl: Optional[gitlab.Gitlab] = None,
    ) -> None:
        self.location = location
        self.ref = ref or "HEAD"
        self._gl = gl or gitlab.Gitlab(url=location.server, private_token=token)
        self._project = self._gl.projects.get(location.project, lazy=True)

    async def _call(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except (GitlabError, requests.RequestException) as e:
            raise BackendUnavailable(f"GitLab {self.location.server}/{self.location.project}: {e}") from e

    async def tree(self, path: str) -> list[TreeEntry]:
        kwargs: dict[str, Any] = {"ref": self.ref, "per_page": PER_PAGE, "get_all": True}
        path = path.strip("/")
        if path:
            kwargs["path"] = path
        items = await self._call(self._project.repository_tree, **kwargs)
        return [
            TreeEntry(name=str(i["name"]), path=str(i["path"]), is_file=i.get("type") == "blob")
            for i in items
        ]

    async def raw(self, path: str) -> str:
        data = await self._call(self._project.files.raw, file_path=path.strip("/"), ref=self.ref)
        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return str(data or "")

    async def branches(self) -> list[str]:
        items = await self._call(self._project.branches.list, get_all=True)
        return [b.name for b in items]

    async def collaborators(self) -> list[Collaborator]:
        members = await self._call(self._project.members_all.list, get_all=True)
        return [Collaborator(id=str(m.id), username=m.username, name=getattr(m, "name", m.username)) for m in members]

    async def create_merge_request(
        self,
        *,
        source: str,
        target: str,
        title: str,
        description: str = "",
        assignee: Optional[Collaborator] = None,
    ) -> MergeRequest:
        data: dict[str, Any] = {
            "source_branch": source,
            "target_branch": target,
            "title": title,
            "description": description,
        }
        if assignee is not None:
            data["assignee_id"] = int(assignee.id)
        mr = await self._call(self._project.mergerequests.create, data)
        return MergeRequest(title=mr.title, source=source, target=target, url=mr.web_url)
