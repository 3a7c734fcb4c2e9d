from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol
from urllib.parse import urlsplit

from remotetree.tree.errors import ConfigParseError


@dataclass(frozen=True)
class TreeEntry:
    name: str
    path: str
    is_file: bool


@dataclass(frozen=True)
class Collaborator:
    id: str
    username: str
    name: str


@dataclass(frozen=True)
class MergeRequest:
    title: str
    source: str
    target: str
    url: str


@dataclass(frozen=True)
class RepositoryLocation:
    """`https://gitlab.example.com/group/project` split into server and project path."""

    server: str
    project: str
    host: str

    @classmethod
    def parse(cls, url: str) -> "RepositoryLocation":
        parts = urlsplit((url or "").strip())
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigParseError(f"Invalid repository URL: {url!r}")
        project = parts.path.strip("/")
        if project.endswith(".git"):
            project = project[: -len(".git")]
        if not project:
            raise ConfigParseError(f"Repository URL has no project path: {url!r}")
        return cls(server=f"{parts.scheme}://{parts.netloc}", project=project, host=parts.hostname or "")


class GitRepository(Protocol):
    """
    One hosted repository. Every Git hosting backend answers this interface;
    callers never need to know which server they talk to.
    """

    location: RepositoryLocation

    async def tree(self, path: str) -> list[TreeEntry]: ...

    async def raw(self, path: str) -> str: ...

    async def branches(self) -> list[str]: ...

    async def collaborators(self) -> list[Collaborator]: ...

    async def create_merge_request(
        self,
        *,
        source: str,
        target: str,
        title: str,
        description: str = "",
        assignee: Optional[Collaborator] = None,
    ) -> MergeRequest: ...


GITEE_HOSTS = ("gitee.com", "www.gitee.com")


def open_repository(profile: dict[str, Any]) -> GitRepository:
    """
    Build the repository client for a persisted profile. This is the only
    place that looks at which server hosts the repository.
    """
    from remotetree.git.gitee import GiteeRepository
    from remotetree.git.gitlab import GitLabRepository

    location = RepositoryLocation.parse(str(profile.get("host") or ""))
    token = profile.get("token") or None
    ref = profile.get("ref") or None
    if location.host in GITEE_HOSTS:
        return GiteeRepository(location, token=token, ref=ref)
    return GitLabRepository(location, token=token, ref=ref)
