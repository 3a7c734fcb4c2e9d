from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from remotetree.git.hosting import Collaborator, MergeRequest, RepositoryLocation, TreeEntry
from remotetree.tree.errors import BackendUnavailable


GITEE_API = "/api/v5"


def _records(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, list):
        raise BackendUnavailable("Gitee answered with unexpected JSON")
    return [d for d in data if isinstance(d, dict)]


class GiteeRepository:
    """
    Gitee repository over the REST v5 API. Authentication is the
    `access_token` parameter on every request.
    """

    def __init__(
        self,
        location: RepositoryLocation,
        *,
        token: Optional[str] = None,
        ref: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.location = location
        self.ref = ref
        self._token = token
        self._transport = transport
        self._base = f"{location.server}{GITEE_API}/repos/{location.project}"

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {k: v for k, v in extra.items() if v is not None}
        if self._token:
            params["access_token"] = self._token
        return params

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(60.0), transport=self._transport) as client:
                r = await client.request(method, f"{self._base}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"Gitee {self.location.project}: {e}") from e
        if r.status_code >= 400:
            raise BackendUnavailable(f"Gitee error {r.status_code}: {r.text}")
        return r

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        r = await self._request(method, path, **kwargs)
        try:
            return r.json()
        except ValueError as e:
            raise BackendUnavailable(f"Gitee answered {r.status_code} with a non-JSON body: {e}") from e

    async def tree(self, path: str) -> list[TreeEntry]:
        path = path.strip("/")
        suffix = f"/contents/{quote(path)}" if path else "/contents"
        data = await self._request_json("GET", suffix, params=self._params(ref=self.ref))
        if isinstance(data, dict):
            data = [data]
        return [
            TreeEntry(name=str(e.get("name") or ""), path=str(e.get("path") or ""), is_file=e.get("type") != "dir")
            for e in _records(data)
        ]

    async def raw(self, path: str) -> str:
        r = await self._request("GET", f"/raw/{quote(path.strip('/'))}", params=self._params(ref=self.ref))
        return r.text

    async def branches(self) -> list[str]:
        data = await self._request_json("GET", "/branches", params=self._params())
        return [str(b.get("name")) for b in _records(data) if b.get("name")]

    async def collaborators(self) -> list[Collaborator]:
        data = await self._request_json("GET", "/collaborators", params=self._params(per_page=100))
        return [
            Collaborator(id=str(c.get("id") or ""), username=str(c.get("login") or ""), name=str(c.get("name") or c.get("login") or ""))
            for c in _records(data)
        ]

    async def create_merge_request(
        self,
        *,
        source: str,
        target: str,
        title: str,
        description: str = "",
        assignee: Optional[Collaborator] = None,
    ) -> MergeRequest:
        body: dict[str, Any] = {"title": title, "head": source, "base": target, "body": description}
        if assignee is not None:
            body["assignees"] = assignee.username
        data = await self._request_json("POST", "/pulls", params=self._params(), json=body)
        if not isinstance(data, dict):
            raise BackendUnavailable("Gitee answered the pull request with unexpected JSON")
        return MergeRequest(
            title=str(data.get("title") or title),
            source=source,
            target=target,
            url=str(data.get("html_url") or ""),
        )
