from __future__ import annotations

import base64
from typing import Any, Optional

import httpx

from remotetree.tree.errors import BackendUnavailable, ConfigParseError


DEFAULT_SCHEME = "http"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _json_object(r: httpx.Response) -> dict[str, Any]:
    try:
        data = r.json()
    except ValueError as e:
        raise BackendUnavailable(f"etcd answered {r.status_code} with a non-JSON body: {e}") from e
    if not isinstance(data, dict):
        raise BackendUnavailable(f"etcd answered {r.status_code} with unexpected JSON")
    return data


def prefix_range_end(prefix: bytes) -> bytes:
    """
    Smallest key greater than every key starting with `prefix`
    (etcd's prefix range convention). An all-0xff prefix scans to the end.
    """
    end = bytearray(prefix)
    for i in range(len(end) - 1, -1, -1):
        if end[i] < 0xFF:
            end[i] += 1
            return bytes(end[: i + 1])
    return b"\x00"


def parse_hosts(hosts: str) -> list[str]:
    out: list[str] = []
    for h in (hosts or "").split(","):
        h = h.strip().rstrip("/")
        if not h:
            continue
        if "://" not in h:
            h = f"{DEFAULT_SCHEME}://{h}"
        try:
            url = httpx.URL(h)
        except httpx.InvalidURL as e:
            raise ConfigParseError(f"Invalid etcd host {h}: {e}") from e
        if not url.host:
            raise ConfigParseError(f"Invalid etcd host: {h}")
        out.append(h)
    if not out:
        raise ConfigParseError("etcd hosts are required")
    return out


class EtcdClient:
    """
    etcd v3 over its JSON gateway (`/v3/kv/range`). Hosts are tried in order
    until one answers.
    """

    def __init__(
        self,
        hosts: list[str],
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.hosts = hosts
        self.username = username
        self.password = password
        self._transport = transport
        self._token: Optional[str] = None

    @classmethod
    def from_options(cls, options: dict[str, Any], **kwargs: Any) -> "EtcdClient":
        if not isinstance(options, dict):
            raise ConfigParseError("etcd options must be an object")
        return cls(
            parse_hosts(str(options.get("hosts") or "")),
            username=options.get("username") or None,
            password=options.get("password") or None,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(60.0), transport=self._transport)

    async def _authenticate(self, client: httpx.AsyncClient, host: str) -> Optional[str]:
        if not self.username:
            return None
        if self._token:
            return self._token
        r = await client.post(
            f"{host}/v3/auth/authenticate",
            json={"name": self.username, "password": self.password or ""},
        )
        if r.status_code >= 400:
            raise BackendUnavailable(f"etcd auth error {r.status_code}: {r.text}")
        self._token = str(_json_object(r).get("token") or "") or None
        return self._token

    async def _send(self, client: httpx.AsyncClient, host: str, path: str, payload: dict[str, Any]) -> httpx.Response:
        token = await self._authenticate(client, host)
        headers = {"Authorization": token} if token else {}
        return await client.post(f"{host}{path}", json=payload, headers=headers)

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        last_error: Optional[Exception] = None
        async with self._client() as client:
            for host in self.hosts:
                try:
                    r = await self._send(client, host, path, payload)
                    if r.status_code == 401 and self._token:
                        # expired token: log in again once
                        self._token = None
                        r = await self._send(client, host, path, payload)
                except httpx.TransportError as e:
                    last_error = e
                    continue
                if r.status_code >= 400:
                    raise BackendUnavailable(f"etcd error {r.status_code}: {r.text}")
                return _json_object(r)
        raise BackendUnavailable(f"No etcd host reachable ({', '.join(self.hosts)}): {last_error}")

    async def keys(self, prefix: str) -> list[str]:
        raw = prefix.encode("utf-8")
        data = await self._post(
            "/v3/kv/range",
            {"key": _b64(raw), "range_end": _b64(prefix_range_end(raw)), "keys_only": True},
        )
        out: list[str] = []
        for kv in data.get("kvs") or []:
            out.append(base64.b64decode(kv.get("key") or "").decode("utf-8", errors="replace"))
        return out

    async def get(self, key: str) -> Optional[bytes]:
        data = await self._post("/v3/kv/range", {"key": _b64(key.encode("utf-8"))})
        kvs = data.get("kvs") or []
        if not kvs:
            return None
        return base64.b64decode(kvs[0].get("value") or "")
