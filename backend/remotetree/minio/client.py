from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import urlsplit

import urllib3
from minio import Minio
from minio.error import MinioException

from remotetree.tree.errors import BackendUnavailable, ConfigParseError
from remotetree.tree.stream import read_to_bytes, read_to_list


R = TypeVar("R")

DEFAULT_PORT = 9000


@dataclass(frozen=True)
class ObjectEntry:
    name: str
    is_dir: bool


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int
    secure: bool

    @property
    def netloc(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, endpoint: str) -> "Endpoint":
        """
        `https://host` -> TLS on 443; anything else is plain HTTP on the given
        port (9000 when absent). A bare `host:port` is read as http.
        """
        raw = (endpoint or "").strip()
        if "://" not in raw:
            raw = f"http://{raw}"
        parts = urlsplit(raw)
        host = parts.netloc.split(":")[0]
        if not host:
            raise ConfigParseError(f"Invalid endpoint: {endpoint!r}")
        if parts.scheme == "https":
            return cls(host=host, port=443, secure=True)
        port_raw = parts.netloc.split(":")[1] if ":" in parts.netloc else ""
        try:
            port = int(port_raw or DEFAULT_PORT)
        except ValueError as e:
            raise ConfigParseError(f"Invalid endpoint port: {endpoint!r}") from e
        return cls(host=host, port=port, secure=False)


class MinioStore:
    """
    MinIO / S3 object store through the `minio` SDK. The SDK is synchronous;
    calls run in a worker thread.
    """

    def __init__(self, endpoint: Endpoint, *, access_key: str = "", secret_key: str = "", client: Optional[Any] = None) -> None:
        self.endpoint = endpoint
        self._client = client or Minio(
            endpoint.netloc,
            access_key=access_key or None,
            secret_key=secret_key or None,
            secure=endpoint.secure,
        )

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> "MinioStore":
        return cls(
            Endpoint.parse(str(profile.get("endPoint") or "")),
            access_key=str(profile.get("accessKey") or ""),
            secret_key=str(profile.get("secretKey") or ""),
        )

    async def _call(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except (MinioException, urllib3.exceptions.HTTPError, ValueError) as e:
            raise BackendUnavailable(f"MinIO {self.endpoint.netloc}: {e}") from e

    async def buckets(self) -> list[str]:
        items = await self._call(self._client.list_buckets)
        return [b.name for b in items]

    async def objects(self, bucket: str, prefix: str) -> list[ObjectEntry]:
        def _list() -> list[Any]:
            return read_to_list(self._client.list_objects(bucket, prefix=prefix or None, recursive=False))

        items = await self._call(_list)
        return [ObjectEntry(name=str(o.object_name), is_dir=bool(o.is_dir)) for o in items]

    async def read(self, bucket: str, name: str) -> bytes:
        def _read() -> bytes:
            return read_to_bytes(self._client.get_object(bucket, name))

        return await self._call(_read)
