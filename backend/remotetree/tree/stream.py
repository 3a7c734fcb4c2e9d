from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, TypeVar


T = TypeVar("T")


class StreamingResponse(Protocol):
    def read(self, *args: Any, **kwargs: Any) -> bytes: ...

    def close(self) -> None: ...


def read_to_bytes(response: Optional[StreamingResponse]) -> bytes:
    """
    Drain a streaming SDK response. The response is always closed and, when the
    SDK pools connections (urllib3), its connection released.
    """
    if response is None:
        return b""
    try:
        return response.read()
    finally:
        response.close()
        release = getattr(response, "release_conn", None)
        if callable(release):
            release()


def read_to_list(items: Optional[Iterable[T]]) -> list[T]:
    """Materialize a lazy SDK listing; iteration errors propagate."""
    if items is None:
        return []
    return list(items)
