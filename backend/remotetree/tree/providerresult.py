from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Iterable, Optional, TypeVar, Union


T = TypeVar("T")
U = TypeVar("U")

# A tree provider may answer synchronously or with an awaitable.
ProviderResult = Union[T, Awaitable[T]]


async def resolve(result: ProviderResult[T]) -> T:
    if inspect.isawaitable(result):
        return await result
    return result  # type: ignore[return-value]


async def map_result(
    source: ProviderResult[Optional[Iterable[T]]],
    f: Callable[[T], U],
) -> Optional[list[U]]:
    items = await resolve(source)
    if items is None:
        return None
    return [f(x) for x in items]


async def transform(obj: ProviderResult[T], f: Callable[[T], object]) -> T:
    """Run `f` for its side effect (awaiting it if needed) and return the value."""
    value = await resolve(obj)
    await resolve(f(value))
    return value
