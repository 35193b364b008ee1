"""Typing helpers for handlers that may or may not be coroutines."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from .http.server import HttpRequest, HttpResponse
    from .router import HttpRouter


MaybeAwaitable: TypeAlias = Union[Any, Awaitable[Any]]
MaybeAwaitableCallable: TypeAlias = Callable[..., MaybeAwaitable]

RequestHandler: TypeAlias = Callable[
    ["HttpRouter", "HttpRequest", "HttpResponse"], Union[None, Awaitable[None]]
]
ErrorRequestHandler: TypeAlias = Callable[
    ["HttpRouter", BaseException, "HttpRequest", "HttpResponse"], Union[None, Awaitable[None]]
]
ErrorCallback: TypeAlias = Callable[[BaseException], None]


async def maybe_await(func: MaybeAwaitableCallable, *args: Any) -> Any:
    """Call ``func`` and await the result if it is awaitable."""
    result = func(*args)
    if inspect.isawaitable(result):
        return await result
    return result
