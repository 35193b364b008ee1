"""Async test helpers: timeouts, polling and a raw HTTP/1.1 client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import anyio

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], timeout: float = 1.0) -> T:
    """Await ``awaitable``, raising TimeoutError after ``timeout`` seconds."""
    with anyio.fail_after(timeout):
        return await awaitable


async def wait_for(
    condition: Callable[[], bool],
    timeout: float = 1.0,
    interval: float = 0.01,
) -> None:
    """Poll ``condition`` until it holds, raising TimeoutError after ``timeout``."""
    with anyio.fail_after(timeout):
        while not condition():
            await anyio.sleep(interval)


@dataclass(frozen=True, slots=True)
class FetchResult:
    status: int
    headers: dict[str, str]
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


async def fetch(
    host: str,
    port: int,
    target: str = "/",
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: bytes = b"",
    timeout: float = 2.0,
) -> FetchResult:
    """
    Send one HTTP/1.1 request and read the response until the server closes.

    Connection failures (e.g. refused) propagate as ``OSError``.
    """
    lines = [f"{method} {target} HTTP/1.1", f"host: {host}:{port}", "connection: close"]
    for k, v in (headers or {}).items():
        lines.append(f"{k}: {v}")
    if body:
        lines.append(f"content-length: {len(body)}")
    raw_request = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body

    with anyio.fail_after(timeout):
        async with await anyio.connect_tcp(host, port) as stream:
            await stream.send(raw_request)
            buf = bytearray()
            while True:
                try:
                    buf.extend(await stream.receive())
                except (anyio.EndOfStream, anyio.BrokenResourceError):
                    break

    return _parse_response(bytes(buf))


def _parse_response(raw: bytes) -> FetchResult:
    head, sep, body = raw.partition(b"\r\n\r\n")
    if not sep:
        raise ValueError(f"incomplete response: {raw!r}")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ", 2)[1])
    headers: dict[str, str] = {}
    for line in lines[1:]:
        k, _, v = line.partition(":")
        headers[k.strip().lower()] = v.strip()
    return FetchResult(status=status, headers=headers, body=body)
