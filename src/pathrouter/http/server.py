"""Tiny HTTP/1.1 transport built on AnyIO sockets.

The router owns no protocol logic; this module turns a socket stream into an
``HttpRequest`` and flushes an ``HttpResponse`` back to the wire.

Features:
- HTTP/1.1 request line + headers parsing
- Optional Content-Length body (no chunked encoding)
- One request per connection (Connection: close)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import SplitResult, parse_qs

import anyio
from anyio.abc import ByteStream

from ..config import ServerConfig
from ..errors import BadRequest, ResponseFinished
from ..urls import create_url_from_string, url_to_path

logger = logging.getLogger("pathrouter.http")

HeaderMap = dict[str, str]


@dataclass(frozen=True, slots=True)
class HttpRequest:
    method: str
    target: str
    version: str
    headers: HeaderMap
    body: bytes

    @property
    def url(self) -> SplitResult:
        return create_url_from_string(self.target)

    @property
    def path(self) -> str:
        return url_to_path(self.url)

    @property
    def query(self) -> dict[str, list[str]]:
        return parse_qs(self.url.query)


@dataclass(slots=True)
class HttpResponse:
    """Mutable response sink handed to request handlers.

    Handlers set a status and headers and write body chunks; the transport
    flushes the buffered response once dispatch completes.
    """

    status: int = 200
    headers: HeaderMap = field(default_factory=dict)
    _chunks: list[bytes] = field(default_factory=list)
    _finished: bool = False

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def set_header(self, name: str, value: str) -> None:
        self._check_open()
        self.headers[name.lower()] = value

    def write(self, data: str | bytes, encoding: str = "utf-8") -> None:
        self._check_open()
        if isinstance(data, str):
            data = data.encode(encoding)
        self._chunks.append(data)

    def end(self, data: str | bytes | None = None) -> None:
        if data is not None:
            self.write(data)
        self._finished = True

    def reset(self) -> None:
        """Discard everything written so far, including a finished body."""
        self.status = 200
        self.headers.clear()
        self._chunks.clear()
        self._finished = False

    def text(
        self,
        text: str,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self._respond(
            text.encode(encoding),
            status,
            f"text/plain; charset={encoding}",
            headers,
        )

    def json(
        self,
        obj: Any,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        body = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        self._respond(body, status, "application/json; charset=utf-8", headers)

    def to_bytes(self) -> bytes:
        headers = dict(self.headers)
        body = self.body

        # Default headers
        headers.setdefault("content-length", str(len(body)))
        headers.setdefault("connection", "close")

        start = _status_line(self.status).encode("ascii")
        head = b"".join(f"{k}: {v}\r\n".encode("latin-1") for k, v in headers.items())
        return start + head + b"\r\n" + body

    def _respond(
        self,
        body: bytes,
        status: int,
        content_type: str,
        headers: Mapping[str, str] | None,
    ) -> None:
        self._check_open()
        self.status = status
        self.headers["content-type"] = content_type
        if headers:
            self.headers.update(_normalize_headers(headers))
        self.end(body)

    def _check_open(self) -> None:
        if self._finished:
            raise ResponseFinished("response already finished")


_STATUS_TEXT: dict[int, str] = {
    200: "OK",
    201: "Created",
    204: "No Content",
    301: "Moved Permanently",
    302: "Found",
    304: "Not Modified",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    413: "Payload Too Large",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _status_line(status: int) -> str:
    text = _STATUS_TEXT.get(status, "OK")
    return f"HTTP/1.1 {status} {text}\r\n"


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {k.lower(): v for k, v in headers.items()}


async def _read_until(stream: ByteStream, marker: bytes, max_bytes: int) -> tuple[bytes, bytes]:
    """Read up to and including ``marker``; return (head, leftover)."""
    buf = bytearray()
    while True:
        idx = buf.find(marker)
        if idx != -1:
            end = idx + len(marker)
            return bytes(buf[:end]), bytes(buf[end:])
        if len(buf) > max_bytes:
            raise BadRequest("request too large")
        try:
            chunk = await stream.receive(4096)
        except anyio.EndOfStream:
            return bytes(buf), b""
        if not chunk:
            return bytes(buf), b""
        buf.extend(chunk)


def _parse_headers(block: bytes) -> tuple[str, str, str, HeaderMap]:
    # block contains request line + headers ending with \r\n\r\n
    head = block.decode("iso-8859-1")

    lines = head.split("\r\n")
    if not lines or not lines[0]:
        raise BadRequest("missing request line")

    parts = lines[0].split(" ")
    if len(parts) != 3:
        raise BadRequest("invalid request line")
    method, target, version = parts
    if not version.startswith("HTTP/"):
        raise BadRequest(f"unsupported protocol {version!r}")
    try:
        create_url_from_string(target)
    except ValueError as e:
        raise BadRequest(f"invalid request target {target!r}") from e

    headers: HeaderMap = {}
    for line in lines[1:]:
        if line == "":
            break
        if ":" not in line:
            continue
        k, v = line.split(":", 1)
        headers[k.strip().lower()] = v.strip()
    return method, target, version, headers


async def _read_exact(stream: ByteStream, n: int, initial: bytes = b"") -> bytes:
    buf = bytearray(initial[:n])
    while len(buf) < n:
        try:
            chunk = await stream.receive(n - len(buf))
        except anyio.EndOfStream:
            break
        if not chunk:
            break
        buf.extend(chunk)
    return bytes(buf)


class PayloadTooLarge(BadRequest):
    def __init__(self, length: int):
        super().__init__(f"payload too large: {length} bytes")
        self.length = length


async def read_request(stream: ByteStream, config: ServerConfig) -> HttpRequest | None:
    """Read one request from ``stream``.

    Returns None when the peer closed before sending anything. Raises
    ``BadRequest`` for malformed input and ``TimeoutError`` when the head or the
    body does not arrive within ``config.read_timeout``.
    """
    with anyio.fail_after(config.read_timeout):
        header_block, rest = await _read_until(stream, b"\r\n\r\n", config.max_header_bytes)
    if not header_block:
        return None
    if not header_block.endswith(b"\r\n\r\n"):
        raise BadRequest("incomplete request head")

    method, target, version, headers = _parse_headers(header_block)
    try:
        content_length = int(headers.get("content-length", "0") or "0")
    except ValueError as e:
        raise BadRequest("invalid content-length") from e
    if content_length < 0:
        raise BadRequest("invalid content-length")
    if content_length > config.max_body_bytes:
        raise PayloadTooLarge(content_length)

    body = b""
    if content_length:
        with anyio.fail_after(config.read_timeout):
            body = await _read_exact(stream, content_length, rest)
        if len(body) < content_length:
            raise BadRequest(f"incomplete body: {len(body)} of {content_length} bytes")

    return HttpRequest(
        method=method,
        target=target,
        version=version,
        headers=headers,
        body=body,
    )


async def write_response(stream: ByteStream, response: HttpResponse) -> None:
    # anyio SocketStream uses send()/receive() (not send_all()).
    await stream.send(response.to_bytes())


async def reject(stream: ByteStream, error: BadRequest) -> None:
    """Answer a request the transport could not hand to the router."""
    status = 413 if isinstance(error, PayloadTooLarge) else 400
    logger.debug("rejecting request with %d: %s", status, error)
    response = HttpResponse()
    response.text(f"bad request: {error}" if status == 400 else "payload too large", status=status)
    await write_response(stream, response)
