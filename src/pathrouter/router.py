"""
HttpRouter - exact-path request router bound to one or more addresses.

The router owns:
  - a registry mapping path keys to request handlers
  - the collection of active listeners, each with its own accept loop
  - three fixed fallbacks: the 404 handler, the 500 handler and the
    top-level error callback for failures with no request context

Handlers are called as ``handler(router, request, response)`` and may be
plain functions or coroutines.
"""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Any
from urllib.parse import SplitResult

import anyio
from anyio.abc import ByteStream, Listener, SocketAttribute, TaskGroup, TaskStatus

from .config import ServerConfig
from .errors import BadRequest, DuplicateHandler, HandlerNotFound
from .handlers import default_error_callback, default_not_found, default_server_error
from .http.server import HttpRequest, HttpResponse, read_request, reject, write_response
from .type_utils import ErrorCallback, ErrorRequestHandler, RequestHandler, maybe_await
from .urls import create_url_from_string, url_to_path

logger = logging.getLogger("pathrouter.router")

_LOOPBACK_ALIASES = frozenset({"localhost", "127.0.0.1"})


@dataclass(eq=False)
class BoundListener:
    """One active network binding owned by a router."""

    hostname: str
    port: int
    addresses: tuple[str, ...]
    listener: Listener[Any]
    cancel_scope: anyio.CancelScope | None = None

    def matches(self, hostname: str, port: int) -> bool:
        if port != self.port:
            return False
        names = {self.hostname, *self.addresses}
        if hostname in names:
            return True
        # localhost and 127.0.0.1 are interchangeable in either direction
        return hostname in _LOOPBACK_ALIASES and not _LOOPBACK_ALIASES.isdisjoint(names)


class HttpRouter:
    """Dispatch inbound HTTP requests to handlers by exact path.

    Usage::

        async with HttpRouter(handle_404, handle_500, handle_error) as router:
            router.add_handler("/ping", ping)
            await router.listen("127.0.0.1", 8080)
            await anyio.sleep_forever()

    A router can also listen inside a caller-owned task group by passing
    ``task_group=`` to ``listen()``.
    """

    url_to_string = staticmethod(url_to_path)
    create_url_from_string = staticmethod(create_url_from_string)

    def __init__(
        self,
        handle_404: RequestHandler = default_not_found,
        handle_500: ErrorRequestHandler = default_server_error,
        handle_error: ErrorCallback = default_error_callback,
        *,
        config: ServerConfig | None = None,
    ):
        self._handle_404 = handle_404
        self._handle_500 = handle_500
        self._handle_error = handle_error
        self.config = config or ServerConfig()

        self._handlers: dict[str, RequestHandler] = {}
        self._lock = threading.Lock()
        self._listeners: list[BoundListener] = []
        self._task_group: TaskGroup | None = None

    async def __aenter__(self) -> HttpRouter:
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool | None:
        self.stop()
        task_group, self._task_group = self._task_group, None
        assert task_group is not None
        return await task_group.__aexit__(exc_type, exc_val, exc_tb)

    # --- Registry ---

    def add_handler(self, url: str | SplitResult, handler: RequestHandler) -> None:
        """
        Register ``handler`` for the path of ``url``, for example '/alpha/beta'.

        Raises DuplicateHandler if the path already has a handler.
        """
        path = url_to_path(url)
        with self._lock:
            if path in self._handlers:
                raise DuplicateHandler(path)
            self._handlers[path] = handler
        logger.debug("added handler for %s", path)

    def remove_handler_for_url(self, url: str | SplitResult) -> None:
        """
        Unregister the handler for the path of ``url``.

        Raises HandlerNotFound if the path has no handler.
        """
        path = url_to_path(url)
        with self._lock:
            if path not in self._handlers:
                raise HandlerNotFound(path)
            del self._handlers[path]
        logger.debug("removed handler for %s", path)

    def has_handler_for_url(self, url: str | SplitResult) -> bool:
        """Whether a handler is registered for ``url``; the 404 fallback does not count."""
        return self.get_handler_for_url(url, False) is not None

    def get_handler_for_url(
        self, url: str | SplitResult, fallback_to_404: bool
    ) -> RequestHandler | None:
        """
        Return the handler registered for ``url``.

        When nothing is registered, return the 404 handler if ``fallback_to_404``
        is set and None otherwise.
        """
        path = url_to_path(url)
        with self._lock:
            handler = self._handlers.get(path)
        if handler is None and fallback_to_404:
            return self._handle_404
        return handler

    # --- Lifecycle ---

    @property
    def listeners(self) -> tuple[BoundListener, ...]:
        return tuple(self._listeners)

    def is_listening_to(self, hostname: str, port: int) -> bool:
        hostname = hostname.strip()
        return any(bound.matches(hostname, port) for bound in self._listeners)

    async def listen(
        self,
        hostname: str,
        port: int,
        *,
        task_group: TaskGroup | None = None,
    ) -> BoundListener:
        """
        Bind to ``hostname:port`` and start serving in the background.

        Returns once the socket is bound. Bind failures (``OSError``) propagate
        to the caller and nothing is recorded.
        """
        task_group = task_group or self._task_group
        if task_group is None:
            raise RuntimeError(
                "HttpRouter requires a task_group (structured concurrency); "
                "pass task_group= or use 'async with HttpRouter(...)'"
            )

        hostname = hostname.strip()
        listener = await anyio.create_tcp_listener(local_host=hostname, local_port=port)
        bound = BoundListener(
            hostname=hostname,
            port=listener.extra(SocketAttribute.local_port),
            addresses=_bound_addresses(listener),
            listener=listener,
        )
        await task_group.start(self._serve, bound)
        self._listeners.append(bound)
        logger.info("listening on %s:%d", bound.hostname, bound.port)
        return bound

    def stop(self) -> None:
        """
        Forcibly stop every listener.

        In-flight requests are aborted. Registered handlers are kept, so the
        router can listen again later.
        """
        listeners, self._listeners = self._listeners, []
        for bound in listeners:
            if bound.cancel_scope is not None:
                bound.cancel_scope.cancel()
            # stop listening now; _serve closes the sockets once it unwinds
            for sock in _raw_sockets(bound.listener):
                with contextlib.suppress(OSError):
                    sock.shutdown(socket.SHUT_RDWR)
            logger.info("stopped listening on %s:%d", bound.hostname, bound.port)

    # --- Serving ---

    async def _serve(
        self,
        bound: BoundListener,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        """Accept connections on ``bound`` until its scope is cancelled."""
        with anyio.CancelScope() as bound.cancel_scope:
            try:
                async with anyio.create_task_group() as connections:
                    task_status.started()
                    try:
                        await bound.listener.serve(self._handle_client, task_group=connections)
                    except Exception as e:
                        if bound.cancel_scope.cancel_called:
                            # stop() shut the socket down under accept()
                            return
                        # connections already accepted may still finish
                        self._forget(bound)
                        await bound.listener.aclose()
                        self._report(e)
            finally:
                with anyio.CancelScope(shield=True):
                    await bound.listener.aclose()

    def _report(self, error: BaseException) -> None:
        try:
            self._handle_error(error)
        except Exception:
            logger.exception("error callback failed while reporting %r", error)

    def _forget(self, bound: BoundListener) -> None:
        if bound in self._listeners:
            self._listeners.remove(bound)

    async def _handle_client(self, stream: ByteStream) -> None:
        async with stream:
            try:
                await self._process(stream)
            except Exception as e:
                # socket errors have no request to answer
                self._report(e)

    async def _process(self, stream: ByteStream) -> None:
        try:
            request = await read_request(stream, self.config)
        except BadRequest as e:
            await reject(stream, e)
            return
        except TimeoutError:
            logger.debug("timed out waiting for request head")
            return
        if request is None:
            return

        response = HttpResponse()
        if await self.dispatch(request, response):
            await write_response(stream, response)
        # otherwise the 500 handler failed; close without writing anything

    async def dispatch(self, request: HttpRequest, response: HttpResponse) -> bool:
        """
        Route one request into ``response``.

        Failures of the handler go to the 500 handler. Failures of the 500
        handler go to the top-level error callback and make this return False.
        """
        handler = self.get_handler_for_url(request.url, True)
        assert handler is not None
        logger.debug("%s %s", request.method, request.path)
        try:
            await maybe_await(handler, self, request, response)
        except Exception as e:
            logger.debug("handler for %s raised %r", request.path, e)
            try:
                await maybe_await(self._handle_500, self, e, request, response)
            except Exception as e2:
                self._report(e2)
                return False
        return True


def _children(listener: Listener[Any]) -> list[Listener[Any]]:
    # create_tcp_listener() returns a MultiListener when a name resolves to
    # several addresses (e.g. localhost -> ::1 and 127.0.0.1)
    return list(getattr(listener, "listeners", [listener]))


def _raw_sockets(listener: Listener[Any]) -> list[socket.socket]:
    sockets = []
    for child in _children(listener):
        sock = child.extra(SocketAttribute.raw_socket, None)
        if sock is not None:
            sockets.append(sock)
    return sockets


def _bound_addresses(listener: Listener[Any]) -> tuple[str, ...]:
    addresses = []
    for child in _children(listener):
        address = child.extra(SocketAttribute.local_address, None)
        if isinstance(address, tuple):
            addresses.append(str(address[0]))
    return tuple(addresses)
