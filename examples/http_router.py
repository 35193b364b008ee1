"""
HTTP router example

Serves a couple of handlers on two addresses at once.

Run:
  python examples/http_router.py

Then try:
  curl -i http://127.0.0.1:8080/
  curl -i http://127.0.0.1:8081/health
  curl -i -X POST http://127.0.0.1:8080/echo -d 'hello there'
  curl -i http://127.0.0.1:8080/boom
  curl -i http://127.0.0.1:8080/missing
"""

from __future__ import annotations

import logging

import anyio

from pathrouter import HttpRequest, HttpResponse, HttpRouter


def handle_404(router: HttpRouter, req: HttpRequest, resp: HttpResponse) -> None:
    resp.text(f"nothing at {req.path}\n", status=404)


def handle_500(router: HttpRouter, error: BaseException, req: HttpRequest, resp: HttpResponse) -> None:
    logging.getLogger("example").error("%s failed: %r", req.path, error)
    resp.reset()
    resp.text("something broke\n", status=500)


def handle_error(error: BaseException) -> None:
    logging.getLogger("example").critical("server error: %r", error)


async def handle_root(router: HttpRouter, req: HttpRequest, resp: HttpResponse) -> None:
    resp.text("hello from pathrouter\n")


async def handle_health(router: HttpRouter, req: HttpRequest, resp: HttpResponse) -> None:
    resp.json({"ok": True, "listening": [f"{b.hostname}:{b.port}" for b in router.listeners]})


async def handle_echo(router: HttpRouter, req: HttpRequest, resp: HttpResponse) -> None:
    # Echo the raw body bytes back.
    resp.set_header("content-type", req.headers.get("content-type", "application/octet-stream"))
    resp.end(req.body)


def handle_boom(router: HttpRouter, req: HttpRequest, resp: HttpResponse) -> None:
    raise RuntimeError("boom")


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    async with HttpRouter(handle_404, handle_500, handle_error) as router:
        router.add_handler("/", handle_root)
        router.add_handler("/health", handle_health)
        router.add_handler("/echo", handle_echo)
        router.add_handler("/boom", handle_boom)

        await router.listen("127.0.0.1", 8080)
        await router.listen("127.0.0.1", 8081)

        print("Listening on http://127.0.0.1:8080 and http://127.0.0.1:8081")
        print("Press Ctrl-C to stop.")

        # Keep the app alive.
        await anyio.sleep_forever()


if __name__ == "__main__":
    anyio.run(main)
