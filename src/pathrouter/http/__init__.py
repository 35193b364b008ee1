"""HTTP transport used by the router.

A tiny HTTP/1.1 implementation on AnyIO sockets: it parses requests, hands
them to the router and writes the buffered response back.
"""

from .server import HttpRequest, HttpResponse, PayloadTooLarge

__all__ = [
    "HttpRequest",
    "HttpResponse",
    "PayloadTooLarge",
]
