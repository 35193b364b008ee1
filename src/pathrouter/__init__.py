"""Exact-path HTTP request routing on AnyIO."""

from .config import ServerConfig
from .errors import BadRequest, DuplicateHandler, HandlerNotFound, ResponseFinished, RouterError
from .http.server import HttpRequest, HttpResponse
from .router import BoundListener, HttpRouter
from .urls import create_url_from_string, url_to_path

__version__ = "0.1.0"

__all__ = [
    # Router
    "HttpRouter",
    "BoundListener",
    "ServerConfig",
    # HTTP
    "HttpRequest",
    "HttpResponse",
    # URLs
    "url_to_path",
    "create_url_from_string",
    # Errors
    "RouterError",
    "DuplicateHandler",
    "HandlerNotFound",
    "ResponseFinished",
    "BadRequest",
]
