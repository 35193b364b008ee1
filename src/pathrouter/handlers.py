"""Default fallbacks for HttpRouter.

Applications usually supply their own; these keep a bare ``HttpRouter()``
usable and log what went wrong.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .http.server import HttpRequest, HttpResponse
    from .router import HttpRouter

logger = logging.getLogger("pathrouter.router")


def default_not_found(router: HttpRouter, request: HttpRequest, response: HttpResponse) -> None:
    response.text("not found", status=404)


def default_server_error(
    router: HttpRouter,
    error: BaseException,
    request: HttpRequest,
    response: HttpResponse,
) -> None:
    logger.error(
        "500 %s %s",
        request.method,
        request.path,
        exc_info=(type(error), error, error.__traceback__),
    )
    # the failing handler may have written part of a response
    response.reset()
    response.text("internal server error", status=500)


def default_error_callback(error: BaseException) -> None:
    logger.error("unhandled server error: %r", error, exc_info=(type(error), error, error.__traceback__))
