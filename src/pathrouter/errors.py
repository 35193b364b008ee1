"""Exception hierarchy shared by the router and the HTTP transport."""


class RouterError(Exception):
    """Base for all pathrouter errors."""


class DuplicateHandler(RouterError):
    """Raised when a handler is registered for a path that already has one."""

    def __init__(self, path: str):
        super().__init__(f"can not add request handler: URL '{path}' already has a handler")
        self.path = path


class HandlerNotFound(RouterError):
    """Raised when removing the handler of a path that has none."""

    def __init__(self, path: str):
        super().__init__(f"can not remove request handler: URL '{path}' does not have a handler")
        self.path = path


class ResponseFinished(RouterError):
    """Raised when writing to a response after end() was called."""


class BadRequest(RouterError, ValueError):
    """The transport could not parse the incoming request."""
