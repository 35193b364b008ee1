"""Helpers for testing code built on pathrouter."""

from .helpers import FetchResult, fetch, wait_for, with_timeout

__all__ = [
    "FetchResult",
    "fetch",
    "wait_for",
    "with_timeout",
]
