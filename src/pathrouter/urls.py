"""URL helpers.

Every registry operation keys on the path component of a URL, so callers may
pass either raw strings or pre-parsed ``SplitResult`` values.
"""

import re
from urllib.parse import SplitResult, urlsplit

_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*:")


def create_url_from_string(url: str) -> SplitResult:
    """Parse a raw URL or request target.

    Only absolute URLs (with a scheme) have a host part. A path such as
    ``//foo/bar`` is a path, not a network location.
    """
    if _SCHEME.match(url):
        return urlsplit(url)
    rest, _, fragment = url.partition("#")
    path, _, query = rest.partition("?")
    return SplitResult("", "", path, query, fragment)


def url_to_path(url: str | SplitResult) -> str:
    """Return the registry key for ``url``: its path, without query or fragment.

    >>> url_to_path("/alpha/beta?x=1#frag")
    '/alpha/beta'
    """
    if isinstance(url, str):
        url = create_url_from_string(url)
    # "http://example.com" has an empty path; it addresses the root
    return url.path or "/"
