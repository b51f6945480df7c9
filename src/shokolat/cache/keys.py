"""Map request URLs to file paths under the cache root.

A cache key is a pure function of ``(url, root, policy)``: only the URL's
path component takes part (scheme, host, query, and fragment are ignored),
so the same URL always lands on the same file.

The path is percent-decoded before use, the way HTTP stacks expose request
paths.  Because the result is used directly to build a filesystem path,
a decoded path containing a ``..`` segment or a NUL byte is rejected, as is
any path that would leave no file name (``/`` or ``/dir/``).  Every key
returned by :func:`resolve_key` is strictly inside *root*.
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import unquote, urlsplit

from shokolat.exceptions import CacheKeyError
from shokolat.models import KeyPolicy

# Separators other than "/" that the host OS would honour inside a segment.
_EXTRA_SEPARATORS = tuple(
    sep for sep in (os.sep, os.altsep) if sep is not None and sep != "/"
)


def _path_segments(url: str) -> list[str]:
    """Return the decoded, non-empty path segments of *url*."""
    path = unquote(urlsplit(url).path)
    if "\x00" in path:
        raise CacheKeyError(f"NUL byte in request path: {url!r}")
    if path.endswith("/"):
        raise CacheKeyError(f"Request path has no file name: {url!r}")

    segments: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == ".." or any(sep in segment for sep in _EXTRA_SEPARATORS):
            raise CacheKeyError(f"Path traversal in request path: {url!r}")
        segments.append(segment)

    if not segments:
        raise CacheKeyError(f"Request path has no file name: {url!r}")
    return segments


def resolve_key(root: str | Path, url: str, policy: KeyPolicy) -> Path:
    """Resolve the cache file for *url* under *root*.

    Args:
        root: The cache root directory.
        url: Absolute (``http://host/a/b.png``) or origin-form
            (``/a/b.png``) request URL.
        policy: :attr:`KeyPolicy.FULL_PATH` keeps the directory hierarchy;
            :attr:`KeyPolicy.BASENAME` keeps only the final segment.

    Returns:
        The cache file path.  The file itself may or may not exist.

    Raises:
        CacheKeyError: If the path is unsafe or has no file name.

    Example::

        >>> resolve_key("/srv/mirror", "http://cdn.example/img/a.png", KeyPolicy.FULL_PATH)
        PosixPath('/srv/mirror/img/a.png')
        >>> resolve_key("/srv/mirror", "http://cdn.example/img/a.png", KeyPolicy.BASENAME)
        PosixPath('/srv/mirror/a.png')
    """
    segments = _path_segments(url)
    if policy == KeyPolicy.BASENAME:
        segments = segments[-1:]
    return Path(root).joinpath(*segments)


class CacheKeyResolver:
    """A :func:`resolve_key` bound to one cache root and policy.

    Shared by the admission and write-back engines so both phases of a
    transaction always agree on where an entry lives.
    """

    def __init__(self, root: str | Path, policy: KeyPolicy = KeyPolicy.FULL_PATH) -> None:
        self.root = Path(root)
        self.policy = policy

    def resolve(self, url: str) -> Path:
        """Return the cache file for *url*; see :func:`resolve_key`."""
        return resolve_key(self.root, url, self.policy)

    def __repr__(self) -> str:
        return f"CacheKeyResolver(root={str(self.root)!r}, policy={self.policy.value!r})"
