"""Response-phase decision: whether to persist an origin body to the mirror.

:class:`WriteBackEngine` runs after the origin has answered.  A response is
eligible only when the request was a GET and the response carries no
``Location`` header (persisting a redirect body under the requested URL
would misrepresent the resource there).  The configured
:class:`~shokolat.models.WriteBackPolicy` then decides whether unmatched
traffic is mirrored too.

Entries are write-once: an existing file is never replaced.  Every failure
is logged and reported as an outcome; nothing here alters or delays the
response the client receives.
"""

from __future__ import annotations

import enum
import logging
from typing import Iterable, Optional

from shokolat.cache import CacheKeyResolver, CacheStore
from shokolat.exceptions import CacheKeyError
from shokolat.models import WriteBackPolicy
from shokolat.patterns import PatternSet

logger = logging.getLogger(__name__)


class WriteBackOutcome(str, enum.Enum):
    """What :meth:`WriteBackEngine.write_back` did with a response."""

    STORED = "stored"
    EXISTS = "exists"
    NOT_GET = "not_get"
    REDIRECT = "redirect"
    NOT_MATCHED = "not_matched"
    UNSAFE_KEY = "unsafe_key"
    FAILED = "failed"

    @property
    def is_failure(self) -> bool:
        return self in (WriteBackOutcome.FAILED, WriteBackOutcome.UNSAFE_KEY)


def _has_header(headers: Iterable[str], name: str) -> bool:
    name = name.lower()
    return any(key.lower() == name for key in headers)


class WriteBackEngine:
    """Persist eligible origin responses into the mirror.

    Args:
        patterns: The cache list, consulted under
            :attr:`WriteBackPolicy.MATCH_GATED`.
        resolver: Maps URLs to cache files (the same one admission uses).
        store: Publishes cache files.
        policy: Which responses are eligible.
    """

    def __init__(
        self,
        patterns: PatternSet,
        resolver: CacheKeyResolver,
        store: Optional[CacheStore] = None,
        policy: WriteBackPolicy = WriteBackPolicy.ALWAYS,
    ) -> None:
        self.patterns = patterns
        self.resolver = resolver
        self.store = store or CacheStore()
        self.policy = policy

    def write_back(
        self,
        method: str,
        url: str,
        headers: Iterable[str],
        body: bytes | Iterable[bytes],
    ) -> WriteBackOutcome:
        """Mirror *body* for *url* if the response is eligible.

        Args:
            method: Method of the originating request.
            url: Full URL of the originating request.
            headers: Response header names (any mapping of headers works).
            body: The full response body, or an iterable of chunks.

        Returns:
            The :class:`WriteBackOutcome`.  Never raises for I/O failures.
            An exception raised by a chunk iterator propagates after the
            partial temporary file has been removed.
        """
        if method.upper() != "GET":
            return WriteBackOutcome.NOT_GET
        if _has_header(headers, "Location"):
            logger.debug("Redirect, not caching: %s", url)
            return WriteBackOutcome.REDIRECT
        if (
            self.policy == WriteBackPolicy.MATCH_GATED
            and self.patterns.first_match(url) is None
        ):
            return WriteBackOutcome.NOT_MATCHED

        try:
            key = self.resolver.resolve(url)
        except CacheKeyError as exc:
            logger.warning("Not caching: %s", exc)
            return WriteBackOutcome.UNSAFE_KEY

        if self.store.exists(key):
            return WriteBackOutcome.EXISTS

        try:
            published = self.store.write(key, body)
        except OSError as exc:
            logger.warning("Cannot write cache file %s: %s", key, exc)
            return WriteBackOutcome.FAILED

        if not published:
            logger.debug("Lost publish race, keeping existing %s", key)
            return WriteBackOutcome.EXISTS
        logger.info("Save cache to %s", key)
        return WriteBackOutcome.STORED
