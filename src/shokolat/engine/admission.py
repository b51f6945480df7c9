"""Request-phase decision: serve from the mirror, forbid, or pass through.

:class:`AdmissionEngine` is consulted before a request is forwarded.  Only
GET and HEAD requests are considered; anything else passes through
untouched.  For a GET or HEAD request the first matching cache-list
pattern decides:

* no pattern matches -- :attr:`Verdict.PASS_THROUGH`, the origin answers;
* a pattern matches and the entry exists -- :attr:`Verdict.SERVE`, a 200
  ``application/octet-stream`` response streamed from the file;
* a pattern matches and nothing is mirrored -- :attr:`Verdict.FORBID`, the
  fixed 403 page from :data:`NOT_CACHED_BODY`; the origin is never
  contacted.

If the entry disappears or cannot be opened between the existence check
and the open, the failure is logged and the request passes through instead.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from shokolat.cache import CachedObject, CacheKeyResolver, CacheStore
from shokolat.exceptions import CacheKeyError
from shokolat.patterns import CachePattern, PatternSet

logger = logging.getLogger(__name__)

ADMITTED_METHODS = frozenset({"GET", "HEAD"})

HTML_CONTENT_TYPE = "text/html"
OCTET_STREAM = "application/octet-stream"

NOT_CACHED_BODY = (
    b"<html>\n"
    b"\t\t\t\t\t    <head><title>BLOCKED</title></head>\n"
    b"\t\t\t\t\t    <body>\n"
    b"\t\t\t\t\t        <h1>File is not cached!</h1>\n"
    b"\t\t\t\t\t        <hr />\n"
    b"\t\t\t\t\t    </body>\n"
    b"\t\t\t\t\t</html>"
)
"""Body of the 403 response for matched URLs that are not mirrored yet.

Clients match on this exact text, so it must not change.
"""


class Verdict(str, enum.Enum):
    """Outcome of admission for one request."""

    PASS_THROUGH = "pass_through"
    FORBID = "forbid"
    SERVE = "serve"


@dataclass(frozen=True)
class AdmissionDecision:
    """The admission verdict plus what the proxying engine needs to act on it.

    For :attr:`Verdict.SERVE` the decision owns an open
    :class:`~shokolat.cache.CachedObject`; the caller must stream it with
    :meth:`iter_body` (which closes it when exhausted) or call
    :meth:`close`.

    Attributes:
        verdict: What to do with the request.
        pattern: The cache-list pattern that matched, if any.
        key: The resolved cache file, when one was resolved.
        entry: The open cache entry for :attr:`Verdict.SERVE`.
    """

    verdict: Verdict
    pattern: Optional[CachePattern] = None
    key: Optional[Path] = None
    entry: Optional[CachedObject] = None

    @property
    def is_terminal(self) -> bool:
        """``True`` if the proxy must answer without contacting the origin."""
        return self.verdict != Verdict.PASS_THROUGH

    @property
    def status_code(self) -> Optional[int]:
        if self.verdict == Verdict.SERVE:
            return 200
        if self.verdict == Verdict.FORBID:
            return 403
        return None

    @property
    def content_type(self) -> Optional[str]:
        if self.verdict == Verdict.SERVE:
            return OCTET_STREAM
        if self.verdict == Verdict.FORBID:
            return HTML_CONTENT_TYPE
        return None

    @property
    def content_length(self) -> Optional[int]:
        if self.entry is not None:
            return self.entry.size
        if self.verdict == Verdict.FORBID:
            return len(NOT_CACHED_BODY)
        return None

    def iter_body(self) -> Iterator[bytes]:
        """Yield the synthetic response body; empty for pass-through."""
        if self.verdict == Verdict.FORBID:
            yield NOT_CACHED_BODY
        elif self.entry is not None:
            with self.entry:
                yield from self.entry.iter_chunks()

    def close(self) -> None:
        """Release the open cache entry, if any."""
        if self.entry is not None:
            self.entry.close()


class AdmissionEngine:
    """Decide, per request, between the mirror, a 403, and the origin.

    The engine holds only read-only collaborators, so one instance serves
    all concurrent requests.

    Args:
        patterns: The loaded cache list.
        resolver: Maps URLs to cache files.
        store: Checks for and opens cache files.
    """

    def __init__(
        self,
        patterns: PatternSet,
        resolver: CacheKeyResolver,
        store: Optional[CacheStore] = None,
    ) -> None:
        self.patterns = patterns
        self.resolver = resolver
        self.store = store or CacheStore()

    def admit(self, method: str, url: str) -> AdmissionDecision:
        """Return the admission decision for a request.

        Args:
            method: The request method.
            url: The full request URL, as matched against the cache list.

        Returns:
            An :class:`AdmissionDecision`.  Never raises for I/O failures.
        """
        if method.upper() not in ADMITTED_METHODS:
            return AdmissionDecision(Verdict.PASS_THROUGH)

        pattern = self.patterns.first_match(url)
        if pattern is None:
            logger.debug("Not matched: %s", url)
            return AdmissionDecision(Verdict.PASS_THROUGH)

        logger.debug("Matched %r: %s", pattern.source, url)
        try:
            key = self.resolver.resolve(url)
        except CacheKeyError as exc:
            # Such a URL can never be mirrored.
            logger.warning("Refusing unsafe cache key: %s", exc)
            return AdmissionDecision(Verdict.FORBID, pattern=pattern)

        if not self.store.exists(key):
            logger.debug("Not cached, forbidding: %s", key)
            return AdmissionDecision(Verdict.FORBID, pattern=pattern, key=key)

        try:
            entry = self.store.open(key)
        except OSError as exc:
            logger.warning("Cannot open cached file %s: %s", key, exc)
            return AdmissionDecision(Verdict.PASS_THROUGH, pattern=pattern, key=key)

        logger.debug("Return response from local %s", key)
        return AdmissionDecision(Verdict.SERVE, pattern=pattern, key=key, entry=entry)
