"""Admission and write-back engines.

The two halves of the caching layer, invoked by the proxying engine around
each upstream round trip:

* :class:`AdmissionEngine` -- before forwarding: serve from the mirror,
  forbid, or pass through.
* :class:`WriteBackEngine` -- after the origin answered: mirror the body
  or leave it alone.

:func:`build_engines` wires both from a resolved
:class:`~shokolat.models.ProxyConfig` so they share one resolver and
store.
"""

from __future__ import annotations

from shokolat.cache import CacheKeyResolver, CacheStore
from shokolat.engine.admission import (
    NOT_CACHED_BODY,
    AdmissionDecision,
    AdmissionEngine,
    Verdict,
)
from shokolat.engine.writeback import WriteBackEngine, WriteBackOutcome
from shokolat.models import ProxyConfig
from shokolat.patterns import PatternSet


def build_engines(
    config: ProxyConfig, patterns: PatternSet
) -> tuple[AdmissionEngine, WriteBackEngine]:
    """Create both engines for *config*, sharing one resolver and store."""
    resolver = CacheKeyResolver(config.cache_root, config.key_policy)
    store = CacheStore()
    admission = AdmissionEngine(patterns, resolver, store)
    write_back = WriteBackEngine(patterns, resolver, store, policy=config.write_back)
    return admission, write_back


__all__ = [
    "NOT_CACHED_BODY",
    "AdmissionDecision",
    "AdmissionEngine",
    "Verdict",
    "WriteBackEngine",
    "WriteBackOutcome",
    "build_engines",
]
