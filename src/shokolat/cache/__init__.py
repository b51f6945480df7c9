"""On-disk mirror for shokolat.

This package provides :class:`CacheKeyResolver`, which maps a request URL
to a file under the cache root according to a
:class:`~shokolat.models.KeyPolicy`, and :class:`CacheStore`, which checks,
streams, and publishes the files themselves.  Both are shared by the
admission and write-back engines in :mod:`shokolat.engine`.
"""

from shokolat.cache.keys import CacheKeyResolver, resolve_key
from shokolat.cache.store import CachedObject, CacheStore

__all__ = ["CacheKeyResolver", "CacheStore", "CachedObject", "resolve_key"]
