"""Canonical Pydantic models for shokolat configuration.

Two models describe the same settings at different stages:

* :class:`GlobalConfig` -- the mutable, JSON-serialised form stored in the
  user's config directory (and in a project-local ``shokolat.json``).
  Every field may be overridden later in the precedence chain.
* :class:`ProxyConfig` -- the immutable value produced by
  :func:`~shokolat.config.resolve_config` once CLI flags, environment
  variables, and files have been merged.  It is built once at startup and
  handed by reference to the engines; it is never modified afterwards.

The two policy enums, :class:`KeyPolicy` and :class:`WriteBackPolicy`,
select between the two observed behaviours for cache key layout and for
write-back eligibility.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class KeyPolicy(str, enum.Enum):
    """How a request URL is laid out under the cache root.

    ``FULL_PATH`` mirrors the URL path hierarchy (``/img/a.png`` becomes
    ``<root>/img/a.png``).  ``BASENAME`` keeps only the last path segment
    (``<root>/a.png``), so ``/x/a.png`` and ``/y/a.png`` share one entry.
    That collision is deliberate: it lets one mirrored artifact answer for
    every mirror host and directory that publishes it.
    """

    FULL_PATH = "full_path"
    BASENAME = "basename"


class WriteBackPolicy(str, enum.Enum):
    """Which origin responses are eligible to be persisted.

    ``ALWAYS`` writes every eligible GET response, including traffic that
    passed through unmatched.  ``MATCH_GATED`` writes only responses whose
    request URL matches the cache list.
    """

    ALWAYS = "always"
    MATCH_GATED = "match_gated"


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/shokolat/config.json``.

    Loaded and saved by :func:`~shokolat.config.load_global_config` and
    :func:`~shokolat.config.save_global_config`.  Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags.  See :func:`~shokolat.config.resolve_config`
    for the full precedence chain.
    """

    cache_root: Optional[str] = Field(
        default=None,
        description="Mirror directory; defaults to <cache dir>/mirror",
    )
    listen: str = Field(
        default=":8080", description="Proxy listen address (host:port or :port)"
    )
    cache_list: str = Field(
        default="cachelist.txt", description="File of URL regexes to mirror"
    )
    verbose: bool = Field(default=False, description="Log every proxied request")
    key_policy: KeyPolicy = Field(default=KeyPolicy.FULL_PATH)
    write_back: WriteBackPolicy = Field(default=WriteBackPolicy.ALWAYS)
    intercept_tls: bool = Field(
        default=False,
        description="Decrypt HTTPS (clients must trust the mitmproxy CA); off tunnels it untouched",
    )


class ProxyConfig(BaseModel):
    """Effective, immutable configuration for one proxy process."""

    model_config = ConfigDict(frozen=True)

    cache_root: Path
    listen_host: str = ""
    listen_port: int = 8080
    cache_list: Path = Path("cachelist.txt")
    verbose: bool = False
    key_policy: KeyPolicy = KeyPolicy.FULL_PATH
    write_back: WriteBackPolicy = WriteBackPolicy.ALWAYS
    intercept_tls: bool = False

    @field_validator("listen_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"port out of range: {value}")
        return value

    @property
    def listen(self) -> str:
        """The listen address in ``host:port`` form."""
        return f"{self.listen_host}:{self.listen_port}"
