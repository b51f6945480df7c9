"""Cache commands -- inspect and pre-populate the mirror.

Provides the ``shokolat cache`` sub-command group:

* ``lookup`` shows how the proxy would treat a URL: the first matching
  pattern, the resolved cache file, and the admission verdict.  No origin
  is contacted.
* ``warm`` fetches URLs from their origin and runs each response through
  the write-back engine.  Matched URLs that are not mirrored yet are
  refused by the proxy and never reach the origin through it, so this is
  how their entries get created.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx
import typer

from shokolat.commands._common import (
    CACHE_LIST_OPTION,
    KEY_POLICY_OPTION,
    ROOT_OPTION,
    WRITE_BACK_OPTION,
    load_runtime,
)
from shokolat.engine import WriteBackEngine, WriteBackOutcome, build_engines
from shokolat.exceptions import CacheKeyError, ConnectionError_, ShokolatError
from shokolat.exit_codes import EXIT_CONNECTION_ERROR
from shokolat.models import KeyPolicy, WriteBackPolicy
from shokolat.output import debug, error, format_response, info, print_table, warning


cache_app = typer.Typer(no_args_is_help=True)


def _make_http_client(timeout: float) -> httpx.Client:
    """Client used by ``warm``; redirects are returned, not followed."""
    return httpx.Client(follow_redirects=False, timeout=timeout)


def _warm_one(client: httpx.Client, engine: WriteBackEngine, url: str) -> tuple[int, str]:
    """Fetch *url* and hand the streamed body to *engine*.

    Returns:
        The origin status and the outcome name (``http_error`` for 4xx/5xx).

    Raises:
        ConnectionError_: If the origin could not be reached or the
            transfer broke off.
    """
    try:
        with client.stream("GET", url) as response:
            if response.status_code >= 400:
                return response.status_code, "http_error"
            outcome = engine.write_back("GET", url, response.headers, response.iter_bytes())
            return response.status_code, outcome.value
    except httpx.HTTPError as exc:
        raise ConnectionError_(f"Fetch failed for {url}: {exc}") from exc


@cache_app.command("lookup")
def cache_lookup(
    url: str = typer.Argument(help="Full request URL, as the proxy would see it."),
    method: str = typer.Option("GET", "--method", "-X", help="Request method."),
    root: Optional[str] = ROOT_OPTION,
    cache_list: Optional[str] = CACHE_LIST_OPTION,
    key_policy: Optional[KeyPolicy] = KEY_POLICY_OPTION,
) -> None:
    """Explain how the proxy would answer a request for URL.

    Example::

        shokolat cache lookup http://cdn.example.com/img/a.png
        shokolat cache lookup http://cdn.example.com/img/a.png --json
    """
    config, patterns = load_runtime(root=root, cache_list=cache_list, key_policy=key_policy)
    admission, _ = build_engines(config, patterns)

    decision = admission.admit(method, url)
    decision.close()

    pattern = patterns.first_match(url)
    try:
        key: Optional[Path] = admission.resolver.resolve(url)
    except CacheKeyError as exc:
        debug(str(exc))
        key = None

    format_response(
        {
            "url": url,
            "method": method.upper(),
            "pattern": pattern.source if pattern else None,
            "line": pattern.line_number if pattern else None,
            "key": str(key) if key is not None else None,
            "cached": key is not None and admission.store.exists(key),
            "verdict": decision.verdict.value,
        }
    )


@cache_app.command("warm")
def cache_warm(
    urls: list[str] = typer.Argument(help="URLs to fetch from their origin and mirror."),
    timeout: float = typer.Option(30.0, "--timeout", help="Per-request timeout in seconds."),
    root: Optional[str] = ROOT_OPTION,
    cache_list: Optional[str] = CACHE_LIST_OPTION,
    key_policy: Optional[KeyPolicy] = KEY_POLICY_OPTION,
    write_back: Optional[WriteBackPolicy] = WRITE_BACK_OPTION,
) -> None:
    """Fetch URLs from their origin and write them into the mirror.

    Each response goes through the same write-back rules as proxied
    traffic (GET only, no redirects, never overwrite, and the configured
    write-back policy); 4xx and 5xx responses are not mirrored.  Bodies
    are streamed to disk.  Exits with code 6 if any URL failed.

    Example::

        shokolat cache warm https://cdn.example.com/img/a.png
        shokolat cache warm --write-back match_gated $(cat urls.txt)
    """
    from shokolat.config import ensure_cache_root

    config, patterns = load_runtime(
        root=root, cache_list=cache_list, key_policy=key_policy, write_back=write_back
    )
    try:
        ensure_cache_root(config.cache_root)
    except ShokolatError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    _, engine = build_engines(config, patterns)

    rows: list[list[str]] = []
    failures = 0
    with _make_http_client(timeout) as client:
        for url in urls:
            try:
                status, outcome = _warm_one(client, engine, url)
            except ConnectionError_ as exc:
                warning(str(exc))
                rows.append([url, "-", "fetch_error"])
                failures += 1
                continue
            rows.append([url, str(status), outcome])
            if outcome == "http_error" or WriteBackOutcome(outcome).is_failure:
                failures += 1

    print_table(["URL", "Status", "Outcome"], rows, title="Cache warm")
    if failures:
        warning(f"{failures} of {len(urls)} URL(s) were not mirrored")
        raise typer.Exit(code=EXIT_CONNECTION_ERROR)
    info(f"{len(urls)} URL(s) processed")
