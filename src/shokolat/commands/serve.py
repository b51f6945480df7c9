"""Serve command -- run the caching forward proxy.

Resolves the effective configuration, loads the cache list, creates the
cache root, and runs mitmproxy's ``DumpMaster`` with
:class:`~shokolat.addon.ShokolatAddon` installed.  Any startup problem
(unreadable cache list, invalid pattern, unusable cache root, bad listen
address) stops the command before a single request is accepted.

HTTPS is tunnelled untouched by default: ``CONNECT`` requests are passed
through as opaque byte streams, so only plain-HTTP traffic is matched and
mirrored.  ``--intercept-tls`` makes mitmproxy decrypt HTTPS instead, which
requires every client to trust the mitmproxy CA certificate.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import typer

from shokolat.addon import ShokolatAddon
from shokolat.commands._common import (
    CACHE_LIST_OPTION,
    KEY_POLICY_OPTION,
    ROOT_OPTION,
    WRITE_BACK_OPTION,
    load_runtime,
)
from shokolat.engine import build_engines
from shokolat.exceptions import ShokolatError
from shokolat.models import KeyPolicy, ProxyConfig, WriteBackPolicy
from shokolat.output import error, info, setup_logging, warning

TUNNEL_ALL_HOSTS = [".*"]
"""``ignore_hosts`` value that passes every CONNECT through undecrypted."""


def proxy_options(config: ProxyConfig) -> dict[str, Any]:
    """mitmproxy option values for *config*."""
    options: dict[str, Any] = {
        "listen_host": config.listen_host,
        "listen_port": config.listen_port,
    }
    if not config.intercept_tls:
        options["ignore_hosts"] = list(TUNNEL_ALL_HOSTS)
    return options


async def _run_proxy(config: ProxyConfig, addon: ShokolatAddon) -> None:
    """Run mitmproxy until it is shut down."""
    from mitmproxy.options import Options
    from mitmproxy.tools.dump import DumpMaster

    master = DumpMaster(
        Options(**proxy_options(config)), with_termlog=config.verbose, with_dumper=False
    )
    master.addons.add(addon)
    await master.run()


def serve_command(
    ctx: typer.Context,
    root: Optional[str] = ROOT_OPTION,
    address: Optional[str] = typer.Option(
        None, "--http", help='HTTP service address (e.g., ":8080").'
    ),
    cache_list: Optional[str] = CACHE_LIST_OPTION,
    key_policy: Optional[KeyPolicy] = KEY_POLICY_OPTION,
    write_back: Optional[WriteBackPolicy] = WRITE_BACK_OPTION,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every proxied request."
    ),
    intercept_tls: Optional[bool] = typer.Option(
        None,
        "--intercept-tls/--tunnel-tls",
        help="Decrypt HTTPS so it can be mirrored (clients must trust the mitmproxy CA).",
    ),
) -> None:
    """Run the caching proxy.

    Matched GET/HEAD requests are answered from the cache root (or refused
    with 403 when not mirrored yet); everything else is forwarded to the
    origin, and eligible GET responses are written back to the mirror.
    ``-v`` works here or on the root command.

    Example::

        shokolat serve --root ./mirror --http :8080 --cl cachelist.txt -v
        shokolat serve --key-policy basename --write-back match_gated
    """
    from shokolat.config import ensure_cache_root

    verbose = verbose or bool(ctx.obj and ctx.obj.get("verbose"))
    config, patterns = load_runtime(
        root=root,
        cache_list=cache_list,
        key_policy=key_policy,
        write_back=write_back,
        listen=address,
        verbose=verbose or None,
        intercept_tls=intercept_tls,
    )
    try:
        ensure_cache_root(config.cache_root)
    except ShokolatError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if not len(patterns):
        warning(f"{config.cache_list} holds no patterns; every request passes through")

    setup_logging(config.verbose)
    admission, write_back_engine = build_engines(config, patterns)
    addon = ShokolatAddon(admission, write_back_engine)

    info(
        f"Loaded {len(patterns)} pattern(s) from {config.cache_list}; "
        f"mirror at {config.cache_root} "
        f"(keys: {config.key_policy.value}, write-back: {config.write_back.value})"
    )
    if config.intercept_tls:
        info("Intercepting HTTPS; clients must trust the mitmproxy CA certificate")
    info(f"Listening on {config.listen}")
    asyncio.run(_run_proxy(config, addon))
