"""Options and startup helpers shared by the commands that touch the mirror."""

from __future__ import annotations

from typing import Optional

import typer

from shokolat.exceptions import ShokolatError
from shokolat.models import KeyPolicy, ProxyConfig, WriteBackPolicy
from shokolat.output import error
from shokolat.patterns import PatternSet

ROOT_OPTION = typer.Option(
    None, "--root", help="Cache root (document root) directory."
)
CACHE_LIST_OPTION = typer.Option(
    None, "--cl", help="File of regexes selecting request URLs to mirror."
)
KEY_POLICY_OPTION = typer.Option(
    None,
    "--key-policy",
    help="Cache key layout: full_path mirrors directories, basename flattens them.",
)
WRITE_BACK_OPTION = typer.Option(
    None,
    "--write-back",
    help="Which GET responses to mirror: always, or match_gated (cache list only).",
)


def load_runtime(
    root: Optional[str] = None,
    cache_list: Optional[str] = None,
    key_policy: Optional[KeyPolicy] = None,
    write_back: Optional[WriteBackPolicy] = None,
    listen: Optional[str] = None,
    verbose: Optional[bool] = None,
    intercept_tls: Optional[bool] = None,
) -> tuple[ProxyConfig, PatternSet]:
    """Resolve configuration and load the cache list, exiting on failure.

    Raises:
        typer.Exit: With the error's exit code when the configuration or
            cache list is unusable.
    """
    from shokolat.config import resolve_config
    from shokolat.patterns import load_patterns

    try:
        config = resolve_config(
            cache_root=root,
            listen=listen,
            cache_list=cache_list,
            verbose=verbose,
            key_policy=key_policy.value if key_policy else None,
            write_back=write_back.value if write_back else None,
            intercept_tls=intercept_tls,
        )
        patterns = load_patterns(config.cache_list)
    except ShokolatError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    return config, patterns
