"""Patterns commands -- validate the cache list.

Provides the ``shokolat patterns`` sub-command group. ``check`` compiles
the cache list exactly as ``serve`` would at startup and prints the
resulting patterns, so a broken list is caught before deployment.
"""

from __future__ import annotations

from typing import Optional

import typer

from shokolat.exceptions import ShokolatError
from shokolat.output import error, info, print_table


patterns_app = typer.Typer(no_args_is_help=True)


@patterns_app.command("check")
def patterns_check(
    path: Optional[str] = typer.Argument(
        None, help="Cache list to check (defaults to the configured one)."
    ),
) -> None:
    """Compile a cache list and list its patterns in match order.

    Exits with code 7 if the file is unreadable or any line is not a
    valid regular expression.

    Example::

        shokolat patterns check
        shokolat patterns check ./cachelist.txt --json
    """
    from shokolat.config import resolve_config
    from shokolat.patterns import load_patterns

    try:
        source = path if path is not None else resolve_config().cache_list
        patterns = load_patterns(source)
    except ShokolatError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows = [[str(p.line_number), p.source] for p in patterns]
    print_table(["Line", "Pattern"], rows, title=str(source))
    info(f"{len(patterns)} pattern(s) OK")
