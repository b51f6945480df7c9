"""``shokolat`` command line: the Typer app and the console-script entry point.

Sub-commands live in :mod:`shokolat.commands` and are mounted here.
:func:`main` is what the installed ``shokolat`` script runs; it turns a
stray :class:`~shokolat.exceptions.ShokolatError` into its exit code and
anything unexpected into a crash log under the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from shokolat import __version__
from shokolat.commands.cache import cache_app
from shokolat.commands.config import config_app
from shokolat.commands.patterns import patterns_app
from shokolat.commands.serve import serve_command
from shokolat.exceptions import ShokolatError
from shokolat.exit_codes import EXIT_GENERIC_FAILURE
from shokolat.output import OutputFormat, OutputManager, error, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="shokolat",
    help="Forward HTTP proxy that mirrors selected GET responses to disk.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.command("serve")(serve_command)
app.add_typer(cache_app, name="cache", help="Inspect and pre-populate the mirror.")
app.add_typer(patterns_app, name="patterns", help="Validate the cache list.")
app.add_typer(config_app, name="config", help="Show or change saved settings.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"shokolat {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print results as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results and problems."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every proxied request and debug output."
    ),
) -> None:
    """Install the output manager; ``serve`` reads ``verbose`` from the context."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
    sys.stderr.write("\nStopped.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> str:
    """Save the current traceback under ``<data dir>/logs`` and return its path."""
    from shokolat.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """Console-script entry point. Always ends in ``SystemExit``."""
    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nStopped.\n")
        sys.exit(EXIT_INTERRUPTED)
    except ShokolatError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
