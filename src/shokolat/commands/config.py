"""``shokolat config`` -- read and edit the saved settings file.

``show`` prints the user file (:class:`~shokolat.models.GlobalConfig`);
``show --effective`` prints what ``serve`` would actually run with once the
project file, ``SHOKOLAT_*`` variables and defaults are folded in.
"""

from __future__ import annotations

import typer

from shokolat.exceptions import InvalidUsageError, ShokolatError
from shokolat.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    effective: bool = typer.Option(
        False, "--effective", help="Show the resolved settings instead of the saved file."
    ),
) -> None:
    """Print the saved settings.

    Example::

        shokolat config show
        shokolat --json config show --effective
    """
    from shokolat.config import get_config_dir, load_global_config, resolve_config

    try:
        settings = resolve_config() if effective else load_global_config()
    except ShokolatError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Settings file: {get_config_dir() / 'config.json'}")
    format_response(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name, e.g. cache_root or key_policy."),
    value: str = typer.Argument(help="New value."),
) -> None:
    """Change one saved setting.

    Boolean settings accept true/1/yes/on; anything else is false. The
    file is only rewritten when the new value validates.

    Raises:
        typer.Exit: Code 2 for an unknown setting or an invalid value.

    Example::

        shokolat config set cache_root /srv/mirror
        shokolat config set write_back match_gated
    """
    from shokolat.config import TRUE_WORDS, load_global_config, save_global_config
    from shokolat.models import GlobalConfig

    try:
        data = load_global_config().model_dump(mode="json")
        if key not in data:
            known = ", ".join(sorted(data))
            raise InvalidUsageError(f"Unknown setting {key!r} (known: {known})")

        if isinstance(data[key], bool):
            data[key] = value.lower() in TRUE_WORDS
        else:
            data[key] = value

        try:
            updated = GlobalConfig.model_validate(data)
        except ValueError as exc:
            raise InvalidUsageError(f"Invalid value for {key}: {exc}") from exc
    except ShokolatError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    save_global_config(updated)
    success(f"{key} = {data[key]}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Overwrite the saved settings with the defaults.

    Example::

        shokolat config reset --force
    """
    from shokolat.config import save_global_config
    from shokolat.models import GlobalConfig

    if not force and not typer.confirm("Replace all saved settings with the defaults?"):
        info("Nothing changed.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Saved settings reset to defaults.")
