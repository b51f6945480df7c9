"""Built-in CLI commands for shokolat.

Each module exposes a Typer command or sub-app that :mod:`shokolat.app`
mounts on the root application:

* :mod:`~shokolat.commands.serve` -- run the caching proxy.
* :mod:`~shokolat.commands.cache` -- inspect and pre-populate the mirror.
* :mod:`~shokolat.commands.patterns` -- validate the cache list.
* :mod:`~shokolat.commands.config` -- view and modify global configuration.
"""
