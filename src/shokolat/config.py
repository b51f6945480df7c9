"""Settings for shokolat: where they live, how they combine, and the cache root.

Settings come from five places, highest precedence first:

1. command-line flags,
2. ``SHOKOLAT_<FIELD>`` environment variables,
3. ``./shokolat.json`` in the working directory,
4. the user file ``config.json`` in :func:`get_config_dir`,
5. the defaults on :class:`~shokolat.models.GlobalConfig`.

:func:`resolve_config` folds them into one frozen
:class:`~shokolat.models.ProxyConfig`, which is all the engines ever see.

Directories follow the XDG base-directory layout on Linux and BSD and sit
under ``~/.shokolat`` elsewhere. The user file is rewritten atomically.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from shokolat.exceptions import ConfigError
from shokolat.models import GlobalConfig, ProxyConfig

_APP_NAME = "shokolat"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "shokolat.json"

ENV_PREFIX = "SHOKOLAT_"

_ENV_KEYS = (
    "cache_root",
    "listen",
    "cache_list",
    "verbose",
    "key_policy",
    "write_back",
    "intercept_tls",
)
"""GlobalConfig fields that can be overridden by ``SHOKOLAT_<FIELD>`` variables."""

_BOOL_FIELDS = frozenset({"verbose", "intercept_tls"})

TRUE_WORDS = ("1", "true", "yes", "on")
"""Spellings of a true boolean in environment variables and ``config set``."""

# kind -> (XDG variable, default below $HOME, subdirectory of ~/.shokolat)
_DIR_LAYOUT = {
    "config": ("XDG_CONFIG_HOME", (".config",), ""),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "logs"),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_default, fallback_sub = _DIR_LAYOUT[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or Path.home().joinpath(*home_default)
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory of the user config file (``~/.config/shokolat`` on Linux)."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Directory holding the default mirror, ``<cache dir>/mirror``."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs."""
    return _app_dir("data")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers see the old or the new file, never half of one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    ) as tmp:
        tmp_path = tmp.name
        try:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            os.unlink(tmp_path)
            raise
    try:
        os.replace(tmp_path, path)
    except OSError:
        os.unlink(tmp_path)
        raise


# --- Saved settings ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def load_global_config() -> GlobalConfig:
    """Read the user config file, or return defaults when there is none.

    Raises:
        ConfigError: If the file is not valid JSON or holds invalid values.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _atomic_write(
        _global_config_path(), json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    )


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./shokolat.json``; ``None`` when the working directory has none.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Listen address ---


def parse_listen(address: str) -> tuple[str, int]:
    """Split a listen address into ``(host, port)``.

    Accepts ``host:port``, ``:port`` (all interfaces), a bare ``port``, and
    bracketed IPv6 hosts (``[::1]:8080``).

    Raises:
        ConfigError: If the port is missing or not a number in 1-65535.
    """
    address = address.strip()
    host, sep, port_text = address.rpartition(":")
    if not sep:
        host, port_text = "", address
    host = host.strip("[]")
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigError(f"Invalid listen address: {address!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"Invalid listen port in {address!r}")
    return host, port


# --- Precedence resolution ---


def _env_overrides() -> dict[str, Any]:
    """Collect ``SHOKOLAT_*`` environment overrides for GlobalConfig fields."""
    overrides: dict[str, Any] = {}
    for field in _ENV_KEYS:
        value = os.environ.get(ENV_PREFIX + field.upper())
        if not value:
            continue
        if field in _BOOL_FIELDS:
            overrides[field] = value.lower() in TRUE_WORDS
        else:
            overrides[field] = value
    return overrides


def resolve_config(
    cache_root: Optional[str] = None,
    listen: Optional[str] = None,
    cache_list: Optional[str] = None,
    verbose: Optional[bool] = None,
    key_policy: Optional[str] = None,
    write_back: Optional[str] = None,
    intercept_tls: Optional[bool] = None,
) -> ProxyConfig:
    """Resolve the effective proxy configuration.

    Precedence (high to low):
        1. Arguments (CLI flags); ``None`` means "not given"
        2. Environment variables (``SHOKOLAT_CACHE_ROOT``, ``SHOKOLAT_LISTEN``,
           ``SHOKOLAT_CACHE_LIST``, ``SHOKOLAT_VERBOSE``,
           ``SHOKOLAT_KEY_POLICY``, ``SHOKOLAT_WRITE_BACK``,
           ``SHOKOLAT_INTERCEPT_TLS``)
        3. Project config (``./shokolat.json``)
        4. User config (``~/.config/shokolat/config.json``)
        5. Defaults

    Returns:
        A frozen :class:`~shokolat.models.ProxyConfig`.

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    # 5 + 4. Load base global config (fills in defaults automatically)
    data = load_global_config().model_dump(mode="json")

    # 3. Project-local config
    project = load_project_config()
    if project is not None:
        data.update({k: v for k, v in project.items() if k in data})

    # 2. Environment variables
    data.update(_env_overrides())

    # 1. CLI flags (highest precedence)
    cli = {
        "cache_root": cache_root,
        "listen": listen,
        "cache_list": cache_list,
        "verbose": verbose,
        "key_policy": key_policy,
        "write_back": write_back,
        "intercept_tls": intercept_tls,
    }
    data.update({k: v for k, v in cli.items() if v is not None})

    try:
        merged = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    host, port = parse_listen(merged.listen)
    root = Path(merged.cache_root) if merged.cache_root else get_cache_dir() / "mirror"
    return ProxyConfig(
        cache_root=root.expanduser(),
        listen_host=host,
        listen_port=port,
        cache_list=Path(merged.cache_list).expanduser(),
        verbose=merged.verbose,
        key_policy=merged.key_policy,
        write_back=merged.write_back,
        intercept_tls=merged.intercept_tls,
    )


def ensure_cache_root(path: Path) -> Path:
    """Create the cache root directory if it does not exist yet.

    Raises:
        ConfigError: If the directory cannot be created (the proxy must not
            start serving with an unusable mirror).
    """
    try:
        path.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Cannot create cache root {path}: {exc}") from exc
    return path
